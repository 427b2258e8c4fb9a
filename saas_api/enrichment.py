"""
Company enrichment with financial statements and valuation metrics.

Each US company listing is joined by ticker against two collections:
``incomeusa`` (income statements and market cap history) and
``valuation_metrics`` (precomputed growth rates and multiples). The result
is a flat ``financials`` object built from one of three tiers:

1. Precomputed: valuation metrics carry growth metrics or raw values.
   Their figures are used as-is, with income statement values filling gaps.
2. Derived: no usable valuation metrics, but a latest income statement and
   a latest market cap exist. Multiples are computed from those.
3. None: the company is returned without a ``financials`` key.

Multiples are always present in ``financials`` (null when unavailable);
other absent values are omitted.
"""

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional

from models import (
    FinancialData,
    FinancialStatementEntry,
    GrowthMetrics,
    MarketCapEntry,
    RawValues,
    ValuationMetrics,
    ValuationMultiples,
)


MULTIPLE_KEYS = (
    "marketCapToRevenueMultiple",
    "marketCapToNetIncomeMultiple",
    "marketCapToGrossProfitMultiple",
)

# Fields overlaid onto a financial data document by merge_financials().
VALUATION_OVERLAY_FIELDS = (
    "growth_metrics",
    "raw_values",
    "market_cap",
    "valuation_multiples",
    "valuation_multiples_raw",
    "latest_fiscal_year",
)
RAW_VALUE_FIELDS = ("current_revenue", "current_grossProfit", "current_netIncome")


@dataclass
class ResolvedFinancials:
    """Financial documents found for one ticker."""
    financial_data: Optional[FinancialData] = None
    valuation_metrics: Optional[ValuationMetrics] = None

    @property
    def latest_income_statement(self) -> Optional[FinancialStatementEntry]:
        return self.financial_data.latest_income_statement if self.financial_data else None

    @property
    def latest_market_cap(self) -> Optional[MarketCapEntry]:
        return self.financial_data.latest_market_cap if self.financial_data else None


# ---------------------------------------------------------------------------
# Numeric helpers
# ---------------------------------------------------------------------------

def round_or_none(value, digits: int) -> Optional[float]:
    """Round half away from zero, mapping missing or non-finite values to None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    exponent = Decimal(1).scaleb(-digits)
    return float(Decimal(str(number)).quantize(exponent, rounding=ROUND_HALF_UP))


def multiple(market_cap, denominator) -> Optional[float]:
    """``market_cap / denominator`` to 2 decimals; None for a zero or missing denominator."""
    if market_cap is None or not denominator:
        return None
    return round_or_none(market_cap / denominator, 2)


def _first_present(*values):
    for value in values:
        if value is not None:
            return value
    return None


def _compact(values: Dict, keep: Iterable[str] = ()) -> Dict:
    keep = set(keep)
    return {key: value for key, value in values.items() if value is not None or key in keep}


# ---------------------------------------------------------------------------
# Tiers
# ---------------------------------------------------------------------------

def _precomputed_financials(
    metrics: ValuationMetrics,
    statement: Optional[FinancialStatementEntry],
) -> Dict:
    raw = metrics.raw_values or RawValues()
    growth = metrics.growth_metrics or GrowthMetrics()
    multiples = metrics.valuation_multiples_raw or ValuationMultiples()
    statement = statement or FinancialStatementEntry()

    financials = {
        "marketCap": metrics.market_cap,
        "revenue": _first_present(raw.current_revenue, statement.revenue),
        "grossProfit": _first_present(raw.current_grossProfit, statement.grossProfit),
        "netIncome": _first_present(raw.current_netIncome, statement.netIncome),
        "revenueGrowth": round_or_none(growth.revenue_growth_pct, 1),
        "grossProfitGrowth": round_or_none(growth.gross_profit_growth_pct, 1),
        "netIncomeGrowth": round_or_none(growth.net_income_growth_pct, 1),
        "year": _first_present(metrics.latest_fiscal_year, statement.calendarYear),
        "marketCapToRevenueMultiple": round_or_none(multiples.marketcap_to_revenue, 2),
        "marketCapToNetIncomeMultiple": round_or_none(multiples.marketcap_to_netincome, 2),
        "marketCapToGrossProfitMultiple": round_or_none(multiples.marketcap_to_grossprofit, 2),
        "raw_values": metrics.stored("raw_values"),
        "current_revenue": raw.current_revenue,
        "current_grossProfit": raw.current_grossProfit,
        "current_netIncome": raw.current_netIncome,
    }
    return _compact(financials, keep=MULTIPLE_KEYS)


def _derived_financials(statement: FinancialStatementEntry, market_cap: MarketCapEntry) -> Dict:
    value = market_cap.marketCap
    financials = {
        "marketCap": value,
        "revenue": statement.revenue,
        "grossProfit": statement.grossProfit,
        "netIncome": statement.netIncome,
        "marketCapToRevenueMultiple": multiple(value, statement.revenue),
        "marketCapToNetIncomeMultiple": multiple(value, statement.netIncome),
        "marketCapToGrossProfitMultiple": multiple(value, statement.grossProfit),
        "year": statement.calendarYear,
    }
    return _compact(financials, keep=MULTIPLE_KEYS)


def enrich_company(
    company: Dict,
    financial_data: Optional[FinancialData] = None,
    valuation_metrics: Optional[ValuationMetrics] = None,
) -> Dict:
    """
    Attach a ``financials`` view to a company listing.

    Args:
        company: Company record from the region document
        financial_data: The ticker's income statements and market caps, if any
        valuation_metrics: The ticker's precomputed metrics, if any

    Returns:
        A new dict with ``financials``, or ``company`` itself when there is
        nothing to attach
    """
    resolved = ResolvedFinancials(financial_data, valuation_metrics)
    statement = resolved.latest_income_statement
    market_cap = resolved.latest_market_cap

    if valuation_metrics is not None and valuation_metrics.has_precomputed:
        return {**company, "financials": _precomputed_financials(valuation_metrics, statement)}

    if statement is not None and market_cap is not None:
        return {**company, "financials": _derived_financials(statement, market_cap)}

    return company


def enrich_companies(companies: List[Dict], resolved: Dict[str, ResolvedFinancials]) -> List[Dict]:
    """Enrich every company in order; entries without a dict shape pass through."""
    enriched = []
    for company in companies:
        if not isinstance(company, dict):
            enriched.append(company)
            continue
        ticker = company.get("ticker")
        match = (resolved.get(ticker) if isinstance(ticker, str) else None) or ResolvedFinancials()
        enriched.append(enrich_company(company, match.financial_data, match.valuation_metrics))
    return enriched


# ---------------------------------------------------------------------------
# Single-ticker view
# ---------------------------------------------------------------------------

def _overlay(target: Dict, source: Dict, field: str):
    if field in source:
        target[field] = source[field]
    else:
        target.pop(field, None)


def merge_financials(financial_data: Dict, valuation_metrics: Optional[Dict] = None) -> Dict:
    """
    Copy of a financial data document with valuation fields laid over it.

    When ``valuation_metrics`` exists, each overlay field replaces the
    document's field of the same name, or removes it if the metrics lack it.
    The three ``raw_values`` figures are also copied to the top level.
    """
    combined = dict(financial_data)
    if valuation_metrics is None:
        return combined

    for field in VALUATION_OVERLAY_FIELDS:
        _overlay(combined, valuation_metrics, field)

    raw = valuation_metrics.get("raw_values")
    if not isinstance(raw, dict):
        raw = {}
    for field in RAW_VALUE_FIELDS:
        _overlay(combined, raw, field)

    return combined
