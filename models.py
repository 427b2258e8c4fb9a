"""
Pydantic data models for the SaaS company directory.

Documents in MongoDB are schema-less, so every model here is loose: unknown
fields are kept (``extra="allow"``) and every known field is optional. The
financial models are what the enrichment step reads; the subscription model
is what the notification endpoint writes.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator


Number = Union[int, float]
FiscalYear = Union[int, str]


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class ConnectionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    CONNECTING = "connecting"
    READY = "ready"
    FAILED = "failed"


class SubscriptionOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def parse_document_date(value) -> Optional[datetime]:
    """
    Normalise a stored date to a naive UTC datetime.

    Accepts BSON datetimes, ``date`` objects and ISO-8601 strings
    (``2023-01-01``, ``2023-01-01T00:00:00.000Z``). Anything else is None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def loose_number(value):
    """
    Keep numbers and numeric strings; anything else (``""``, ``"N/A"``,
    booleans, nested values) reads as missing.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            float(text)
        except ValueError:
            return None
        return text
    return None


def loose_fiscal_year(value):
    if isinstance(value, bool):
        return None
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, (int, str)):
        return value
    return None


def loose_text(value):
    return value if isinstance(value, str) else None


def loose_block(value):
    return value if isinstance(value, dict) else None


def latest_entry(entries: list):
    """Entry with the greatest ``date``; undated entries lose to dated ones."""
    if not entries:
        return None
    ordered = sorted(
        entries,
        key=lambda e: (e.date is not None, e.date or datetime.min),
        reverse=True,
    )
    return ordered[0]


# ---------------------------------------------------------------------------
# Financial documents
# ---------------------------------------------------------------------------

class Document(BaseModel):
    """Base for schema-less MongoDB documents."""
    model_config = ConfigDict(extra="allow")

    _source: Optional[dict] = PrivateAttr(default=None)

    @classmethod
    def from_document(cls, doc: dict):
        """Validate a raw MongoDB document, leaving out its ``_id``."""
        fields = {key: value for key, value in doc.items() if key != "_id"}
        model = cls.model_validate(fields)
        model._source = fields
        return model

    def stored(self, field: str):
        """A field exactly as it was stored, before any coercion."""
        if self._source is not None:
            return self._source.get(field)
        return self.model_dump(exclude_unset=True).get(field)


class DatedEntry(Document):
    date: Optional[datetime] = None

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, value):
        return parse_document_date(value)


class FinancialStatementEntry(DatedEntry):
    """One annual income statement row."""
    revenue: Optional[Number] = None
    grossProfit: Optional[Number] = None
    netIncome: Optional[Number] = None
    calendarYear: Optional[FiscalYear] = None

    @field_validator("revenue", "grossProfit", "netIncome", mode="before")
    @classmethod
    def _numbers(cls, value):
        return loose_number(value)

    @field_validator("calendarYear", mode="before")
    @classmethod
    def _year(cls, value):
        return loose_fiscal_year(value)


class MarketCapEntry(DatedEntry):
    """One market capitalisation observation."""
    marketCap: Optional[Number] = None

    @field_validator("marketCap", mode="before")
    @classmethod
    def _number(cls, value):
        return loose_number(value)


class FinancialData(Document):
    """
    Time-series financial statements for a ticker (``incomeusa`` collection).
    """
    ticker: Optional[str] = None
    income_statement: List[FinancialStatementEntry] = Field(default_factory=list)
    market_cap: List[MarketCapEntry] = Field(default_factory=list)

    @field_validator("ticker", mode="before")
    @classmethod
    def _ticker(cls, value):
        return loose_text(value)

    @field_validator("income_statement", "market_cap", mode="before")
    @classmethod
    def _entries_or_empty(cls, value):
        if not isinstance(value, list):
            return []
        return [entry for entry in value if isinstance(entry, dict)]

    @property
    def latest_income_statement(self) -> Optional[FinancialStatementEntry]:
        return latest_entry(self.income_statement)

    @property
    def latest_market_cap(self) -> Optional[MarketCapEntry]:
        return latest_entry(self.market_cap)


class GrowthMetrics(Document):
    revenue_growth_pct: Optional[float] = None
    gross_profit_growth_pct: Optional[float] = None
    net_income_growth_pct: Optional[float] = None

    @field_validator("revenue_growth_pct", "gross_profit_growth_pct", "net_income_growth_pct", mode="before")
    @classmethod
    def _numbers(cls, value):
        return loose_number(value)


class RawValues(Document):
    current_revenue: Optional[Number] = None
    current_grossProfit: Optional[Number] = None
    current_netIncome: Optional[Number] = None

    @field_validator("current_revenue", "current_grossProfit", "current_netIncome", mode="before")
    @classmethod
    def _numbers(cls, value):
        return loose_number(value)


class ValuationMultiples(Document):
    marketcap_to_revenue: Optional[float] = None
    marketcap_to_netincome: Optional[float] = None
    marketcap_to_grossprofit: Optional[float] = None

    @field_validator("marketcap_to_revenue", "marketcap_to_netincome", "marketcap_to_grossprofit", mode="before")
    @classmethod
    def _numbers(cls, value):
        return loose_number(value)


class ValuationMetrics(Document):
    """
    Precomputed growth and valuation figures for a ticker
    (``valuation_metrics`` collection).

    Nested blocks that are not objects read as missing.
    """
    ticker: Optional[str] = None
    market_cap: Optional[Number] = None
    latest_fiscal_year: Optional[FiscalYear] = None
    growth_metrics: Optional[GrowthMetrics] = None
    raw_values: Optional[RawValues] = None
    valuation_multiples_raw: Optional[ValuationMultiples] = None

    @field_validator("ticker", mode="before")
    @classmethod
    def _ticker(cls, value):
        return loose_text(value)

    @field_validator("market_cap", mode="before")
    @classmethod
    def _market_cap(cls, value):
        return loose_number(value)

    @field_validator("latest_fiscal_year", mode="before")
    @classmethod
    def _year(cls, value):
        return loose_fiscal_year(value)

    @field_validator("growth_metrics", "raw_values", "valuation_multiples_raw", mode="before")
    @classmethod
    def _blocks(cls, value):
        return loose_block(value)

    @property
    def has_precomputed(self) -> bool:
        return self.growth_metrics is not None or self.raw_values is not None


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------

class Subscription(BaseModel):
    """A notification subscriber, unique by email within its collection."""
    email: str
    phone: Optional[str] = None
    createdAt: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("email")
    @classmethod
    def _normalise_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("phone")
    @classmethod
    def _normalise_phone(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None
