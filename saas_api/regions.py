"""
Region and category lookups over the denormalized company document.

The document holds a ``regions`` list. Every region is a country listing
named like ``"Japan (TSE)"``. Only the United States region groups its
companies into ``categories``; every other region has a flat ``companies``
list. Lookups are prefix matches on the full region name, so
``"United States"`` finds ``"United States (NYSE/NASDAQ)"``.
"""

from typing import Dict, List, Optional


UNITED_STATES = "United States"
ALL_CATEGORIES = "All"
UNKNOWN = "Unknown"


def is_united_states(country_name: str) -> bool:
    return country_name.startswith(UNITED_STATES)


def region_country_name(region) -> str:
    """Country part of a region name, i.e. everything before the first '('."""
    if not isinstance(region, dict):
        return UNKNOWN
    name = region.get("name")
    if not name or not isinstance(name, str):
        return UNKNOWN
    head = name.split("(", 1)[0]
    # A name that opens with '(' has no country part; keep it whole.
    return head.strip() if head else name.strip()


def list_countries(regions: List[Dict]) -> List[str]:
    """Unique, sorted country names across all regions."""
    names = {region_country_name(region) for region in regions}
    return sorted(name for name in names if name)


def find_region(regions: List[Dict], country_name: str) -> Optional[Dict]:
    """First region whose name starts with ``country_name`` (case-sensitive)."""
    for region in regions:
        if not isinstance(region, dict):
            continue
        name = region.get("name")
        if isinstance(name, str) and name and name.startswith(country_name):
            return region
    return None


def _categories(region: Dict) -> List[Dict]:
    categories = region.get("categories")
    if not isinstance(categories, list):
        return []
    return [category for category in categories if isinstance(category, dict)]


def _company_list(companies) -> List[Dict]:
    return list(companies) if isinstance(companies, list) else []


def find_category(region: Dict, category_name: str) -> Optional[Dict]:
    for category in _categories(region):
        if category.get("name") == category_name:
            return category
    return None


def category_names(region: Dict) -> Optional[List[str]]:
    """
    Names of the region's categories, or None when it has no category list.
    """
    categories = region.get("categories")
    if not isinstance(categories, list):
        return None
    return [
        (category.get("name") if isinstance(category, dict) else None) or UNKNOWN
        for category in categories
    ]


def select_companies(region: Dict, country_name: str, category: Optional[str] = None) -> List[Dict]:
    """
    Companies to list for a region.

    For the United States a named category narrows the list to that
    category (empty if it does not exist); no category, or ``"All"``,
    concatenates every category in order. Other regions return their flat
    company list.
    """
    if is_united_states(country_name):
        if category and category != ALL_CATEGORIES:
            match = find_category(region, category)
            return _company_list(match.get("companies")) if match else []

        companies = []
        for each in _categories(region):
            companies.extend(_company_list(each.get("companies")))
        return companies

    return _company_list(region.get("companies"))


def company_tickers(companies: List[Dict]) -> List[str]:
    """Distinct tickers in listing order, skipping companies without a string ticker."""
    seen = {}
    for company in companies:
        ticker = company.get("ticker") if isinstance(company, dict) else None
        if isinstance(ticker, str) and ticker:
            seen.setdefault(ticker, None)
    return list(seen)
