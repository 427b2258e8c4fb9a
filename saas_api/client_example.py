"""
Example client for the SaaS Company Directory API.

Demonstrates how to read the directory from a dashboard, notebook or
other application.
"""

from typing import Dict, List, Optional
from urllib.parse import quote

import requests


class SaasDirectoryClient:
    """
    Client for the SaaS Company Directory API.

    Usage:
        client = SaasDirectoryClient("http://localhost:5000")
        countries = client.get_countries()
        listing = client.get_companies("United States", category="CRM")
    """

    def __init__(self, api_url: str = "http://localhost:5000"):
        """
        Initialize API client.

        Args:
            api_url: Base URL of the API server
        """
        self.api_url = api_url.rstrip('/')
        self.session = requests.Session()

    def _get(self, endpoint: str, params: Dict = None):
        """Make GET request to API."""
        url = f"{self.api_url}{endpoint}"
        response = self.session.get(url, params=params)
        response.raise_for_status()
        return response.json()

    def _post(self, endpoint: str, payload: Dict):
        url = f"{self.api_url}{endpoint}"
        response = self.session.post(url, json=payload)
        response.raise_for_status()
        return response.json()

    # ----------------------------------------------------------------
    # Health
    # ----------------------------------------------------------------

    def health_check(self) -> Dict:
        return self._get("/api/health")

    # ----------------------------------------------------------------
    # Regions
    # ----------------------------------------------------------------

    def get_countries(self) -> List[str]:
        """Sorted list of country names."""
        return self._get("/api/countries")

    def get_country(self, country_name: str) -> Dict:
        """
        Get the region entry for a country.

        Args:
            country_name: Country name or prefix of the region name

        Returns:
            Region with name, exchangeName and companies or categories
        """
        return self._get(f"/api/country/{quote(country_name)}")

    def get_usa_categories(self) -> List[str]:
        return self._get("/api/categories/usa")

    # ----------------------------------------------------------------
    # Companies & Financials
    # ----------------------------------------------------------------

    def get_companies(self, country_name: str, category: Optional[str] = None) -> Dict:
        """
        Get the companies listed for a country.

        Args:
            country_name: Country name or prefix of the region name
            category: Optional US category ('All' for every category)

        Returns:
            Dict with exchangeName and companies (US companies carry financials)
        """
        params = {}
        if category:
            params['category'] = category

        return self._get(f"/api/companies/{quote(country_name)}", params)

    def get_financials(self, ticker: str) -> Dict:
        """Financial statements merged with valuation metrics for a ticker."""
        return self._get(f"/api/financials/{quote(ticker)}")

    # ----------------------------------------------------------------
    # Notifications
    # ----------------------------------------------------------------

    def subscribe(
        self,
        email: str,
        phone: Optional[str] = None,
        notify_all_countries: bool = False,
        notify_metrics_updates: bool = False
    ) -> Dict:
        """
        Subscribe to notification lists.

        Returns:
            Dict with message and per-list results ('created' / 'updated' / False)
        """
        payload = {
            'email': email,
            'notifyAllCountries': notify_all_countries,
            'notifyMetricsUpdates': notify_metrics_updates,
        }
        if phone:
            payload['phone'] = phone

        return self._post("/api/notifications/subscribe", payload)


# ----------------------------------------------------------------
# Example Usage
# ----------------------------------------------------------------

if __name__ == "__main__":
    client = SaasDirectoryClient("http://localhost:5000")

    print("=" * 60)
    print("SaaS Company Directory API - Client Examples")
    print("=" * 60)

    print("\n1. Health Check")
    print(f"   Status: {client.health_check()['status']}")

    print("\n2. Countries")
    countries = client.get_countries()
    print(f"   {len(countries)} countries: {', '.join(countries[:5])}...")

    print("\n3. US Categories")
    for name in client.get_usa_categories():
        print(f"   - {name}")

    print("\n4. US Companies with Multiples")
    listing = client.get_companies("United States")
    print(f"   Exchange: {listing['exchangeName']}")
    for company in listing['companies'][:5]:
        financials = company.get('financials') or {}
        print(
            f"   {company.get('ticker')}: "
            f"MCap/Revenue {financials.get('marketCapToRevenueMultiple')}, "
            f"year {financials.get('year')}"
        )

    print("\n5. Financials for CRM")
    crm = client.get_financials("CRM")
    print(f"   Latest fiscal year: {crm.get('latest_fiscal_year')}")
    print(f"   Revenue growth: {(crm.get('growth_metrics') or {}).get('revenue_growth_pct')}%")

    print("\n" + "=" * 60)
    print("All examples completed successfully!")
    print("=" * 60)
