"""Shared fixtures for the test suite."""

import copy

import mongomock
import pytest
from fastapi.testclient import TestClient

from database import DatabaseManager
from saas_api.config import settings
from saas_api.main import app, get_db_manager


REGIONS_DOCUMENT = {
    "regions": [
        {
            "name": "United States (NYSE/NASDAQ)",
            "exchangeName": "NYSE / NASDAQ",
            "categories": [
                {
                    "name": "CRM",
                    "companies": [
                        {"name": "Salesforce", "ticker": "CRM"},
                        {"name": "HubSpot", "ticker": "HUBS"},
                    ],
                },
                {
                    "name": "Collaboration",
                    "companies": [
                        {"name": "Atlassian", "ticker": "TEAM"},
                        {"name": "Asana", "ticker": "ASAN"},
                    ],
                },
                {"name": "Empty"},
            ],
        },
        {
            "name": "Germany (XETRA)",
            "exchangeName": "Frankfurt Stock Exchange",
            "companies": [{"name": "SAP", "ticker": "SAP.DE"}],
        },
        {
            "name": "Japan (TSE)",
            "exchangeName": "Tokyo Stock Exchange",
            "companies": [{"name": "freee", "ticker": "4478.T"}],
        },
        {"name": "Japan (Nagoya)", "companies": []},
        {"exchangeName": "Unnamed Exchange"},
    ]
}


@pytest.fixture
def regions_document():
    """Deep copy of the sample denormalized region document."""
    return copy.deepcopy(REGIONS_DOCUMENT)


@pytest.fixture
def regions(regions_document):
    return regions_document["regions"]


@pytest.fixture
def sample_financial_data():
    """Factory fixture; call with overrides to get an ``incomeusa`` document."""
    def _make(ticker="CRM", **overrides):
        doc = {
            "ticker": ticker,
            "income_statement": [
                {"date": "2022-01-01", "calendarYear": "2021", "revenue": 800.0,
                 "grossProfit": 600.0, "netIncome": 80.0},
                {"date": "2023-01-01", "calendarYear": "2022", "revenue": 1000.0,
                 "grossProfit": 750.0, "netIncome": 100.0},
            ],
            "market_cap": [
                {"date": "2022-06-30", "marketCap": 4000.0},
                {"date": "2023-06-30", "marketCap": 5000.0},
            ],
        }
        doc.update(overrides)
        return doc
    return _make


@pytest.fixture
def sample_valuation_metrics():
    """Factory fixture; call with overrides to get a ``valuation_metrics`` document."""
    def _make(ticker="CRM", **overrides):
        doc = {
            "ticker": ticker,
            "market_cap": 9000.0,
            "latest_fiscal_year": "2024",
            "growth_metrics": {
                "revenue_growth_pct": 12.345,
                "gross_profit_growth_pct": 8.04,
                "net_income_growth_pct": -3.96,
            },
            "raw_values": {
                "current_revenue": 1200.0,
                "current_grossProfit": 900.0,
                "current_netIncome": 150.0,
            },
            "valuation_multiples_raw": {
                "marketcap_to_revenue": 7.5,
                "marketcap_to_netincome": 60.0,
                "marketcap_to_grossprofit": 10.0,
            },
            "valuation_multiples": {
                "marketcap_to_revenue": "7.5x",
                "marketcap_to_netincome": "60.0x",
                "marketcap_to_grossprofit": "10.0x",
            },
        }
        doc.update(overrides)
        return doc
    return _make


@pytest.fixture
def mongo_client():
    """In-memory MongoDB stand-in shared by every connection a test opens."""
    return mongomock.MongoClient()


@pytest.fixture
def db_manager(mongo_client):
    """DatabaseManager wired to the in-memory client."""
    manager = DatabaseManager(
        uri="mongodb://localhost:27017/saas_test",
        db_name="saas_test",
        client_factory=lambda *args, **kwargs: mongo_client,
    )
    yield manager
    manager.close()


@pytest.fixture
def db(db_manager):
    return db_manager.connect()


@pytest.fixture
def seeded_db(db, regions_document, sample_financial_data, sample_valuation_metrics):
    """
    Database holding the sample regions plus:
      CRM  - financial data and valuation metrics
      TEAM - financial data only
      ASAN - financial data only, zero net income
      HUBS - nothing
    """
    db[settings.REGIONS_COLLECTION].insert_one(regions_document)
    db[settings.FINANCIAL_DATA_COLLECTION].insert_many([
        sample_financial_data("CRM"),
        sample_financial_data("TEAM"),
        sample_financial_data(
            "ASAN",
            income_statement=[{"date": "2024-01-31", "calendarYear": "2023", "revenue": 650.0,
                               "grossProfit": 580.0, "netIncome": 0}],
            market_cap=[{"date": "2024-01-31", "marketCap": 4300.0}],
        ),
    ])
    db[settings.VALUATION_METRICS_COLLECTION].insert_one(sample_valuation_metrics("CRM"))
    return db


@pytest.fixture
def api_client(db_manager):
    """TestClient whose requests use the in-memory database."""
    app.dependency_overrides[get_db_manager] = lambda: db_manager
    yield TestClient(app)
    app.dependency_overrides.clear()
