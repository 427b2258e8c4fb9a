"""
Data access layer for the SaaS company directory.
Provides read access to the MongoDB collections with a clean query interface.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional

from bson import ObjectId
from pydantic import ValidationError
from pymongo.errors import ConnectionFailure, PyMongoError

from database import DatabaseManager
from models import FinancialData, ValuationMetrics

from .config import settings
from .enrichment import ResolvedFinancials
from .errors import InfrastructureError


logger = logging.getLogger(__name__)


def clean_document(value):
    """Recursively render ObjectIds as strings so documents serialize to JSON."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {key: clean_document(item) for key, item in value.items()}
    if isinstance(value, list):
        return [clean_document(item) for item in value]
    return value


class SaasDataProvider:
    """
    Provides company and financial data from MongoDB.
    Every call reads fresh documents; only the connection is shared.
    """

    def __init__(self, manager: DatabaseManager):
        """
        Args:
            manager: Shared connection manager (connected lazily on first query)
        """
        self.manager = manager

    def _collection(self, name: str):
        return self.manager.connect()[name]

    def _query_error(self, collection: str, error: PyMongoError) -> InfrastructureError:
        # A dropped connection is re-established on the next query
        if isinstance(error, ConnectionFailure):
            self.manager.invalidate(error)
        return InfrastructureError(f"Query on {collection} failed: {error}")

    def _find_one(self, collection: str, query: Dict) -> Optional[Dict]:
        try:
            doc = self._collection(collection).find_one(query)
        except PyMongoError as e:
            raise self._query_error(collection, e) from e
        return clean_document(doc) if doc is not None else None

    def _find(self, collection: str, query: Dict) -> List[Dict]:
        try:
            docs = list(self._collection(collection).find(query))
        except PyMongoError as e:
            raise self._query_error(collection, e) from e
        return [clean_document(doc) for doc in docs]

    # ----------------------------------------------------------------
    # Regions
    # ----------------------------------------------------------------

    def get_regions_document(self) -> Optional[Dict]:
        """The single denormalized document holding every region."""
        return self._find_one(settings.REGIONS_COLLECTION, {})

    def get_regions(self) -> Optional[List[Dict]]:
        """
        Regions list from the denormalized document.

        Returns:
            List of region dicts, or None if the document or its regions
            list is missing
        """
        doc = self.get_regions_document()
        if not doc:
            logger.info("No region document found")
            return None
        regions = doc.get("regions")
        if not isinstance(regions, list):
            logger.info(f"No regions found or regions is not a list: {type(regions).__name__}")
            return None
        return regions

    # ----------------------------------------------------------------
    # Financials
    # ----------------------------------------------------------------

    def get_financial_data(self, ticker: str) -> Optional[Dict]:
        """Income statement / market cap document for one ticker."""
        return self._find_one(settings.FINANCIAL_DATA_COLLECTION, {"ticker": ticker})

    def get_valuation_metrics(self, ticker: str) -> Optional[Dict]:
        """Precomputed valuation metrics document for one ticker."""
        return self._find_one(settings.VALUATION_METRICS_COLLECTION, {"ticker": ticker})

    def find_financial_data(self, tickers: Iterable[str]) -> List[Dict]:
        return self._find(settings.FINANCIAL_DATA_COLLECTION, {"ticker": {"$in": list(tickers)}})

    def find_valuation_metrics(self, tickers: Iterable[str]) -> List[Dict]:
        return self._find(settings.VALUATION_METRICS_COLLECTION, {"ticker": {"$in": list(tickers)}})

    def resolve_financials(self, tickers: Iterable[str]) -> Dict[str, ResolvedFinancials]:
        """
        Batch-fetch financial data and valuation metrics for a set of tickers.

        Both collections are queried once, concurrently. Tickers with no
        document in either collection are absent from the result.

        Args:
            tickers: Ticker symbols to resolve

        Returns:
            Dict of ticker -> ResolvedFinancials
        """
        tickers = list(dict.fromkeys(tickers))
        if not tickers:
            return {}

        # Connect before fanning out so both workers share one client.
        self.manager.connect()
        with ThreadPoolExecutor(max_workers=2) as executor:
            financial_future = executor.submit(self.find_financial_data, tickers)
            valuation_future = executor.submit(self.find_valuation_metrics, tickers)
            financial_docs = financial_future.result()
            valuation_docs = valuation_future.result()

        logger.info(
            f"Found {len(financial_docs)} financial records and "
            f"{len(valuation_docs)} valuation records"
        )

        resolved: Dict[str, ResolvedFinancials] = {}
        for doc in financial_docs:
            model = self._parse(FinancialData, doc)
            if model is not None:
                resolved.setdefault(doc["ticker"], ResolvedFinancials()).financial_data = model
        for doc in valuation_docs:
            model = self._parse(ValuationMetrics, doc)
            if model is not None:
                resolved.setdefault(doc["ticker"], ResolvedFinancials()).valuation_metrics = model
        return resolved

    @staticmethod
    def _parse(model_cls, doc: Dict):
        """Model for a fetched document; None when it has no usable ticker or fails validation."""
        if not isinstance(doc.get("ticker"), str) or not doc["ticker"]:
            return None
        try:
            return model_cls.from_document(doc)
        except ValidationError as e:
            logger.warning(f"Skipping malformed {model_cls.__name__} document for {doc['ticker']}: {e}")
            return None
