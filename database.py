"""
MongoDB connection layer for the SaaS company directory.

Holds the single process-wide MongoClient used by the API. The client is
created lazily on first use, reused while READY, and re-created after a
query reports a lost connection. Can also be run standalone to seed a
database from a JSON export.

Usage:
    # Standalone: load a JSON export into MongoDB
    python database.py --file data/sample_saas.json
    python database.py --file data/sample_saas.json --drop

    # Programmatic: share one manager across requests
    from database import DatabaseManager
    manager = DatabaseManager()
    db = manager.connect()
    db["incomeusa"].find_one({"ticker": "CRM"})
"""

import argparse
import json
import logging
import os
import sys
import threading
from pathlib import Path
from typing import Callable, Optional

from pymongo import ASCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

sys.path.append(str(Path(__file__).parent))

from models import ConnectionState
from saas_api.config import settings
from saas_api.errors import InfrastructureError
from utils import log


logger = logging.getLogger(__name__)

DEFAULT_SEED_FILE = os.path.join(settings.DATA_DIR, "sample_saas.json")


class DatabaseManager:
    """
    Lazily connected MongoDB handle shared by every request.

    State moves UNINITIALIZED -> CONNECTING -> READY, or FAILED when the
    server cannot be reached. A READY manager that is invalidated after a
    lost connection goes back through CONNECTING on the next call to connect().
    """

    def __init__(
        self,
        uri: Optional[str] = None,
        db_name: Optional[str] = None,
        client_factory: Callable[..., MongoClient] = MongoClient,
        timeout_ms: Optional[int] = None,
    ):
        """
        Args:
            uri: MongoDB connection string (defaults to config setting)
            db_name: Database name; falls back to the URI's default database
            client_factory: Callable building the client (MongoClient by default)
            timeout_ms: Server selection timeout in milliseconds
        """
        self.uri = uri or settings.MONGODB_URI
        self.db_name = db_name or settings.MONGODB_DB
        self.client_factory = client_factory
        self.timeout_ms = timeout_ms or settings.SERVER_SELECTION_TIMEOUT_MS

        self.state = ConnectionState.UNINITIALIZED
        self.client: Optional[MongoClient] = None
        self.last_error: Optional[Exception] = None
        self._lock = threading.Lock()

    def connect(self) -> Database:
        """
        Return the database, connecting on first use or after a failure.

        A READY manager hands back its client straight away; pymongo monitors
        the servers in the background, and callers invalidate() the manager
        when a query loses its connection.

        Raises:
            InfrastructureError: if the server cannot be reached
        """
        client = self.client
        if self.state is ConnectionState.READY and client is not None:
            return self._database(client)

        with self._lock:
            # Another thread may have connected while this one waited
            if self.state is ConnectionState.READY and self.client is not None:
                return self._database(self.client)

            self.state = ConnectionState.CONNECTING
            self._close_client()
            try:
                client = self.client_factory(
                    self.uri,
                    serverSelectionTimeoutMS=self.timeout_ms,
                )
                client.admin.command("ping")
            except PyMongoError as e:
                self.state = ConnectionState.FAILED
                self.last_error = e
                logger.error(f"MongoDB connection error: {e}")
                raise InfrastructureError(f"Could not connect to MongoDB: {e}") from e

            self.client = client
            self.state = ConnectionState.READY
            self.last_error = None
            db = self._database(client)
            logger.info(f"MongoDB connected: {db.name}")
            return db

    def invalidate(self, error: Optional[Exception] = None):
        """Drop a client whose connection was lost; the next connect() rebuilds it."""
        with self._lock:
            if self.state is not ConnectionState.READY:
                return
            logger.warning(f"MongoDB connection lost, reconnecting on next request: {error}")
            self._close_client()
            self.state = ConnectionState.FAILED
            self.last_error = error

    def close(self):
        """Close the client and return to the uninitialized state."""
        with self._lock:
            self._close_client()
            self.state = ConnectionState.UNINITIALIZED

    @property
    def is_ready(self) -> bool:
        return self.state is ConnectionState.READY

    def _database(self, client: MongoClient) -> Database:
        if self.db_name:
            return client[self.db_name]
        return client.get_default_database(default=settings.DEFAULT_DB_NAME)

    def _close_client(self):
        if self.client is not None:
            self.client.close()
            self.client = None

    # ------------------------------------------------------------------
    # Indexes
    # ------------------------------------------------------------------

    def ensure_indexes(self) -> None:
        """Unique email per subscription collection; ticker lookups."""
        db = self.connect()
        for name in (settings.ALL_COUNTRIES_SUBSCRIPTIONS, settings.METRICS_UPDATE_SUBSCRIPTIONS):
            db[name].create_index([("email", ASCENDING)], unique=True)
        db[settings.FINANCIAL_DATA_COLLECTION].create_index([("ticker", ASCENDING)])
        db[settings.VALUATION_METRICS_COLLECTION].create_index([("ticker", ASCENDING)])

    # ------------------------------------------------------------------
    # Bulk population from a JSON export
    # ------------------------------------------------------------------

    def seed_from_json(self, path: str, drop: bool = False) -> dict:
        """
        Load a JSON export into the directory collections.

        The file holds ``regions_document`` (the single denormalized region
        document), ``financial_data`` and ``valuation_metrics`` (lists keyed
        by ticker). Returns the number of documents written per collection.
        """
        with open(path, "r") as f:
            export = json.load(f)

        db = self.connect()
        targets = [
            (settings.REGIONS_COLLECTION, [export["regions_document"]] if export.get("regions_document") else []),
            (settings.FINANCIAL_DATA_COLLECTION, export.get("financial_data") or []),
            (settings.VALUATION_METRICS_COLLECTION, export.get("valuation_metrics") or []),
        ]

        counts = {}
        for name, documents in targets:
            if drop:
                db[name].delete_many({})
            if documents:
                db[name].insert_many([dict(doc) for doc in documents])
            counts[name] = len(documents)

        self.ensure_indexes()
        return counts


def main(argv=None):
    parser = argparse.ArgumentParser(description="Seed the SaaS directory database from a JSON export")
    parser.add_argument("--file", default=DEFAULT_SEED_FILE, help="Path to the JSON export")
    parser.add_argument("--uri", default=None, help="MongoDB URI (defaults to MONGODB_URI)")
    parser.add_argument("--drop", action="store_true", help="Clear collections before loading")
    args = parser.parse_args(argv)

    verbose = log.setup_verbose_logging("seed")
    manager = DatabaseManager(uri=args.uri)
    log.header("SEED: SaaS Company Directory", manager.uri)

    try:
        log.step(f"Loading {args.file}")
        counts = manager.seed_from_json(args.file, drop=args.drop)
    except (OSError, ValueError, KeyError) as e:
        log.err(f"Could not read export: {e}")
        verbose.exception("Seed failed")
        sys.exit(1)
    except (InfrastructureError, PyMongoError) as e:
        log.err(str(e))
        verbose.error(f"Seed failed: {e}")
        sys.exit(1)
    finally:
        manager.close()

    log.ok("Database populated")
    log.seed_summary(counts, dropped=args.drop)


if __name__ == "__main__":
    main()
