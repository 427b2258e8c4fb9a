"""
Configuration management for the SaaS Company Directory API.
"""

import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv

load_dotenv(Path(__file__).parent.parent / ".env")


class Settings:
    """API server configuration."""

    # Paths
    BASE_DIR: Path = Path(__file__).parent.parent
    DATA_DIR: Path = BASE_DIR / "data"

    # Server
    API_TITLE: str = "SaaS Company Directory API"
    API_DESCRIPTION: str = "REST API for SaaS companies by country, with valuation multiples"
    API_VERSION: str = "1.0.0"
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "5000"))
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", os.getenv("NODE_ENV", "development"))

    # CORS
    CORS_ORIGINS: List[str] = ["*"]
    CORS_METHODS: List[str] = ["GET", "POST", "PUT", "DELETE"]
    CORS_HEADERS: List[str] = ["Content-Type", "Authorization", "Accept", "Cache-Control"]

    # Database
    MONGODB_URI: str = os.getenv("MONGODB_URI", "mongodb://localhost:27017/saas")
    MONGODB_DB: str = os.getenv("MONGODB_DB", "")
    DEFAULT_DB_NAME: str = "saas"
    SERVER_SELECTION_TIMEOUT_MS: int = 5000

    # Collections
    REGIONS_COLLECTION: str = "saascompnies"
    FINANCIAL_DATA_COLLECTION: str = "incomeusa"
    VALUATION_METRICS_COLLECTION: str = "valuation_metrics"
    ALL_COUNTRIES_SUBSCRIPTIONS: str = "notification_subscriptions"
    METRICS_UPDATE_SUBSCRIPTIONS: str = "metrics_update_subscriptions"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


settings = Settings()
