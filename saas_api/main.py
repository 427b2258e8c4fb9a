"""
FastAPI application for the SaaS Company Directory API.

Exposes the company directory via HTTP endpoints with auto-generated
OpenAPI documentation at /docs.
"""

import logging
import traceback
from typing import List, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from database import DatabaseManager

from .config import settings
from .data_access import SaasDataProvider
from .enrichment import enrich_companies, merge_financials
from .errors import ApiError, NotFoundError
from .models import (
    CompaniesResponse,
    HealthResponse,
    MessageResponse,
    SubscribeRequest,
    SubscribeResponse,
)
from .regions import (
    category_names,
    company_tickers,
    find_region,
    is_united_states,
    list_countries,
    select_companies,
    UNITED_STATES,
)
from .subscriptions import SubscriptionService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Enable CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=settings.CORS_METHODS,
    allow_headers=settings.CORS_HEADERS,
)

# Connection is established on the first request, not at import
db_manager = DatabaseManager()


# ----------------------------------------------------------------
# Dependencies
# ----------------------------------------------------------------

def get_db_manager() -> DatabaseManager:
    return db_manager


def get_data_provider(manager: DatabaseManager = Depends(get_db_manager)) -> SaasDataProvider:
    return SaasDataProvider(manager)


def get_subscription_service(manager: DatabaseManager = Depends(get_db_manager)) -> SubscriptionService:
    return SubscriptionService(manager)


# ----------------------------------------------------------------
# Error responses
# ----------------------------------------------------------------

def server_error(content=None, error: Optional[Exception] = None) -> JSONResponse:
    """500 response; dict bodies carry the traceback outside production."""
    if content is None:
        content = {"message": "Server error"}
    if isinstance(content, dict):
        if error is not None:
            content["error"] = str(error)
        if not settings.is_production:
            content["stack"] = traceback.format_exc()
    return JSONResponse(status_code=500, content=content)


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_content())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"message": "Invalid request body"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Global error handler: {exc}")
    return JSONResponse(status_code=500, content={"message": "Server error", "error": str(exc)})


# ----------------------------------------------------------------
# Countries & Regions
# ----------------------------------------------------------------

@app.get("/api/countries", response_model=List[str], tags=["Regions"])
def get_countries(data: SaasDataProvider = Depends(get_data_provider)):
    """
    Get the unique country names across all regions, sorted.
    """
    try:
        logger.info("Fetching regions for /api/countries")
        regions = data.get_regions()
        if regions is None:
            raise NotFoundError("No data found", body=[])

        countries = list_countries(regions)
        logger.info(f"Returning {len(countries)} unique countries from {len(regions)} regions")
        return countries
    except ApiError:
        raise
    except Exception as e:
        logger.error(f"Error in /api/countries: {e}")
        return JSONResponse(status_code=500, content=[])


@app.get("/api/country/{country_name}", tags=["Regions"])
def get_country(country_name: str, data: SaasDataProvider = Depends(get_data_provider)):
    """
    Get a region by country name.

    Args:
        country_name: Prefix of the region name (e.g. 'Japan' matches 'Japan (TSE)')

    Returns:
        The full region entry
    """
    try:
        logger.info(f"Fetching data for country: {country_name}")
        regions = data.get_regions()
        if regions is None:
            raise NotFoundError("No data found")

        region = find_region(regions, country_name)
        if region is None:
            raise NotFoundError("Country not found")
        return region
    except ApiError:
        raise
    except Exception as e:
        logger.error(f"Error fetching data for country {country_name}: {e}")
        return server_error()


@app.get("/api/categories/usa", response_model=List[str], tags=["Regions"])
def get_usa_categories(data: SaasDataProvider = Depends(get_data_provider)):
    """
    Get the category names of the United States region.
    """
    try:
        logger.info("Fetching categories for USA")
        regions = data.get_regions()
        if regions is None:
            raise NotFoundError("No data found")

        region = find_region(regions, UNITED_STATES)
        names = category_names(region) if region else None
        if names is None:
            raise NotFoundError("USA categories not found")
        return names
    except ApiError:
        raise
    except Exception as e:
        logger.error(f"Error fetching USA categories: {e}")
        return server_error()


# ----------------------------------------------------------------
# Companies
# ----------------------------------------------------------------

@app.get("/api/companies/{country_name}", response_model=CompaniesResponse, tags=["Companies"])
def get_companies(
    country_name: str,
    category: Optional[str] = Query(None, description="US category name, or 'All'"),
    data: SaasDataProvider = Depends(get_data_provider),
):
    """
    Get companies for a country.

    United States listings can be narrowed to one category and are enriched
    with financials (revenue, growth and market cap multiples).

    Args:
        country_name: Prefix of the region name
        category: Optional US category filter

    Returns:
        Exchange name and company list
    """
    try:
        logger.info(f"Fetching companies for country: {country_name}, category: {category or 'All'}")
        regions = data.get_regions()
        if regions is None:
            raise NotFoundError("No data found")

        region = find_region(regions, country_name)
        if region is None:
            raise NotFoundError("Country not found")

        companies = select_companies(region, country_name, category)
        if is_united_states(country_name):
            resolved = data.resolve_financials(company_tickers(companies))
            companies = enrich_companies(companies, resolved)

        return {
            "exchangeName": region.get("exchangeName") or "Unknown Exchange",
            "companies": companies,
        }
    except ApiError:
        raise
    except Exception as e:
        logger.error(f"Error fetching companies for {country_name}: {e}")
        return server_error()


# ----------------------------------------------------------------
# Financials
# ----------------------------------------------------------------

@app.get("/api/financials/{ticker}", tags=["Financials"])
def get_financials(ticker: str, data: SaasDataProvider = Depends(get_data_provider)):
    """
    Get the financial data document for a ticker, with valuation metrics
    merged in when available.

    Args:
        ticker: Stock ticker symbol (e.g., 'CRM')
    """
    try:
        logger.info(f"Fetching financial data for ticker: {ticker}")
        valuation_metrics = data.get_valuation_metrics(ticker)
        financial_data = data.get_financial_data(ticker)
        if not financial_data:
            raise NotFoundError("Financial data not found")

        return merge_financials(financial_data, valuation_metrics)
    except ApiError:
        raise
    except Exception as e:
        logger.error(f"Error fetching financial data for {ticker}: {e}")
        return server_error()


# ----------------------------------------------------------------
# Notifications
# ----------------------------------------------------------------

@app.post(
    "/api/notifications/subscribe",
    response_model=SubscribeResponse,
    status_code=201,
    responses={400: {"model": MessageResponse}, 500: {"model": MessageResponse}},
    tags=["Notifications"],
)
def subscribe(
    request: SubscribeRequest,
    service: SubscriptionService = Depends(get_subscription_service),
):
    """
    Subscribe an email to all-countries and/or metrics-update notifications.
    """
    try:
        results = service.subscribe(request)
        return SubscribeResponse(results=results)
    except ApiError:
        raise
    except Exception as e:
        logger.error(f"Error in subscription endpoint: {e}")
        return server_error(error=e)


# ----------------------------------------------------------------
# Health
# ----------------------------------------------------------------

@app.get("/api/health", response_model=HealthResponse, tags=["Health"])
def health():
    """Liveness check; does not touch the database."""
    return HealthResponse(status="ok")


# ----------------------------------------------------------------
# Cleanup
# ----------------------------------------------------------------

@app.on_event("shutdown")
def shutdown_event():
    """Close database connection on shutdown."""
    db_manager.close()
    logger.info("Database connection closed")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=settings.HOST,
        port=settings.PORT,
        log_level="info"
    )
