"""
Pydantic models for API request/response validation.
Auto-generates OpenAPI documentation.
"""

from pydantic import BaseModel, Field
from typing import Any, List, Optional, Union


class HealthResponse(BaseModel):
    """Liveness response."""
    status: str = "ok"


class MessageResponse(BaseModel):
    """Error or status message."""
    message: str
    error: Optional[str] = None


class CompaniesResponse(BaseModel):
    """Companies listed for a country, enriched with financials for the US."""
    exchangeName: Any
    companies: List[Any]


class SubscribeRequest(BaseModel):
    """Notification subscription request."""
    email: Optional[str] = None
    phone: Optional[str] = None
    notifyAllCountries: bool = False
    notifyMetricsUpdates: bool = False


class SubscriptionResults(BaseModel):
    """Per-collection outcome: False when not requested, else 'created' or 'updated'."""
    allCountries: Union[bool, str] = False
    metricsUpdates: Union[bool, str] = False


class SubscribeResponse(BaseModel):
    """Subscription response."""
    message: str = "Successfully subscribed"
    results: SubscriptionResults = Field(default_factory=SubscriptionResults)
