"""
Notification subscriptions.

Subscribers can opt into two lists, each its own collection: updates about
all countries' data, and updates about valuation metrics. Subscribing is an
upsert by email: a new email is inserted, a known one only has its phone
replaced when a phone is supplied.
"""

import logging
import re
from typing import Optional

from pymongo.errors import ConnectionFailure, DuplicateKeyError

from database import DatabaseManager
from models import Subscription, SubscriptionOutcome

from .config import settings
from .errors import InvalidEmailError
from .models import SubscribeRequest, SubscriptionResults


logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def validate_email(email: Optional[str]) -> str:
    """
    Raises:
        InvalidEmailError: if the email is missing or malformed
    """
    if not email:
        raise InvalidEmailError("Email is required")
    if not EMAIL_PATTERN.match(email):
        raise InvalidEmailError("Invalid email format")
    return email


class SubscriptionService:
    """Writes subscribers to the notification collections."""

    def __init__(self, manager: DatabaseManager):
        self.manager = manager

    def subscribe(self, request: SubscribeRequest) -> SubscriptionResults:
        """
        Upsert the subscriber into every list they opted into.

        Validation happens before any database access, so a rejected request
        writes nothing.

        Returns:
            SubscriptionResults with 'created' / 'updated' per requested list
        """
        validate_email(request.email)
        subscriber = Subscription(email=request.email, phone=request.phone)

        results = SubscriptionResults()
        if request.notifyAllCountries:
            results.allCountries = self._upsert(settings.ALL_COUNTRIES_SUBSCRIPTIONS, subscriber).value
        if request.notifyMetricsUpdates:
            results.metricsUpdates = self._upsert(settings.METRICS_UPDATE_SUBSCRIPTIONS, subscriber).value

        logger.info(f"Subscription results for {subscriber.email}: {results.model_dump()}")
        return results

    def _upsert(self, collection_name: str, subscriber: Subscription) -> SubscriptionOutcome:
        collection = self.manager.connect()[collection_name]
        query = {"email": subscriber.email}
        update = {"$setOnInsert": {"createdAt": subscriber.createdAt}}
        if subscriber.phone:
            update["$set"] = {"phone": subscriber.phone}

        try:
            result = collection.update_one(query, update, upsert=True)
        except DuplicateKeyError:
            # A concurrent request inserted the same email first
            collection.update_one(query, update)
            return SubscriptionOutcome.UPDATED
        except ConnectionFailure as e:
            self.manager.invalidate(e)
            raise

        if result.upserted_id is not None:
            return SubscriptionOutcome.CREATED
        return SubscriptionOutcome.UPDATED
