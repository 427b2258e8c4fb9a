"""Tests for the notification subscription upserts."""

from unittest.mock import MagicMock

import pytest
from pymongo.errors import AutoReconnect, DuplicateKeyError

from saas_api.config import settings
from saas_api.errors import InvalidEmailError
from saas_api.models import SubscribeRequest
from saas_api.subscriptions import SubscriptionService, validate_email


@pytest.fixture
def service(db_manager):
    return SubscriptionService(db_manager)


def _all_countries(db):
    return list(db[settings.ALL_COUNTRIES_SUBSCRIPTIONS].find({}))


def _metrics_updates(db):
    return list(db[settings.METRICS_UPDATE_SUBSCRIPTIONS].find({}))


class TestValidateEmail:
    @pytest.mark.parametrize("email", ["a@b.co", "first.last+tag@example.co.uk"])
    def test_valid(self, email):
        assert validate_email(email) == email

    def test_missing(self):
        with pytest.raises(InvalidEmailError, match="Email is required"):
            validate_email(None)

    def test_empty(self):
        with pytest.raises(InvalidEmailError, match="Email is required"):
            validate_email("")

    @pytest.mark.parametrize("email", ["not-an-email", "a@b", "a b@c.de", "@example.com"])
    def test_malformed(self, email):
        with pytest.raises(InvalidEmailError, match="Invalid email format"):
            validate_email(email)


class TestSubscribe:
    def test_create_then_update(self, service, db):
        request = SubscribeRequest(email="jane@example.com", notifyAllCountries=True)
        first = service.subscribe(request)
        second = service.subscribe(request)
        assert first.allCountries == "created"
        assert second.allCountries == "updated"
        assert len(_all_countries(db)) == 1

    def test_unrequested_lists_are_false(self, service, db):
        results = service.subscribe(SubscribeRequest(email="jane@example.com", notifyMetricsUpdates=True))
        assert results.allCountries is False
        assert results.metricsUpdates == "created"
        assert _all_countries(db) == []
        assert len(_metrics_updates(db)) == 1

    def test_both_lists(self, service, db):
        results = service.subscribe(SubscribeRequest(
            email="jane@example.com", notifyAllCountries=True, notifyMetricsUpdates=True,
        ))
        assert results.model_dump() == {"allCountries": "created", "metricsUpdates": "created"}

    def test_no_lists_writes_nothing(self, service, db):
        results = service.subscribe(SubscribeRequest(email="jane@example.com"))
        assert results.model_dump() == {"allCountries": False, "metricsUpdates": False}
        assert _all_countries(db) == []

    def test_stored_document(self, service, db):
        service.subscribe(SubscribeRequest(email="Jane@Example.com", phone=" 555-0100 ", notifyAllCountries=True))
        stored = _all_countries(db)[0]
        assert stored["email"] == "jane@example.com"
        assert stored["phone"] == "555-0100"
        assert "createdAt" in stored

    def test_email_case_insensitive(self, service, db):
        service.subscribe(SubscribeRequest(email="jane@example.com", notifyAllCountries=True))
        results = service.subscribe(SubscribeRequest(email="JANE@example.com", notifyAllCountries=True))
        assert results.allCountries == "updated"

    def test_phone_updated_when_changed(self, service, db):
        service.subscribe(SubscribeRequest(email="jane@example.com", phone="111", notifyAllCountries=True))
        service.subscribe(SubscribeRequest(email="jane@example.com", phone="222", notifyAllCountries=True))
        assert _all_countries(db)[0]["phone"] == "222"

    def test_created_at_set_once(self, service, db):
        service.subscribe(SubscribeRequest(email="jane@example.com", notifyAllCountries=True))
        first = _all_countries(db)[0]["createdAt"]
        service.subscribe(SubscribeRequest(email="jane@example.com", phone="111", notifyAllCountries=True))
        assert _all_countries(db)[0]["createdAt"] == first

    def test_phone_kept_when_not_supplied(self, service, db):
        service.subscribe(SubscribeRequest(email="jane@example.com", phone="111", notifyAllCountries=True))
        service.subscribe(SubscribeRequest(email="jane@example.com", notifyAllCountries=True))
        assert _all_countries(db)[0]["phone"] == "111"

    def test_invalid_email_writes_nothing(self, service, db):
        with pytest.raises(InvalidEmailError):
            service.subscribe(SubscribeRequest(email="not-an-email", notifyAllCountries=True))
        assert _all_countries(db) == []


# ---------------------------------------------------------------------------
# Concurrent writers
# ---------------------------------------------------------------------------

class TestConcurrentSubscribe:
    def _service_over(self, db_manager, collection):
        db = MagicMock()
        db.__getitem__.return_value = collection
        db_manager.connect = MagicMock(return_value=db)
        db_manager.invalidate = MagicMock()
        return SubscriptionService(db_manager)

    def test_email_inserted_by_another_writer(self, service, db):
        db[settings.ALL_COUNTRIES_SUBSCRIPTIONS].insert_one({"email": "jane@example.com"})
        results = service.subscribe(SubscribeRequest(email="jane@example.com", notifyAllCountries=True))
        assert results.allCountries == "updated"
        assert len(_all_countries(db)) == 1

    def test_duplicate_key_on_upsert_reports_updated(self, db_manager):
        collection = MagicMock()
        collection.update_one.side_effect = [DuplicateKeyError("E11000 duplicate key"), MagicMock()]
        service = self._service_over(db_manager, collection)

        results = service.subscribe(SubscribeRequest(email="jane@example.com", phone="555", notifyAllCountries=True))

        assert results.allCountries == "updated"
        retry = collection.update_one.call_args_list[1]
        assert retry.args[0] == {"email": "jane@example.com"}
        assert retry.args[1]["$set"] == {"phone": "555"}
        assert "upsert" not in retry.kwargs

    def test_lost_connection_invalidates_manager(self, db_manager):
        collection = MagicMock()
        collection.update_one.side_effect = AutoReconnect("connection reset")
        service = self._service_over(db_manager, collection)

        with pytest.raises(AutoReconnect):
            service.subscribe(SubscribeRequest(email="jane@example.com", notifyAllCountries=True))
        db_manager.invalidate.assert_called_once()
