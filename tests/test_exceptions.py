"""
Tests for the exception hierarchy, HTTP mapping and the lifecycle table.
"""
import pytest

from shipping_engine.core.error_handler import http_exception_for, sanitize_error_message, status_code_for
from shipping_engine.core.exceptions import (
    CarrierServiceNotFoundError,
    ConfigurationError,
    InvalidTransitionError,
    RestrictionViolationError,
    ShipmentConflictError,
    ShipmentNotFoundError,
    ShippingEngineError,
    TransientStoreError,
)
from shipping_engine.models.shipment import (
    TERMINAL_SHIPMENT_STATUSES,
    ShipmentStatus,
    can_transition,
)


class TestExceptionHierarchy:
    """Test structured error payloads."""

    def test_to_dict(self):
        error = RestrictionViolationError("blocked", reasons=["too heavy"], shipping_method="express")

        data = error.to_dict()

        assert data["error_type"] == "RestrictionViolationError"
        assert data["code"] == "RESTRICTION_VIOLATION"
        assert data["details"] == {"reasons": ["too heavy"], "shipping_method": "express"}
        assert data["severity"] == "P3"

    def test_conflict_is_invalid_transition(self):
        error = ShipmentConflictError("raced", current_status="FAILED", requested_status="PROCESSING")

        assert isinstance(error, InvalidTransitionError)
        assert error.code == "SHIPMENT_CONFLICT"
        assert error.current_status == "FAILED"

    def test_code_override(self):
        assert ShippingEngineError("x", code="CUSTOM").code == "CUSTOM"


class TestHttpMapping:
    """Test engine error to status code translation."""

    @pytest.mark.parametrize("error,expected", [
        (ShipmentNotFoundError("missing", shipment_id=1), 404),
        (CarrierServiceNotFoundError("missing", carrier_service_id=1), 404),
        (RestrictionViolationError("blocked", reasons=["x"]), 422),
        (InvalidTransitionError("nope", "DELIVERED", "PENDING"), 409),
        (ShipmentConflictError("raced", "FAILED", "PROCESSING"), 409),
        (ConfigurationError("bad"), 400),
        (TransientStoreError("down", operation="get_shipment", attempts=3), 503),
        (ShippingEngineError("unknown"), 500),
    ])
    def test_status_codes(self, error, expected):
        assert status_code_for(error) == expected

    def test_http_exception_detail(self):
        exc = http_exception_for(ShipmentNotFoundError("Shipment 3 not found", shipment_id=3))

        assert exc.status_code == 404
        assert exc.detail["code"] == "SHIPMENT_NOT_FOUND"
        assert exc.detail["details"] == {"shipment_id": 3}

    def test_sensitive_messages_sanitized(self):
        message = sanitize_error_message("asyncpg.exceptions.ConnectionDoesNotExistError: password=...")
        assert "asyncpg" not in message

    def test_long_messages_truncated(self):
        assert len(sanitize_error_message("x" * 500)) == 203


class TestLifecycleTable:
    """Test the shipment transition table."""

    @pytest.mark.parametrize("current,requested", [
        (ShipmentStatus.PENDING, ShipmentStatus.PROCESSING),
        (ShipmentStatus.PENDING, ShipmentStatus.FAILED),
        (ShipmentStatus.PROCESSING, ShipmentStatus.IN_TRANSIT),
        (ShipmentStatus.PROCESSING, ShipmentStatus.FAILED),
        (ShipmentStatus.IN_TRANSIT, ShipmentStatus.DELIVERED),
        (ShipmentStatus.IN_TRANSIT, ShipmentStatus.FAILED),
    ])
    def test_allowed(self, current, requested):
        assert can_transition(current, requested)

    @pytest.mark.parametrize("current,requested", [
        (ShipmentStatus.PENDING, ShipmentStatus.IN_TRANSIT),
        (ShipmentStatus.PENDING, ShipmentStatus.DELIVERED),
        (ShipmentStatus.PROCESSING, ShipmentStatus.PENDING),
        (ShipmentStatus.IN_TRANSIT, ShipmentStatus.PROCESSING),
        (ShipmentStatus.FAILED, ShipmentStatus.PENDING),
        (ShipmentStatus.DELIVERED, ShipmentStatus.FAILED),
    ])
    def test_rejected(self, current, requested):
        assert not can_transition(current, requested)

    def test_terminal_states(self):
        assert TERMINAL_SHIPMENT_STATUSES == {ShipmentStatus.DELIVERED, ShipmentStatus.FAILED}
