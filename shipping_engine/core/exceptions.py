"""
Shipping Engine Exception Hierarchy

Structured exception classes for quoting and fulfillment.
All exceptions include code, message, and details so callers can present
them to an end user and log them for debugging.

Exception Hierarchy:
    ShippingEngineError
    ├── NotFoundError
    │   ├── ZoneNotFoundError
    │   ├── CarrierServiceNotFoundError
    │   ├── RateNotFoundError
    │   └── ShipmentNotFoundError
    ├── RestrictionViolationError
    ├── InvalidTransitionError
    │   └── ShipmentConflictError
    ├── ConfigurationError
    └── TransientStoreError

Only TransientStoreError is eligible for retry. Validation failures
(RestrictionViolationError, InvalidTransitionError) are always surfaced.
"""
import logging
from typing import Optional, Dict, Any, List

logger = logging.getLogger(__name__)


class ShippingEngineError(Exception):
    """
    Base exception for all shipping engine errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code for programmatic handling
        details: Additional context for debugging/audit
        severity: P0-P3 severity level
    """

    default_code: str = "SHIPPING_ENGINE_ERROR"
    default_severity: str = "P2"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[str] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        self.severity = severity or self.default_severity
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "severity": self.severity,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


# =============================================================================
# NOT FOUND ERRORS
# =============================================================================

class NotFoundError(ShippingEngineError):
    """A referenced record does not exist (or is inactive)."""
    default_code = "NOT_FOUND"
    default_severity = "P3"


class ZoneNotFoundError(NotFoundError):
    """No shipping zone with the given id."""
    default_code = "ZONE_NOT_FOUND"

    def __init__(self, message: str, zone_id: Optional[int] = None, **kwargs):
        details = kwargs.pop("details", {})
        details["zone_id"] = zone_id
        super().__init__(message, details=details, **kwargs)


class CarrierServiceNotFoundError(NotFoundError):
    """Carrier service missing or inactive."""
    default_code = "CARRIER_SERVICE_NOT_FOUND"

    def __init__(self, message: str, carrier_service_id: Optional[int] = None, **kwargs):
        details = kwargs.pop("details", {})
        details["carrier_service_id"] = carrier_service_id
        super().__init__(message, details=details, **kwargs)


class RateNotFoundError(NotFoundError):
    """No shipping rate with the given id."""
    default_code = "RATE_NOT_FOUND"

    def __init__(self, message: str, rate_id: Optional[int] = None, **kwargs):
        details = kwargs.pop("details", {})
        details["rate_id"] = rate_id
        super().__init__(message, details=details, **kwargs)


class ShipmentNotFoundError(NotFoundError):
    """No shipment with the given id."""
    default_code = "SHIPMENT_NOT_FOUND"

    def __init__(self, message: str, shipment_id: Optional[int] = None, **kwargs):
        details = kwargs.pop("details", {})
        details["shipment_id"] = shipment_id
        super().__init__(message, details=details, **kwargs)


# =============================================================================
# VALIDATION ERRORS
# =============================================================================

class RestrictionViolationError(ShippingEngineError):
    """A shipping method's eligibility rules are not satisfied."""
    default_code = "RESTRICTION_VIOLATION"
    default_severity = "P3"

    def __init__(
        self,
        message: str,
        reasons: Optional[List[str]] = None,
        shipping_method: Optional[str] = None,
        **kwargs
    ):
        self.reasons = list(reasons or [])
        details = kwargs.pop("details", {})
        details.update({
            "reasons": self.reasons,
            "shipping_method": shipping_method,
        })
        super().__init__(message, details=details, **kwargs)


class InvalidTransitionError(ShippingEngineError):
    """Requested shipment status is not reachable from the current status."""
    default_code = "INVALID_TRANSITION"
    default_severity = "P3"

    def __init__(
        self,
        message: str,
        current_status: Optional[str] = None,
        requested_status: Optional[str] = None,
        **kwargs
    ):
        self.current_status = current_status
        self.requested_status = requested_status
        details = kwargs.pop("details", {})
        details.update({
            "current_status": current_status,
            "requested_status": requested_status,
        })
        super().__init__(message, details=details, **kwargs)


class ShipmentConflictError(InvalidTransitionError):
    """Another update changed the shipment status between read and write."""
    default_code = "SHIPMENT_CONFLICT"
    default_severity = "P2"


class ConfigurationError(ShippingEngineError):
    """Invalid zone/rate/carrier configuration input."""
    default_code = "CONFIGURATION_ERROR"
    default_severity = "P2"


# =============================================================================
# STORE ERRORS
# =============================================================================

class TransientStoreError(ShippingEngineError):
    """Record store unavailable after bounded retries."""
    default_code = "STORE_UNAVAILABLE"
    default_severity = "P1"

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        attempts: Optional[int] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        details.update({
            "operation": operation,
            "attempts": attempts,
        })
        super().__init__(message, details=details, **kwargs)
