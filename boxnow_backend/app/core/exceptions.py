"""
BoxNow Bridge Exception Hierarchy

All exceptions include code, message, and details so they can be logged and
rendered to clients in one consistent shape.

Exception Hierarchy:
    BoxNowBaseError
    ├── ConfigurationError
    ├── OrderValidationError
    ├── OrderNotFoundError
    ├── OrderExistsError
    ├── CarrierError
    │   ├── CarrierAPIError
    │   ├── CarrierAuthError
    │   └── CarrierNetworkError
    └── PaymentError
"""
import logging
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)


class BoxNowBaseError(Exception):
    """
    Base exception for all service errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code for programmatic handling
        details: Additional context for debugging
        status_code: HTTP status used when the error reaches a route
    """

    default_code: str = "BOXNOW_BRIDGE_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class ConfigurationError(BoxNowBaseError):
    """Required configuration (base URL, credentials, API keys) is missing."""
    default_code = "CONFIGURATION_ERROR"
    status_code = 500


# =============================================================================
# ORDER ERRORS
# =============================================================================

class OrderValidationError(BoxNowBaseError):
    """Inbound order is missing fields or has an unusable weight."""
    default_code = "ORDER_VALIDATION_FAILED"
    status_code = 400


class OrderNotFoundError(BoxNowBaseError):
    default_code = "ORDER_NOT_FOUND"
    status_code = 404


class OrderExistsError(BoxNowBaseError):
    default_code = "ORDER_EXISTS"
    status_code = 409


# =============================================================================
# CARRIER ERRORS
# =============================================================================

class CarrierError(BoxNowBaseError):
    """Base exception for BoxNow API failures."""
    default_code = "CARRIER_ERROR"
    status_code = 502


class CarrierAPIError(CarrierError):
    """
    BoxNow answered with a non-2xx status.

    The raw body is kept untouched so routes can relay it verbatim.
    """
    default_code = "CARRIER_API_ERROR"

    def __init__(
        self,
        message: str,
        status_code: int,
        body: bytes = b"",
        content_type: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        details["status"] = status_code
        super().__init__(message, details=details, **kwargs)
        self.status_code = status_code
        self.body = body
        self.content_type = content_type or "application/json"

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class CarrierAuthError(CarrierError):
    """Credential exchange was rejected. Not cached, not retried."""
    default_code = "CARRIER_AUTH_FAILED"


class CarrierNetworkError(CarrierError):
    """Transport failure talking to BoxNow (DNS, connect, timeout)."""
    default_code = "CARRIER_NETWORK_ERROR"


# =============================================================================
# PAYMENT ERRORS
# =============================================================================

class PaymentError(BoxNowBaseError):
    """Payment provider rejected the request."""
    default_code = "PAYMENT_ERROR"
    status_code = 502

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[Dict[str, Any]] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        if status_code:
            self.status_code = status_code
        self.body = body or {}
