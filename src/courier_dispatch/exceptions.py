"""
Error taxonomy for the dispatch workers.

Every error carries a stable error code so log lines and the admin API
report failures consistently.
"""

from typing import Any, Dict


class DispatchError(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ProviderUnavailableError(DispatchError):
    """Raised by a geocoding or routing provider tier that could not answer."""

    def __init__(self, provider: str, reason: str):
        super().__init__(
            message=f"{provider} unavailable: {reason}",
            error_code="ERR_PROVIDER_001",
            status_code=503,
            details={"provider": provider},
        )
        self.provider = provider


class GeocodingError(DispatchError):
    """Raised when no coordinate can be produced for an address."""

    def __init__(self, address: str, reason: str = "no provider returned a coordinate"):
        super().__init__(
            message=f"Could not geocode '{address}': {reason}",
            error_code="ERR_GEOCODE_001",
            status_code=422,
            details={"address": address},
        )


class RouteMatchingError(DispatchError):
    """Raised when a delivery cannot be matched to, or create, a route."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(message=message, error_code="ERR_ROUTE_001", status_code=500, details=details)


class ResourceNotFoundError(DispatchError):
    """Raised when a referenced order, billing record or party is missing."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=404,
            details={"resource": resource, "id": resource_id},
        )


class MessageValidationError(DispatchError):
    """Raised when a queue message body cannot be parsed into a known shape."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(message=message, error_code="ERR_VALIDATION", status_code=422, details=details)


class TransientTransportError(DispatchError):
    """Raised when the queue backend cannot be reached or is throttling."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="ERR_TRANSPORT_001", status_code=503)


class WorkerNotFoundError(DispatchError):
    """Raised for an unknown worker or queue name."""

    def __init__(self, name: str, kind: str = "Worker"):
        super().__init__(
            message=f"{kind} not found: {name}",
            error_code="ERR_NOT_FOUND_002",
            status_code=404,
            details={kind.lower(): name},
        )
