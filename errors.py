"""Exceptions raised by the catalog cleanup operations."""
from typing import Any, Dict, Optional


class CleanupError(Exception):
    """Base class for errors surfaced to the operator."""
    status_code = 500
    error_code = "cleanup_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            'error': self.error_code,
            'message': self.message
        }
        if self.details:
            payload['details'] = self.details
        return payload


class AuthorizationError(CleanupError):
    """Operator lacks the capability required to run catalog maintenance."""
    status_code = 403
    error_code = "forbidden"


class InvalidActionTokenError(CleanupError):
    """One-time action token missing, expired, reused or issued for another action."""
    status_code = 403
    error_code = "invalid_action_token"


class PreconditionError(CleanupError):
    """The catalog backend is not configured or not reachable."""
    status_code = 503
    error_code = "catalog_unavailable"


class CatalogHostError(Exception):
    """A single call into the catalog backend failed."""

    def __init__(self, message: str, product_id: Any = None):
        super().__init__(message)
        self.product_id = product_id
