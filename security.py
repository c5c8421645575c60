"""Security module for operator authorization and one-time action tokens."""
import time
import secrets
import logging
import threading
from functools import wraps
from typing import Callable, Dict, Optional, Tuple

from flask import current_app, g
from flask_jwt_extended import get_jwt, get_jwt_identity, verify_jwt_in_request

from errors import AuthorizationError, InvalidActionTokenError

logger = logging.getLogger(__name__)

ACTION_TOKEN_HEADER = 'X-Action-Token'


def has_capability(claims: Dict, capability: str) -> bool:
    """Check the capability list (or admin flag) carried by a token."""
    if claims.get('is_admin'):
        return True
    capabilities = claims.get('capabilities') or []
    return capability in capabilities


def require_capability(capability: Optional[str] = None):
    """
    Decorator to require a JWT carrying a catalog management capability.

    Usage:
        @bp.route('/duplicates', methods=['POST'])
        @require_capability()
        def run_cleanup():
            ...
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            verify_jwt_in_request()
            required = capability or current_app.config.get('CLEANUP_CAPABILITY', 'manage_catalog')
            if not has_capability(get_jwt(), required):
                logger.warning(f"User {get_jwt_identity()} denied: capability '{required}' required")
                raise AuthorizationError(f"Capability '{required}' required")
            g.operator = str(get_jwt_identity())
            return f(*args, **kwargs)

        return decorated_function
    return decorator


class ActionTokenStore:
    """One-time tokens guarding the mutating actions against replay.

    A token is bound to an action and to the operator it was issued to, and
    can be consumed exactly once before it expires. Tokens live in process
    memory and are only valid in the worker process that issued them.
    """

    def __init__(self, ttl_seconds: int = 900, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._tokens: Dict[str, Tuple[str, str, float]] = {}
        self._lock = threading.Lock()

    def issue(self, action: str, subject: str) -> str:
        token = secrets.token_urlsafe(32)
        expires_at = self.clock() + self.ttl_seconds
        with self._lock:
            self._purge_expired()
            self._tokens[token] = (action, subject, expires_at)
        return token

    def consume(self, token: Optional[str], action: str, subject: str) -> None:
        """Validate and invalidate a token, raising InvalidActionTokenError if it is not usable."""
        if not token:
            raise InvalidActionTokenError("Action token required")

        with self._lock:
            entry = self._tokens.pop(token, None)

        if entry is None:
            raise InvalidActionTokenError("Action token is unknown or was already used")

        token_action, token_subject, expires_at = entry
        if expires_at < self.clock():
            raise InvalidActionTokenError("Action token expired")
        if token_action != action or token_subject != subject:
            raise InvalidActionTokenError("Action token was issued for another action")

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)

    def _purge_expired(self) -> None:
        now = self.clock()
        expired = [token for token, (_, _, expires_at) in self._tokens.items() if expires_at < now]
        for token in expired:
            del self._tokens[token]
