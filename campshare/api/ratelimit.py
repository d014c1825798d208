"""
Per-client request throttling.

Every request draws from a general budget. Login and registration have a tighter budget that only
failed attempts count against, so a client that keeps guessing passwords is locked out while
normal sign-ins are unaffected.
"""
import logging

from fastapi import Request
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter

from campshare.services.errors import ServiceError, TooManyRequests

logger = logging.getLogger(__name__)

API_LIMIT_MESSAGE = "Too many requests from this IP, please try again in a few minutes."
AUTH_LIMIT_MESSAGE = "Too many authentication attempts, please try again in a few minutes."


def client_address(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class RateLimiter:
    """Moving-window limits kept in process memory, keyed by client address."""

    def __init__(self, api_limit="100/15minutes", auth_limit="5/15minutes", enabled=True):
        self.enabled = enabled
        self.api_limit = parse(api_limit)
        self.auth_limit = parse(auth_limit)
        self.strategy = MovingWindowRateLimiter(MemoryStorage())

    def hit_api(self, request: Request) -> bool:
        """Count one request; False once the client has used up its budget."""
        if not self.enabled:
            return True
        allowed = self.strategy.hit(self.api_limit, "api", client_address(request))
        if not allowed:
            logger.warning(f"Rate limit exceeded by {client_address(request)} on {request.url.path}")
        return allowed

    def check_auth(self, request: Request):
        if self.enabled and not self.strategy.test(self.auth_limit, "auth", client_address(request)):
            logger.warning(f"Too many failed authentication attempts from {client_address(request)}")
            raise TooManyRequests(AUTH_LIMIT_MESSAGE)

    def record_auth_failure(self, request: Request):
        if self.enabled:
            self.strategy.hit(self.auth_limit, "auth", client_address(request))


class AuthAttempt:
    """Wraps a login or registration; a ServiceError raised inside counts as a failed attempt."""

    def __init__(self, limiter: RateLimiter, request: Request):
        self.limiter = limiter
        self.request = request

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is not None and issubclass(exc_type, ServiceError):
            self.limiter.record_auth_failure(self.request)
        return False


def auth_attempt(request: Request) -> AuthAttempt:
    limiter = request.app.state.rate_limiter
    limiter.check_auth(request)
    return AuthAttempt(limiter, request)
