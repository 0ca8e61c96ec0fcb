"""
slowapi rate limiter instance.
Import `limiter` into routers and decorate endpoints with @limiter.limit("N/period").

IMPORTANT: Every rate-limited endpoint MUST have `request: Request` as a parameter
(slowapi needs it to extract the client IP). The @limiter.limit decorator must be
placed BELOW the @router.xxx decorator, not above it.

The login and verify-otp limits are what make the 6-digit OTP space
impractical to brute-force within its 5-minute window.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from umurava.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    # Default limit applied to ALL endpoints unless overridden.
    # Individual endpoints can override with their own @limiter.limit() decorator.
    default_limits=[settings.rate_limit_default],
    enabled=settings.rate_limit_enabled,
)

# Shared by register / login / verify-otp
AUTH_LIMIT = settings.rate_limit_auth
