"""
Authentication Package

Supabase JWT validation, local user sync, FastAPI dependencies and
per-user rate limits.
"""

from aeo.auth.config import AuthConfig, get_auth_config
from aeo.auth.jwt import JWTError, extract_user_info, verify_supabase_token
from aeo.auth.dependencies import get_current_user, require_admin
from aeo.auth.rate_limit import RATE_LIMITS, SlidingWindowLimiter, limiter, rate_limit
from aeo.auth.sync import sync_user_from_token

__all__ = [
    "AuthConfig",
    "get_auth_config",
    "JWTError",
    "verify_supabase_token",
    "extract_user_info",
    "get_current_user",
    "require_admin",
    "sync_user_from_token",
    "RATE_LIMITS",
    "SlidingWindowLimiter",
    "limiter",
    "rate_limit",
]
