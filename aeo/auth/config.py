"""
Authentication Configuration

Settings for Supabase JWT validation and auth behavior.
"""

import os
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_admin_emails_from_env() -> list[str]:
    """Parse ADMIN_EMAILS env var as comma-separated string."""
    raw = os.getenv("ADMIN_EMAILS", "")
    return [email.strip().lower() for email in raw.split(",") if email.strip()]


class AuthConfig(BaseSettings):
    """Authentication configuration loaded from environment."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore", populate_by_name=True)

    supabase_url: str = ""
    supabase_jwt_secret: str = ""

    jwt_algorithm: str = "HS256"
    jwt_audience: str = "authenticated"

    # Set to False for local dev without auth
    auth_enabled: bool = True

    # Parsed by hand: BaseSettings would try to JSON-decode the comma list
    admin_emails: list[str] = Field(
        default_factory=list,
        validation_alias="__ADMIN_EMAILS_DO_NOT_AUTO_LOAD__",
    )

    @property
    def supabase_project_ref(self) -> Optional[str]:
        """https://abcdefg.supabase.co -> abcdefg"""
        if not self.supabase_url:
            return None
        return self.supabase_url.replace("https://", "").split(".")[0] or None

    @property
    def is_configured(self) -> bool:
        return bool(self.supabase_jwt_secret or self.supabase_url)


@lru_cache()
def get_auth_config() -> AuthConfig:
    """Get cached auth configuration."""
    config = AuthConfig(
        supabase_url=os.getenv("SUPABASE_URL", ""),
        supabase_jwt_secret=os.getenv("SUPABASE_JWT_SECRET", ""),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        auth_enabled=os.getenv("AUTH_ENABLED", "true").lower() == "true",
    )
    config.admin_emails = parse_admin_emails_from_env()
    return config
