"""
Settings schema.

``Settings`` is the frozen runtime artifact.  The loader builds it from an
optional YAML file and the process environment; nothing else reads either.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_DATABASE_URL = "sqlite:///./data/stock.db"
DEFAULT_ALERT_DAYS = 30


@dataclass(frozen=True)
class Settings:
    """Service configuration."""

    database_url: str = DEFAULT_DATABASE_URL
    # Near-expiry horizon for the alert report, in days
    alert_days: int = DEFAULT_ALERT_DAYS
    jwt_secret: str = "dev-secret-change-me"
    jwt_expires_in_seconds: int = 3600
    # When set, bearer tokens are checked by this external endpoint
    auth_validate_url: str | None = None
    auth_validate_timeout: float = 3.0
    auth_demo_user: str = "admin"
    auth_demo_pass: str = "password"
    host: str = "0.0.0.0"
    port: int = 3003
    log_level: str = "INFO"
    sql_echo: bool = False
    service_name: str = "stock-application-service"

    @property
    def uses_delegated_auth(self) -> bool:
        return bool(self.auth_validate_url)
