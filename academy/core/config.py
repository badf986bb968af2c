from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Optional

from academy.core.rbac.roles import DEFAULT_CRITICAL_ROLES


class Settings(BaseSettings):
    # App
    app_name: str = "Academy Access Control"
    debug: bool = False

    # Logging
    log_level: str = "INFO"
    log_dir: str = "/var/log/academy"
    log_to_file: bool = False
    log_decision_trail: bool = False

    # Audit
    audit_buffer_size: int = 50
    decision_log_url: Optional[str] = None
    decision_log_timeout: float = 5.0

    # Route guards
    actor_wait_timeout: float = 1.5
    sign_in_path: str = "/login"
    routes_file: Optional[str] = None

    # Critical roles, comma separated
    critical_roles: str = ",".join(sorted(DEFAULT_CRITICAL_ROLES))

    @property
    def critical_roles_set(self) -> frozenset[str]:
        return frozenset(
            role.strip().lower() for role in self.critical_roles.split(",") if role.strip()
        )

    # Directory service
    permission_catalog_url: str = "http://localhost:3000/api"
    permission_catalog_timeout: float = 10.0

    # Database (decision log storage)
    database_url: str = "sqlite:///./decision_logs.db"

    model_config = SettingsConfigDict(
        env_prefix="ACADEMY_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"  # Allow extra env vars without raising validation errors
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
