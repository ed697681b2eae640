"""Sync configuration from environment variables."""

import logging
from typing import Optional, List

from pydantic import field_validator
from pydantic_settings import BaseSettings
from sqlalchemy.engine import URL, make_url

from rolesync.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_PURGE_AGE_IN_DAYS = 7


class Settings(BaseSettings):
    """Sync settings loaded from environment variables."""

    # App
    APP_NAME: str = "rolesync"
    DEBUG: bool = False
    DRY_RUN: bool = False

    # LDAP
    LDAP_HOST: Optional[str] = None
    LDAP_PORT: int = 389
    LDAP_USERNAME: Optional[str] = None
    LDAP_PASSWORD: Optional[str] = None
    LDAP_USE_SSL: bool = False
    LDAP_CONNECT_TIMEOUT: int = 10

    # Search bases
    ROLES_SEARCH_BASE: str = (
        "cn=RoleDefs,cn=RoleConfig,cn=AppConfig,cn=UserApplication,cn=DriverSet,o=System"
    )
    RESOURCES_SEARCH_BASE: str = (
        "cn=ResourceDefs,cn=RoleConfig,cn=AppConfig,cn=UserApplication,cn=DriverSet,o=System"
    )
    ASSOCIATIONS_SEARCH_BASE: str = (
        "cn=ResourceAssociations,cn=RoleConfig,cn=AppConfig,cn=UserApplication,cn=DriverSet,o=System"
    )

    # PostgreSQL
    DB_HOST: Optional[str] = None
    DB_PORT: int = 5432
    DBUSER: Optional[str] = None
    DB_PASSWORD: Optional[str] = None
    DB_DATABASE: str = "idm_rolemanagement_prod"
    DATABASE_URL: Optional[str] = None

    # Lifecycle
    PURGE_AGE_IN_DAYS: int = DEFAULT_PURGE_AGE_IN_DAYS
    LIFECYCLE_SKIP_FAILED: bool = False

    # Debugging
    RAW_DUMP_DIR: Optional[str] = None

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"

    @field_validator("PURGE_AGE_IN_DAYS", mode="before")
    @classmethod
    def _fallback_purge_age(cls, value):
        if value is None or value == "":
            return DEFAULT_PURGE_AGE_IN_DAYS
        try:
            days = int(value)
        except (TypeError, ValueError):
            logger.warning(
                "Invalid PURGE_AGE_IN_DAYS %r, using default %d",
                value,
                DEFAULT_PURGE_AGE_IN_DAYS,
            )
            return DEFAULT_PURGE_AGE_IN_DAYS
        if days < 0:
            logger.warning(
                "Negative PURGE_AGE_IN_DAYS %d, using default %d",
                days,
                DEFAULT_PURGE_AGE_IN_DAYS,
            )
            return DEFAULT_PURGE_AGE_IN_DAYS
        return days

    def missing_ldap_settings(self) -> List[str]:
        required = {
            "LDAP_HOST": self.LDAP_HOST,
            "LDAP_USERNAME": self.LDAP_USERNAME,
            "LDAP_PASSWORD": self.LDAP_PASSWORD,
        }
        return [name for name, value in required.items() if not value]

    def missing_database_settings(self) -> List[str]:
        if self.DATABASE_URL:
            return []
        required = {
            "DB_HOST": self.DB_HOST,
            "DBUSER": self.DBUSER,
            "DB_PASSWORD": self.DB_PASSWORD,
        }
        return [name for name, value in required.items() if not value]

    def validate_required(self, dry_run: Optional[bool] = None) -> None:
        """Raise ConfigurationError when required variables are missing.

        The database variables are only required when the run writes to the
        store, i.e. outside of dry-run mode.
        """
        dry_run = self.DRY_RUN if dry_run is None else dry_run
        missing = self.missing_ldap_settings()
        if missing:
            raise ConfigurationError(
                f"Missing LDAP configuration: {', '.join(missing)}"
            )
        if not dry_run:
            missing = self.missing_database_settings()
            if missing:
                raise ConfigurationError(
                    f"Missing database configuration: {', '.join(missing)}"
                )

    @property
    def database_url(self) -> URL:
        """SQLAlchemy URL for the reconciliation store."""
        if self.DATABASE_URL:
            return make_url(self.DATABASE_URL)
        return URL.create(
            "postgresql+psycopg2",
            username=self.DBUSER,
            password=self.DB_PASSWORD,
            host=self.DB_HOST,
            port=self.DB_PORT,
            database=self.DB_DATABASE,
        )


def get_settings() -> Settings:
    """Load settings from the current environment."""
    return Settings()
