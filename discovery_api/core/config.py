"""
Application configuration settings.

Central configuration module using Pydantic BaseSettings with environment variable support.
Loads from .env file and environment variables.
"""
import json
import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Union
from urllib.parse import quote_plus

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

env_path = Path(".env")
if env_path.exists():
    load_dotenv(dotenv_path=env_path)


NAMING_FACT = "Fact"
NAMING_MAC = "MAC-name"
NAMING_RANDOM = "Random-name"
NAMING_METHODS = (NAMING_FACT, NAMING_MAC, NAMING_RANDOM)


def _parse_list(v):
    """Accept a JSON array or a comma-separated string."""
    if isinstance(v, str):
        try:
            return json.loads(v)
        except json.JSONDecodeError:
            return [item.strip() for item in v.split(",") if item.strip()]
    return v


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # App settings
    APP_NAME: str = "Host Discovery"
    APP_ENV: str = Field(default="local")
    DEBUG: bool = Field(default=False)

    # Database settings - generic connection string (highest priority)
    DATABASE_URL: Optional[str] = Field(
        default=None,
        description="Database connection URL",
    )

    # Raw libpq-style vars
    PGUSER: Optional[str] = None
    PGPASSWORD: Optional[str] = None
    PGHOST: Optional[str] = None
    PGPORT: Optional[str] = None
    PGDATABASE: Optional[str] = None

    # Local docker-compose Postgres settings
    POSTGRES_USER: Optional[str] = None
    POSTGRES_PASSWORD: Optional[str] = None
    POSTGRES_HOST: Optional[str] = None
    POSTGRES_PORT: str = "5432"
    POSTGRES_DB: str = "host_discovery"

    @property
    def sqlalchemy_database_uri(self) -> str:
        """
        Build SQLAlchemy database URI with priority:
        1. DATABASE_URL
        2. PG* vars
        3. Local docker-compose Postgres (POSTGRES_*)
        4. SQLite (local development without Docker)
        """
        if self.DATABASE_URL:
            url = self.DATABASE_URL
            if url.startswith("postgres://"):
                url = url.replace("postgres://", "postgresql+psycopg2://", 1)
            return url

        if self.PGUSER and self.PGHOST and self.PGDATABASE:
            password = quote_plus(self.PGPASSWORD or "")
            port = self.PGPORT or "5432"
            return f"postgresql+psycopg2://{self.PGUSER}:{password}@{self.PGHOST}:{port}/{self.PGDATABASE}"

        if os.getenv("POSTGRES_HOST") and self.POSTGRES_USER and self.POSTGRES_PASSWORD:
            password = quote_plus(self.POSTGRES_PASSWORD)
            return (
                f"postgresql+psycopg2://"
                f"{self.POSTGRES_USER}:{password}@"
                f"{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
            )

        return "sqlite:///./host_discovery.db"

    # CORS settings
    CORS_ORIGINS: Union[str, List[str]] = Field(
        default='["http://localhost:3000", "http://localhost:8000"]',
    )

    @field_validator("CORS_ORIGINS")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS_ORIGINS from string or list."""
        return _parse_list(v)

    # Logging
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    LOG_DIR: str = Field(default="logs", description="Directory for the rotating log file")

    # API Authentication
    API_KEY: Optional[str] = Field(
        default=None,
        description="Static admin API key. Leave empty to disable authentication.",
    )

    # Taxonomies
    ORGANIZATIONS_ENABLED: bool = True
    LOCATIONS_ENABLED: bool = True

    # Discovery
    DISCOVERY_ORGANIZATION: str = Field(
        default="Default Organization",
        description="Organization assigned to newly discovered hosts",
    )
    DISCOVERY_LOCATION: str = Field(
        default="Default Location",
        description="Location assigned to newly discovered hosts",
    )
    DISCOVERY_FACT: str = Field(
        default="discovery_bootif",
        description="Fact holding the MAC address of the interface the host booted from",
    )
    DISCOVERY_HOSTNAME_FACTS: Union[str, List[str]] = Field(
        default='["discovery_bootif"]',
        description="Facts tried in order when naming hosts with the Fact naming method",
    )
    DISCOVERY_PREFIX: str = Field(default="mac", description="Prefix for discovered host names")
    DISCOVERY_NAMING: str = Field(default=NAMING_MAC, description="Fact, MAC-name or Random-name")
    DISCOVERY_AUTO: bool = Field(
        default=False,
        description="Automatically provision newly discovered hosts according to rules",
    )
    DISCOVERY_REBOOT: bool = Field(
        default=True,
        description="Reboot or kexec hosts after they are provisioned",
    )

    @field_validator("DISCOVERY_HOSTNAME_FACTS")
    @classmethod
    def parse_hostname_facts(cls, v):
        """Parse DISCOVERY_HOSTNAME_FACTS from string or list."""
        return _parse_list(v)

    @field_validator("DISCOVERY_NAMING")
    @classmethod
    def validate_naming(cls, v: str) -> str:
        if v not in NAMING_METHODS:
            raise ValueError(f"DISCOVERY_NAMING must be one of: {', '.join(NAMING_METHODS)}")
        return v

    # Node API (proxy running inside the discovery image)
    DISCOVERY_NODE_SCHEME: str = "https"
    DISCOVERY_NODE_PORT: int = 8443
    DISCOVERY_NODE_TIMEOUT: int = Field(default=10, description="Node API request timeout in seconds")
    DISCOVERY_NODE_VERIFY_SSL: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
