"""Configuration — HANA connection parameters and server options.

Values are read once from the environment (and an optional ``.env`` file)
when :func:`get_settings` is first called; they are not reconfigurable at
runtime.
"""

from __future__ import annotations

import os
from enum import Enum
from functools import lru_cache
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL, make_url

NOT_SET = "NOT SET"
HIDDEN = "SET (hidden)"

# Environment variables surfaced by ``hana_show_env_vars``.
HANA_ENV_VARS = (
    "HANA_HOST",
    "HANA_PORT",
    "HANA_USER",
    "HANA_PASSWORD",
    "HANA_SCHEMA",
    "HANA_INSTANCE_NUMBER",
    "HANA_DATABASE_NAME",
    "HANA_CONNECTION_TYPE",
    "HANA_SSL",
    "HANA_ENCRYPT",
    "HANA_VALIDATE_CERT",
    "HANA_URL",
)
_SECRET_ENV_VARS = frozenset({"HANA_PASSWORD", "HANA_URL"})


class DatabaseType(str, Enum):
    """HANA deployment flavour, decides which connection parameters apply."""

    SINGLE_CONTAINER = "single_container"
    MDC_SYSTEM = "mdc_system"
    MDC_TENANT = "mdc_tenant"


class HanaSettings(BaseSettings):
    """Connection settings for the downstream HANA database."""

    model_config = SettingsConfigDict(
        env_prefix="HANA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    host: str = ""
    port: int = 443
    user: str = ""
    password: str = ""
    default_schema: str = Field(
        default="",
        validation_alias=AliasChoices("HANA_SCHEMA", "default_schema"),
        description="Schema used when a tool call does not name one.",
    )
    instance_number: str = ""
    database_name: str = ""
    connection_type: Literal["auto", "single_container", "mdc_system", "mdc_tenant"] = "auto"
    ssl: bool = True
    encrypt: bool = True
    validate_cert: bool = True
    url: str = Field(
        default="",
        description="Full SQLAlchemy URL; overrides the component settings when set.",
    )

    @property
    def database_type(self) -> DatabaseType:
        """Explicit connection type, or one inferred from the instance/database settings."""
        if self.connection_type != "auto":
            return DatabaseType(self.connection_type)
        if self.instance_number and self.database_name:
            return DatabaseType.MDC_TENANT
        if self.instance_number:
            return DatabaseType.MDC_SYSTEM
        return DatabaseType.SINGLE_CONTAINER

    def is_configured(self) -> bool:
        """Whether enough is known to attempt a connection."""
        if self.url:
            return True
        return bool(self.host and self.user and self.password)

    def validation_errors(self) -> list[str]:
        """Return human-readable configuration problems (empty when valid)."""
        if self.url:
            return []

        errors: list[str] = []
        if not self.host:
            errors.append("HANA_HOST is required")
        if not self.user:
            errors.append("HANA_USER is required")
        if not self.password:
            errors.append("HANA_PASSWORD is required")

        db_type = self.database_type
        if db_type is DatabaseType.MDC_TENANT:
            if not self.instance_number:
                errors.append("HANA_INSTANCE_NUMBER is required for MDC Tenant Database")
            if not self.database_name:
                errors.append("HANA_DATABASE_NAME is required for MDC Tenant Database")
        elif db_type is DatabaseType.MDC_SYSTEM:
            if not self.instance_number:
                errors.append("HANA_INSTANCE_NUMBER is required for MDC System Database")
        elif not self.default_schema:
            errors.append("HANA_SCHEMA is recommended for Single-Container Database")
        return errors

    def connection_url(self) -> URL:
        """Build the SQLAlchemy URL for the configured database."""
        if self.url:
            return make_url(self.url)

        database = (
            self.database_name if self.database_type is DatabaseType.MDC_TENANT else None
        )
        return URL.create(
            "hana",
            username=self.user,
            password=self.password,
            host=self.host,
            port=self.port,
            database=database,
            query={
                "encrypt": _flag(self.encrypt),
                "sslValidateCertificate": _flag(self.validate_cert),
            },
        )

    def display_config(self) -> dict[str, Any]:
        """Configuration snapshot with secrets masked."""
        return {
            "databaseType": self.database_type.value,
            "connectionType": self.connection_type,
            "host": self.host or NOT_SET,
            "port": self.port,
            "user": self.user or NOT_SET,
            "password": HIDDEN if self.password else NOT_SET,
            "schema": self.default_schema or NOT_SET,
            "instanceNumber": self.instance_number or NOT_SET,
            "databaseName": self.database_name or NOT_SET,
            "ssl": self.ssl,
            "encrypt": self.encrypt,
            "validateCert": self.validate_cert,
            "url": HIDDEN if self.url else NOT_SET,
        }


def environment_vars(environ: dict[str, str] | None = None) -> dict[str, str]:
    """Return the raw HANA environment variables, masking secrets."""
    env = os.environ if environ is None else environ
    result: dict[str, str] = {}
    for name in HANA_ENV_VARS:
        value = env.get(name)
        if not value:
            result[name] = NOT_SET
        elif name in _SECRET_ENV_VARS:
            result[name] = HIDDEN
        else:
            result[name] = value
    return result


class ServerSettings(BaseSettings):
    """Transport selection and listener options."""

    model_config = SettingsConfigDict(
        env_prefix="MCP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    transport: Literal["stdio", "http"] = "http"
    host: str = "0.0.0.0"
    port: int = 3000
    public_url: str = Field(
        default="",
        description="Base URL announced to push-stream clients (defaults to localhost).",
    )
    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("LOG_LEVEL", "log_level"),
    )

    @field_validator("transport", mode="before")
    @classmethod
    def _lower_transport(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.strip().upper()

    def endpoint_url(self) -> str:
        """URL of the unary JSON-RPC endpoint, as announced on the SSE stream."""
        base = self.public_url or f"http://localhost:{self.port}"
        return base.rstrip("/") + "/mcp"


class Settings(BaseModel):
    """Aggregate of all settings groups."""

    hana: HanaSettings = Field(default_factory=HanaSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from the environment once and cache them."""
    return Settings()


def _flag(value: bool) -> str:
    return "true" if value else "false"
