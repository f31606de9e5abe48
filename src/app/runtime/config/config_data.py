"""Pydantic models for parsing the config.yaml configuration file.

This module contains Pydantic models that correspond to the structure of config.yaml.
These models handle validation and type conversion of the YAML configuration data.
"""

from __future__ import annotations

import os
from typing import Literal

from loguru import logger
from pydantic import BaseModel, Field, computed_field, field_validator


class CORSConfig(BaseModel):
    """CORS configuration for the application."""

    origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:3030"]
    )
    allow_credentials: bool = True
    allow_methods: list[str] = Field(default=["GET", "POST", "OPTIONS"])
    allow_headers: list[str] = Field(default=["*"])


class RedisConfig(BaseModel):
    """Redis configuration model for the local session store."""

    enabled: bool = Field(default=False, description="Enable Redis session storage")
    url: str = Field(default="", description="Redis connection URL")
    password: str | None = Field(
        default=None, description="Password for Redis authentication"
    )
    decode_responses: bool = Field(
        default=True, description="Decode Redis responses to strings"
    )

    @computed_field
    @property
    def connection_string(self) -> str:
        """Construct the Redis connection string with password if provided."""
        if self.password:
            if "@" in self.url:
                # URL already has auth info
                return self.url
            parts = self.url.split("://", 1)
            if len(parts) == 2:
                scheme, rest = parts
                return f"{scheme}://:{self.password}@{rest}"
        return self.url


class LoggingConfig(BaseModel):
    """Logging configuration model."""

    level: str = Field(default="INFO", description="Logging level")
    format: Literal["json", "plain"] = Field(default="json", description="Log format")
    file: str | None = Field(default="logs/app.log", description="Log file path")
    max_size_mb: int = Field(default=10, description="Maximum log file size in MB")
    backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )


class DatabaseConfig(BaseModel):
    """Database configuration model.

    Pool defaults suit a single MariaDB instance: five pooled connections
    and a thirty second acquire/operation timeout.
    """

    url: str = Field(
        default="sqlite:///./database.db",
        description="Database connection URL (SQLAlchemy format)",
    )
    user: str | None = Field(
        default=None, description="Database username, overrides the URL user"
    )
    name: str | None = Field(
        default=None, description="Database name, overrides the URL database"
    )
    environment_mode: Literal["development", "production", "test"] = Field(
        default="development", description="Environment mode used for password lookup"
    )
    pool_size: int = Field(default=5, ge=1, description="Connection pool size")
    max_overflow: int = Field(default=0, ge=0, description="Maximum pool overflow")
    pool_timeout: int = Field(
        default=30, gt=0, description="Seconds to wait for a pooled connection"
    )
    operation_timeout: int = Field(
        default=30, gt=0, description="Per-operation driver timeout in seconds"
    )
    pool_recycle: int = Field(default=1800, description="Pool recycle time in seconds")
    echo: bool = Field(default=False, description="Echo SQL statements")
    password_env_var: str | None = Field(
        default=None,
        description="Environment variable name containing database password",
    )
    password_file: str | None = Field(
        default=None,
        description="Path to file containing database password",
    )

    @property
    def backend(self) -> str:
        """Return the SQLAlchemy backend name (sqlite, mysql, postgresql...)."""
        from sqlalchemy.engine import make_url

        return make_url(self.url).get_backend_name()

    @computed_field
    @property
    def password(self) -> str | None:
        """
        Get the database password from the appropriate source.
        1. A mounted secrets file named by `password_file`
        2. The environment variable named by `password_env_var`
        3. In development and test mode, the password embedded in the URL
        """
        if self.password_file:
            try:
                with open(self.password_file) as f:
                    return f.read().strip()
            except OSError as e:
                raise ValueError("Failed to read database password from file.") from e

        if self.password_env_var:
            password = os.getenv(self.password_env_var)
            if password:
                return password
            if self.environment_mode == "production":
                raise ValueError(
                    f"Environment variable {self.password_env_var} not set"
                )

        from sqlalchemy.engine import make_url

        url_password = make_url(self.url).password
        if url_password and self.environment_mode == "production":
            logger.warning(
                "Database URL contains a password in production mode; "
                "consider using a secrets file or environment variable."
            )
        return url_password

    @computed_field
    @property
    def connection_string(self) -> str:
        """Construct the database connection string with resolved credentials."""
        from sqlalchemy.engine import make_url

        base_url = make_url(self.url)
        if base_url.get_backend_name() == "sqlite":
            return str(base_url)

        if self.user and self.user != base_url.username:
            base_url = base_url.set(username=self.user)
        if self.name and self.name != base_url.database:
            base_url = base_url.set(database=self.name)

        resolved_password = self.password
        if resolved_password:
            base_url = base_url.set(password=resolved_password)

        # render_as_string keeps the password; str() would mask it
        return base_url.render_as_string(hide_password=False)


class RememberConfig(BaseModel):
    """Remember-me token configuration."""

    enabled: bool = Field(default=True, description="Offer the 'stay signed in' option")
    days: int = Field(default=30, ge=1, description="Token lifetime in calendar days")
    timezone: str = Field(
        default="UTC",
        description="Time zone whose calendar is used to add token lifetime days",
    )
    cookie_name: str = Field(default="remember_token", description="Cookie name")
    sweep_on_startup: bool = Field(
        default=True, description="Delete expired tokens when the store initializes"
    )
    sweep_interval_seconds: int = Field(
        default=3600,
        ge=0,
        description="Seconds between expiry sweeps (0 disables the recurring sweep)",
    )

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown time zone: {value}") from e
        return value


class AppConfig(BaseModel):
    """Application configuration model."""

    name: str = Field(default="Authentication Microservice", description="Service name")
    environment: Literal["development", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    host: str = Field(default="localhost", description="Application host")
    port: int = Field(default=3030, description="Application port")
    session_max_age: int = Field(
        default=3600, description="Session maximum age in seconds"
    )
    cors: CORSConfig = Field(
        default_factory=CORSConfig, description="CORS configuration"
    )

    @property
    def base_url(self) -> str:
        """Construct the base URL from host and port."""
        scheme = "https" if self.environment == "production" else "http"
        return f"{scheme}://{self.host}:{self.port}"


class SecurityConfig(BaseModel):
    """Security configuration for authentication and sessions."""

    secure_cookies: bool = Field(
        default=True, description="Force secure cookies in production"
    )
    cookie_samesite: Literal["lax", "strict", "none"] = Field(
        default="lax", description="SameSite cookie attribute"
    )
    session_cookie_name: str = Field(
        default="user_session_id", description="Local session cookie name"
    )
    auth_session_ttl_seconds: int = Field(
        default=600, description="Login intent TTL (10 minutes)"
    )
    allowed_redirect_hosts: list[str] = Field(
        default_factory=list,
        description="Allowed hosts for absolute return URLs (empty = relative only)",
    )


class ConfigData(BaseModel):
    """Root configuration model that matches the config.yaml structure."""

    app: AppConfig = Field(
        default_factory=AppConfig, description="Application configuration"
    )
    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig, description="Database configuration"
    )
    remember: RememberConfig = Field(
        default_factory=RememberConfig, description="Remember-me configuration"
    )
    redis: RedisConfig = Field(
        default_factory=RedisConfig, description="Redis configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    security: SecurityConfig = Field(
        default_factory=SecurityConfig, description="Security configuration"
    )
