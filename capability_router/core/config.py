"""
Configuration Settings.

This module defines the router configuration using Pydantic's BaseSettings.
It automatically loads all configuration from environment variables and .env file
without explicit dotenv loading.
"""

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RouterSettings(BaseSettings):
    """
    Capability router settings model.

    All properties are automatically bound from environment variables and .env file.
    Pydantic's BaseSettings handles dotenv loading automatically via model_config.
    """

    # =====================================================================
    # Pydantic Configuration
    # =====================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
        populate_by_name=True,
    )

    # =====================================================================
    # Credentials
    # =====================================================================
    github_token: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GITHUB_TOKEN", "GH_TOKEN", "github_token"),
        description="Token sent to the GraphQL and REST transports",
    )

    # =====================================================================
    # Transport Endpoints
    # =====================================================================
    graphql_url: str = Field(
        default="https://api.github.com/graphql",
        alias="CAPABILITY_ROUTER_GRAPHQL_URL",
        description="Structured-query (GraphQL) endpoint URL",
    )
    rest_base_url: str = Field(
        default="https://api.github.com",
        alias="CAPABILITY_ROUTER_REST_BASE_URL",
        description="Base URL of the hypertext REST API",
    )
    cli_binary: str = Field(
        default="gh",
        alias="CAPABILITY_ROUTER_CLI_BINARY",
        description="Executable used by the subprocess transport",
    )

    # =====================================================================
    # Timeouts and Limits
    # =====================================================================
    request_timeout_seconds: float = Field(
        default=10.0,
        ge=0.1,
        le=120.0,
        alias="CAPABILITY_ROUTER_REQUEST_TIMEOUT_SECONDS",
        description="Per-request timeout in seconds for HTTP transports",
    )
    cli_timeout_seconds: float = Field(
        default=10.0,
        ge=0.1,
        le=300.0,
        alias="CAPABILITY_ROUTER_CLI_TIMEOUT_SECONDS",
        description="Per-invocation timeout in seconds for subprocess calls",
    )
    cli_probe_timeout_seconds: float = Field(
        default=1.5,
        ge=0.1,
        le=30.0,
        alias="CAPABILITY_ROUTER_CLI_PROBE_TIMEOUT_SECONDS",
        description="Timeout in seconds for the CLI availability probe",
    )
    cli_max_output_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=1024,
        alias="CAPABILITY_ROUTER_CLI_MAX_OUTPUT_BYTES",
        description="Upper bound on combined stdout+stderr of one subprocess call",
    )
    preflight_ttl_seconds: float = Field(
        default=30.0,
        ge=0.0,
        alias="CAPABILITY_ROUTER_PREFLIGHT_TTL_SECONDS",
        description="How long a transport availability probe stays cached",
    )

    # =====================================================================
    # Retry Policy
    # =====================================================================
    max_attempts_per_route: int = Field(
        default=2,
        ge=1,
        le=10,
        alias="CAPABILITY_ROUTER_MAX_ATTEMPTS_PER_ROUTE",
        description="Adapter invocations per route before falling through",
    )
    retry_backoff_seconds: float = Field(
        default=0.0,
        ge=0.0,
        alias="CAPABILITY_ROUTER_RETRY_BACKOFF_SECONDS",
        description="Initial sleep between retries of a retryable failure (0 disables)",
    )
    retry_backoff_factor: float = Field(
        default=2.0,
        ge=1.0,
        alias="CAPABILITY_ROUTER_RETRY_BACKOFF_FACTOR",
        description="Multiplier applied to the backoff after each retry",
    )

    # =====================================================================
    # Logging and Monitoring
    # =====================================================================
    log_level: str = Field(
        default="INFO",
        alias="CAPABILITY_ROUTER_LOG_LEVEL",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_format: str = Field(
        default="detailed",
        alias="CAPABILITY_ROUTER_LOG_FORMAT",
        description="Log format (simple, detailed, json)",
    )
    enable_file_logging: bool = Field(
        default=False,
        alias="CAPABILITY_ROUTER_ENABLE_FILE_LOGGING",
        description="Also write logs to a file under log_file_dir",
    )
    log_file_dir: str = Field(
        default="logs",
        alias="CAPABILITY_ROUTER_LOG_FILE_DIR",
        description="Directory for the log file when file logging is enabled",
    )
    logfire_enabled: bool = Field(
        default=False,
        alias="LOGFIRE_ENABLED",
        description="Enable Logfire tracing of engine calls and HTTP transports",
    )
    logfire_token: Optional[str] = Field(
        default=None,
        alias="LOGFIRE_TOKEN",
        description="Logfire write token",
    )
    logfire_service_name: str = Field(
        default="capability-router",
        alias="LOGFIRE_SERVICE_NAME",
        description="Service name reported to Logfire",
    )
    logfire_environment: str = Field(
        default="development",
        alias="LOGFIRE_ENVIRONMENT",
        description="Deployment environment reported to Logfire",
    )


settings = RouterSettings()
