"""
Monitoring and Tracing Configuration Module.

Optional Logfire integration for tracing capability executions:
- one span per `execute_task` / `execute_tasks` call
- one span per batched GraphQL phase
- automatic HTTPX instrumentation of the GraphQL and REST transports

Tracing stays off unless `LOGFIRE_ENABLED` is true and a `LOGFIRE_TOKEN` is
configured; `trace_span` is then a no-op context manager.
"""

import contextlib
import logging
from typing import Any, ContextManager, Optional

import logfire

from capability_router.core.config import RouterSettings, settings

logger = logging.getLogger(__name__)

_initialized = False


def initialize_monitoring(config: Optional[RouterSettings] = None) -> bool:
    """
    Initialize Logfire for monitoring and tracing.

    Args:
        config: Settings to read Logfire options from; defaults to the module settings.

    Returns:
        True when Logfire was configured and spans will be emitted.
    """
    global _initialized
    cfg = config or settings
    if not cfg.logfire_enabled:
        logger.info("Logfire monitoring is disabled. Set LOGFIRE_ENABLED=true to enable.")
        return False

    if not cfg.logfire_token:
        logger.warning(
            "Logfire is enabled but LOGFIRE_TOKEN is not set. "
            "Monitoring will not work. Set LOGFIRE_TOKEN to enable Logfire."
        )
        return False

    try:
        logfire.configure(
            token=cfg.logfire_token,
            service_name=cfg.logfire_service_name,
            environment=cfg.logfire_environment,
        )
        logfire.instrument_httpx()
    except Exception as e:
        logger.error(f"Failed to initialize Logfire: {e}", exc_info=True)
        return False

    _initialized = True
    logger.info(
        f"Logfire monitoring initialized: environment={cfg.logfire_environment}, service={cfg.logfire_service_name}"
    )
    return True


def is_monitoring_enabled() -> bool:
    return _initialized


def trace_span(name: str, **attributes: Any) -> ContextManager[Any]:
    """Return a Logfire span when monitoring is initialized, else a null context."""
    if not _initialized:
        return contextlib.nullcontext()
    return logfire.span(name, **attributes)
