"""
Core utilities and configuration for the capability router.

This package provides settings, logging configuration and optional tracing.
"""

from capability_router.core.config import RouterSettings, settings
from capability_router.core.logging_config import get_logger, setup_logging
from capability_router.core.monitoring import initialize_monitoring, trace_span

__all__ = ["RouterSettings", "get_logger", "initialize_monitoring", "settings", "setup_logging", "trace_span"]
