"""
Core Module
===========

Shared plumbing for the orchestrator:
- Process runner: bounded, never-raising subprocess execution
- Configuration: environment-driven settings
- Logging: structured logging with context propagation
- Exceptions: typed exception hierarchy
"""

__all__ = [
    # Process runner
    "CommandOutcome",
    "CommandRunner",
    "ProcessRunner",
    "run_command",
    # Configuration
    "Settings",
    "get_settings",
    "load_settings",
    # Logging
    "configure_logging",
    "set_correlation_id",
    "log_context",
    "Timer",
    "timed",
    # Exceptions
    "WorkbenchError",
    "ConfigurationError",
    "is_retryable",
]


def __getattr__(name):
    """Lazy imports so importing the package does not pull in pydantic."""
    if name in ("CommandOutcome", "CommandRunner", "ProcessRunner", "run_command"):
        from . import safe_subprocess as _safe_subprocess

        return getattr(_safe_subprocess, name)
    elif name in ("Settings", "get_settings", "load_settings"):
        from . import config as _config

        return getattr(_config, name)
    elif name in (
        "configure_logging",
        "set_correlation_id",
        "log_context",
        "Timer",
        "timed",
    ):
        from . import logging as _logging

        return getattr(_logging, name)
    elif name in ("WorkbenchError", "ConfigurationError", "is_retryable"):
        from . import exceptions as _exceptions

        return getattr(_exceptions, name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
