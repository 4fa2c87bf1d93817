"""
Configuration for the workflow orchestrator.

Settings are read from ``AGENT_WORKBENCH_*`` environment variables and an
optional ``.env`` file in the working directory.

Example:
    >>> from agent_workbench.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.probe_timeout
    2.0

Environment variables (all optional):
    AGENT_WORKBENCH_GIT_EXECUTABLE        git binary (default: git)
    AGENT_WORKBENCH_GH_EXECUTABLE         gh binary; auto-detected when unset
    AGENT_WORKBENCH_REMOTE_NAME           remote used for push/compare (default: origin)
    AGENT_WORKBENCH_FALLBACK_DEFAULT_BRANCH
    AGENT_WORKBENCH_COMMIT_MESSAGE        commit-and-push message
    AGENT_WORKBENCH_PR_COMMIT_MESSAGE     message for the pre-PR commit
    AGENT_WORKBENCH_BRANCH_PREFIX         prefix for branches created off default
    AGENT_WORKBENCH_CREATE_BRANCH_IF_ON_DEFAULT
    AGENT_WORKBENCH_PROBE_TIMEOUT         seconds per CLI probe (default: 2)
    AGENT_WORKBENCH_GIT_TIMEOUT           seconds per git/gh call (default: unbounded)
    AGENT_WORKBENCH_MAX_OUTPUT_BYTES      per-stream capture limit
    AGENT_WORKBENCH_PROBE_PARALLEL        probe catalog entries concurrently
    AGENT_WORKBENCH_PROVIDER_CATALOG_FILE YAML file with extra CLI definitions
    AGENT_WORKBENCH_LOG_LEVEL             DEBUG/INFO/WARNING/ERROR
    AGENT_WORKBENCH_STRUCTURED_LOGS       emit JSON log lines
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError, ErrorContext
from .logging import parse_level
from .safe_subprocess import MAX_OUTPUT_SIZE

ENV_PREFIX = "AGENT_WORKBENCH_"

DEFAULT_COMMIT_MESSAGE = "chore: apply workspace changes"
DEFAULT_PR_COMMIT_MESSAGE = "chore: prepare pull request"
DEFAULT_BRANCH_PREFIX = "orch"
DEFAULT_FALLBACK_BRANCH = "main"
DEFAULT_PROBE_TIMEOUT = 2.0


class Settings(BaseSettings):
    """Runtime settings."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    git_executable: str = "git"
    gh_executable: str | None = None
    remote_name: str = "origin"
    fallback_default_branch: str = DEFAULT_FALLBACK_BRANCH

    commit_message: str = DEFAULT_COMMIT_MESSAGE
    pr_commit_message: str = DEFAULT_PR_COMMIT_MESSAGE
    branch_prefix: str = DEFAULT_BRANCH_PREFIX
    create_branch_if_on_default: bool = True

    probe_timeout: float = Field(default=DEFAULT_PROBE_TIMEOUT, gt=0)
    git_timeout: float | None = Field(default=None, gt=0)
    max_output_bytes: int = Field(default=MAX_OUTPUT_SIZE, gt=0)
    probe_parallel: bool = False
    provider_catalog_file: Path | None = None

    log_level: str = "WARNING"
    structured_logs: bool = False

    @field_validator("git_executable", "remote_name", "fallback_default_branch")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("branch_prefix")
    @classmethod
    def _clean_prefix(cls, value: str) -> str:
        value = value.strip().strip("/")
        if not value or " " in value or ".." in value:
            raise ValueError(f"invalid branch prefix: {value!r}")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        return logging.getLevelName(parse_level(value))


def load_settings(**overrides: Any) -> Settings:
    """
    Build Settings from the environment plus explicit overrides.

    Raises:
        ConfigurationError: If a value fails validation
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigurationError(
            f"Invalid configuration: {problems}",
            context=ErrorContext(operation="load_settings"),
            cause=e,
        ) from e


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings; call ``get_settings.cache_clear()`` to reload."""
    return load_settings()
