"""
Custom Exceptions
=================

Exception hierarchy for the workflow orchestrator.

Provides structured error handling with:
- Clear error categorization
- Retryable vs non-retryable errors
- Error codes for monitoring
- Context preservation for debugging (which step failed, which branches)

These exceptions never cross the service boundary: every public operation
catches them and returns a tagged failure result instead.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """Categories of errors for monitoring and alerting."""

    CONFIGURATION = "configuration"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    VALIDATION = "validation"
    TIMEOUT = "timeout"
    EXTERNAL_TOOL = "external_tool"
    REPOSITORY = "repository"
    INTERNAL = "internal"


class ErrorSeverity(Enum):
    """Severity levels for error handling."""

    LOW = "low"  # Recoverable, can continue
    MEDIUM = "medium"  # May need retry or fallback
    HIGH = "high"  # Operation failed, user action needed
    CRITICAL = "critical"


@dataclass
class ErrorContext:
    """Structured context for error debugging."""

    operation: str = ""
    stage: str = ""
    workspace: str = ""
    command: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        if self.operation:
            result["operation"] = self.operation
        if self.stage:
            result["stage"] = self.stage
        if self.workspace:
            result["workspace"] = self.workspace
        if self.command:
            result["command"] = self.command
        result.update(self.extra)
        return result


class WorkbenchError(Exception):
    """
    Base exception for all orchestrator errors.

    ``message`` is the human-readable text shown to the user; ``str()`` adds
    the operation and cause for logs.
    """

    error_code: str = "WORKBENCH_ERROR"
    category: ErrorCategory = ErrorCategory.INTERNAL
    severity: ErrorSeverity = ErrorSeverity.MEDIUM
    retryable: bool = False

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.cause = cause

    def __str__(self) -> str:
        parts = [self.message]
        if self.context.operation:
            parts.append(f"[operation={self.context.operation}]")
        if self.context.stage:
            parts.append(f"[stage={self.context.stage}]")
        if self.cause:
            parts.append(f"[caused by: {type(self.cause).__name__}: {self.cause}]")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging and monitoring."""
        return {
            "error_code": self.error_code,
            "category": self.category.value,
            "severity": self.severity.value,
            "retryable": self.retryable,
            "message": self.message,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
        }


# Configuration Errors


class ConfigurationError(WorkbenchError):
    """Error in configuration or settings."""

    error_code = "CONFIG_ERROR"
    category = ErrorCategory.CONFIGURATION
    severity = ErrorSeverity.HIGH


class CatalogLoadError(ConfigurationError):
    """Provider catalog file is unreadable or malformed."""

    error_code = "CATALOG_LOAD_ERROR"


# Repository Errors


class RepositoryError(WorkbenchError):
    """The working copy cannot be used for the requested operation."""

    error_code = "REPOSITORY_ERROR"
    category = ErrorCategory.REPOSITORY
    severity = ErrorSeverity.HIGH


class NotARepositoryError(RepositoryError):
    """Path is not inside a git work tree."""

    error_code = "NOT_A_REPOSITORY"


class BranchCreateError(RepositoryError):
    """Could not create the feature branch off the default branch."""

    error_code = "BRANCH_CREATE_ERROR"


class NoCommitsAheadError(RepositoryError):
    """Head branch has no commits ahead of the PR base."""

    error_code = "NO_COMMITS_AHEAD"
    category = ErrorCategory.VALIDATION
    severity = ErrorSeverity.LOW

    def __init__(
        self,
        current_branch: str,
        base_branch: str,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            "No commits to create a PR. Make a commit on current branch "
            f"'{current_branch}' ahead of base '{base_branch}'.",
            context,
        )
        self.current_branch = current_branch
        self.base_branch = base_branch


# External Tool Errors


class ExternalToolError(WorkbenchError):
    """git or gh failed in a way no fallback could recover."""

    error_code = "EXTERNAL_TOOL_ERROR"
    category = ErrorCategory.EXTERNAL_TOOL
    severity = ErrorSeverity.HIGH

    def __init__(
        self,
        message: str,
        tool_output: str = "",
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, context, cause)
        self.tool_output = tool_output


class PushError(ExternalToolError):
    """Push failed, with and without an explicit upstream."""

    error_code = "PUSH_ERROR"
    retryable = True


class PullRequestCreateError(ExternalToolError):
    """gh pr create failed."""

    error_code = "PR_CREATE_ERROR"


class PullRequestQueryError(ExternalToolError):
    """gh pr view failed for a reason other than 'no PR yet'."""

    error_code = "PR_QUERY_ERROR"
    severity = ErrorSeverity.MEDIUM
    retryable = True


class RepositoryLookupError(ExternalToolError):
    """Repository is unknown to gh or gh is not connected."""

    error_code = "REPOSITORY_LOOKUP_ERROR"
    severity = ErrorSeverity.MEDIUM


# Helper functions


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, WorkbenchError):
        return error.retryable
    return isinstance(error, (OSError, TimeoutError))


def get_error_code(error: Exception) -> str:
    """Get the error code for an exception."""
    if isinstance(error, WorkbenchError):
        return error.error_code
    return type(error).__name__.upper()


def user_message(error: Exception) -> str:
    """Text to surface to the UI for a failed operation."""
    if isinstance(error, WorkbenchError):
        return error.message
    return str(error) or type(error).__name__
