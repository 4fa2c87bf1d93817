"""
Tests for core/exceptions.py
=============================

Tests for the exception hierarchy and error utilities.
"""

from agent_workbench.core.exceptions import (
    CatalogLoadError,
    ConfigurationError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    ExternalToolError,
    NoCommitsAheadError,
    PullRequestQueryError,
    PushError,
    RepositoryError,
    WorkbenchError,
    get_error_code,
    is_retryable,
    user_message,
)


class TestErrorContext:
    """Tests for ErrorContext dataclass."""

    def test_empty_context(self):
        """Test empty context produces empty dict."""
        assert ErrorContext().to_dict() == {}

    def test_full_context(self):
        """Test context with all fields."""
        ctx = ErrorContext(
            operation="commit_and_push",
            stage="push",
            workspace="/tmp/wt",
            command="git push",
            extra={"branch": "feature-x"},
        )

        assert ctx.to_dict() == {
            "operation": "commit_and_push",
            "stage": "push",
            "workspace": "/tmp/wt",
            "command": "git push",
            "branch": "feature-x",
        }


class TestWorkbenchError:
    """Tests for the base error."""

    def test_basic_error(self):
        error = WorkbenchError("Something failed")
        assert str(error) == "Something failed"
        assert error.message == "Something failed"
        assert error.cause is None

    def test_str_includes_context_and_cause(self):
        error = WorkbenchError(
            "Push failed",
            context=ErrorContext(operation="create_pull_request", stage="push"),
            cause=OSError("broken pipe"),
        )

        text = str(error)
        assert "[operation=create_pull_request]" in text
        assert "[stage=push]" in text
        assert "OSError: broken pipe" in text
        assert error.message == "Push failed"

    def test_to_dict(self):
        error = PushError("Failed to push", tool_output="denied", context=ErrorContext(stage="push"))

        data = error.to_dict()

        assert data["error_code"] == "PUSH_ERROR"
        assert data["category"] == "external_tool"
        assert data["severity"] == "high"
        assert data["retryable"] is True
        assert data["context"] == {"stage": "push"}
        assert error.tool_output == "denied"


class TestHierarchy:
    """Tests for the subclass tree."""

    def test_inheritance(self):
        assert issubclass(CatalogLoadError, ConfigurationError)
        assert issubclass(NoCommitsAheadError, RepositoryError)
        assert issubclass(PushError, ExternalToolError)
        assert issubclass(ExternalToolError, WorkbenchError)

    def test_no_commits_ahead_names_both_branches(self):
        error = NoCommitsAheadError("feature-x", "main")

        assert error.current_branch == "feature-x"
        assert error.base_branch == "main"
        assert "'feature-x'" in error.message
        assert "'main'" in error.message
        assert error.category == ErrorCategory.VALIDATION
        assert error.severity == ErrorSeverity.LOW


class TestHelpers:
    """Tests for the helper functions."""

    def test_is_retryable(self):
        assert is_retryable(PushError("x"))
        assert is_retryable(PullRequestQueryError("x"))
        assert not is_retryable(ConfigurationError("x"))
        assert is_retryable(TimeoutError())
        assert not is_retryable(ValueError("x"))

    def test_get_error_code(self):
        assert get_error_code(NoCommitsAheadError("a", "b")) == "NO_COMMITS_AHEAD"
        assert get_error_code(KeyError("k")) == "KEYERROR"

    def test_user_message(self):
        error = WorkbenchError("Readable", context=ErrorContext(operation="op"))
        assert user_message(error) == "Readable"
        assert user_message(RuntimeError("boom")) == "boom"
        assert user_message(RuntimeError()) == "RuntimeError"
