"""
Boundary Models
===============

Pydantic models exchanged with the UI layer. Field names are snake_case in
Python and camelCase on the wire (``to_payload()``), matching the JSON that
``gh`` emits so PullRequestInfo can be validated straight from its output.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )

    def to_payload(self) -> dict[str, Any]:
        """camelCase dictionary with unset optionals dropped."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


# =============================================================================
# Domain values
# =============================================================================


class BranchStatus(_WireModel):
    """Branch position relative to the repository default branch."""

    model_config = ConfigDict(frozen=True)

    current_branch: str
    default_branch: str
    ahead: int = Field(default=0, ge=0)
    behind: int = Field(default=0, ge=0)


class PullRequestInfo(_WireModel):
    """Subset of ``gh pr view --json`` fields for the current branch."""

    number: int
    url: str = ""
    state: Literal["OPEN", "CLOSED", "MERGED"]
    is_draft: bool = False
    merge_state_status: str = ""
    head_ref_name: str = ""
    base_ref_name: str = ""
    title: str = ""
    author: dict[str, Any] = Field(default_factory=dict)


PR_VIEW_FIELDS = (
    "number",
    "url",
    "state",
    "isDraft",
    "mergeStateStatus",
    "headRefName",
    "baseRefName",
    "title",
    "author",
)


class PrCreateRequest(_WireModel):
    """Request to open a pull request; unset fields fall back to repo defaults."""

    workspace_path: Path
    title: str | None = None
    body: str | None = None
    base: str | None = None
    head: str | None = None
    draft: bool = False
    web: bool = False
    fill: bool = False


class CliStatus(str, Enum):
    """Availability of a coding-agent CLI."""

    CONNECTED = "connected"
    MISSING = "missing"
    NEEDS_KEY = "needs_key"
    ERROR = "error"


class CliProviderStatus(_WireModel):
    """Probe result for one catalog entry."""

    id: str
    name: str
    status: CliStatus
    version: str | None = None
    message: str | None = None
    doc_url: str | None = None
    command: str | None = None

    def to_payload(self) -> dict[str, Any]:
        # Nullable fields are part of the contract, keep them.
        return self.model_dump(by_alias=True, mode="json")


# =============================================================================
# Operation results
# =============================================================================


class OperationResult(_WireModel):
    """Tagged success/failure result returned by every public operation."""

    success: bool
    error: str | None = None


class BranchStatusResult(OperationResult):
    branch: str | None = None
    default_branch: str | None = None
    ahead: int | None = None
    behind: int | None = None


class CommitPushResult(OperationResult):
    branch: str | None = None
    output: str | None = None


class PullRequestCreateResult(OperationResult):
    url: str | None = None
    output: str | None = None


class PullRequestStatusResult(OperationResult):
    pr: PullRequestInfo | None = None

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        if self.success:
            # "no PR yet" is reported as an explicit null
            payload.setdefault("pr", None)
        return payload


class CliProvidersResult(OperationResult):
    providers: list[CliProviderStatus] | None = None

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        if self.providers is not None:
            payload["providers"] = [p.to_payload() for p in self.providers]
        return payload


class GithubStatus(_WireModel):
    """Whether gh is installed and logged in."""

    installed: bool
    authenticated: bool
    user: dict[str, Any] | None = None


class RepositoryInfoResult(OperationResult):
    repository: str | None = None
    branch: str | None = None
