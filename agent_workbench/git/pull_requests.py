"""
Pull Request Lifecycle Manager
==============================

Opens pull requests through ``gh pr create`` and reports the PR attached to
the current branch.

create_pull_request:
1. Commit pending changes (failure is logged, not fatal).
2. Push the branch (fatal on failure: the PR would reference nothing).
3. Resolve ``owner/repo``: gh first, then the origin URL; unresolved means
   no ``--repo`` flag and gh infers the repository from the working copy.
4. Resolve current and default branch.
5. Refuse to continue when HEAD has no commits ahead of ``<remote>/<base>``;
   gh's own error for that case does not say which branches it compared.
6. Build the ``gh pr create`` argv.
7. Run it and take the first URL in its output as the PR URL.

get_pull_request_status treats "no pull request found" as a normal state and
returns None for it.

Head ref note: when the repository identity is known the head is sent as
``<owner>:<branch>``. For a fork contributor whose push remote differs from
the resolved repository this names the upstream owner, which gh may reject;
callers working from forks should pass ``head`` explicitly.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import ValidationError

from ..core.exceptions import (
    ErrorContext,
    NoCommitsAheadError,
    PullRequestCreateError,
    PullRequestQueryError,
)
from ..models import PR_VIEW_FIELDS, PrCreateRequest, PullRequestInfo
from .branch_state import BranchStateResolver, first_resolved
from .classifiers import (
    extract_first_url,
    is_command_not_found,
    is_no_pull_request,
    parse_count,
    parse_repo_slug,
)
from .commands import GitCommands
from .commit_push import CommitPushSequencer

logger = logging.getLogger(__name__)

GH_NOT_FOUND_MESSAGE = "gh CLI not found. Install from https://cli.github.com/"


@dataclass
class PullRequestCreated:
    """Result of a successful ``gh pr create``."""

    url: str | None
    output: str
    command: list[str] = field(default_factory=list)


def build_create_args(
    request: PrCreateRequest,
    repo_slug: str | None,
    current_branch: str,
    default_branch: str,
) -> list[str]:
    """
    Arguments for ``gh pr create``.

    Explicit ``--repo/--base/--head`` make the call independent of gh's own
    guessing. Head falls back to ``owner:branch`` when the owner is known,
    else to the bare branch name.
    """
    args = ["pr", "create"]
    if repo_slug:
        args += ["--repo", repo_slug]
    if request.title:
        args += ["--title", request.title]
    if request.body:
        args += ["--body", request.body]

    base = request.base or default_branch
    if base:
        args += ["--base", base]

    if request.head:
        args += ["--head", request.head]
    elif current_branch:
        owner = repo_slug.split("/")[0] if repo_slug else ""
        args += ["--head", f"{owner}:{current_branch}" if owner else current_branch]

    if request.draft:
        args.append("--draft")
    if request.web:
        args.append("--web")
    if request.fill:
        args.append("--fill")
    return args


class PullRequestManager:
    """Creates pull requests and reads their status."""

    def __init__(
        self,
        commands: GitCommands,
        branches: BranchStateResolver,
        sequencer: CommitPushSequencer,
        commit_message: str = "chore: prepare pull request",
    ):
        self.commands = commands
        self.branches = branches
        self.sequencer = sequencer
        self.commit_message = commit_message

    # ==================== Repository identity ====================

    def repo_slug_from_gh(self, repo: Path) -> str | None:
        outcome = self.commands.gh(
            repo, "repo", "view", "--json", "nameWithOwner", "-q", ".nameWithOwner"
        )
        if not outcome.success:
            return None
        return outcome.stdout.strip() or None

    def repo_slug_from_remote_url(self, repo: Path) -> str | None:
        outcome = self.commands.git(repo, "remote", "get-url", self.commands.remote)
        if not outcome.success:
            return None
        return parse_repo_slug(outcome.stdout)

    def resolve_repository(self, repo: Path) -> str | None:
        """``owner/repo`` for the working copy, or None if it cannot be told."""
        return first_resolved(
            [self.repo_slug_from_gh, self.repo_slug_from_remote_url], repo, None
        )

    # ==================== Guard ====================

    def commits_ahead(self, repo: Path, base: str) -> int | None:
        """Commits on HEAD not on ``<remote>/<base>``; None if git cannot say."""
        outcome = self.commands.git(
            repo, "rev-list", "--count", f"{self.commands.remote_ref(base)}..HEAD"
        )
        if not outcome.success:
            logger.debug(f"Could not count commits ahead of {base}: {outcome.error_text}")
            return None
        return parse_count(outcome.stdout)

    # ==================== Create ====================

    def create_pull_request(self, request: PrCreateRequest) -> PullRequestCreated:
        """
        Commit, push and open a pull request.

        Raises:
            PushError: the branch could not be pushed
            NoCommitsAheadError: nothing to propose against the base branch
            PullRequestCreateError: gh pr create failed
        """
        repo = request.workspace_path
        notes: list[str] = []

        self.sequencer.try_stage_and_commit(repo, self.commit_message, notes)
        self.sequencer.push(repo, notes=notes)

        repo_slug = self.resolve_repository(repo)
        if not repo_slug:
            logger.info("Repository identity unresolved, letting gh infer it")

        current_branch = self.branches.current_branch(repo)
        default_branch = self.branches.default_branch(repo)
        base = request.base or default_branch

        ahead = self.commits_ahead(repo, base)
        if ahead is not None and ahead <= 0:
            raise NoCommitsAheadError(
                current_branch,
                base,
                context=ErrorContext(
                    operation="create_pull_request", stage="guard", workspace=str(repo)
                ),
            )

        args = build_create_args(request, repo_slug, current_branch, default_branch)
        outcome = self.commands.gh(repo, *args)
        if not outcome.success:
            if is_command_not_found(outcome):
                message = GH_NOT_FOUND_MESSAGE
            else:
                message = f"Failed to create PR: {outcome.error_text}"
            raise PullRequestCreateError(
                message,
                tool_output=outcome.error_text,
                context=ErrorContext(
                    operation="create_pull_request",
                    stage="create",
                    workspace=str(repo),
                    command=outcome.command_line,
                ),
            )

        tool_output = outcome.stdout.strip() or outcome.stderr.strip()
        output = "\n".join(part for part in [*notes, tool_output] if part)
        url = extract_first_url(outcome.combined_output)
        logger.info(f"Pull request created: {url or '(no URL in gh output)'}")
        return PullRequestCreated(url=url, output=output, command=[outcome.command, *args])

    # ==================== Status ====================

    def get_pull_request_status(self, repo: Path) -> PullRequestInfo | None:
        """
        The pull request for the current branch, or None if there is none.

        Raises:
            NotARepositoryError: repo is not a git work tree
            PullRequestQueryError: gh failed or returned unusable data
        """
        self.sequencer.ensure_repository(repo, operation="get_pull_request_status")

        context = ErrorContext(
            operation="get_pull_request_status", stage="query", workspace=str(repo)
        )
        outcome = self.commands.gh(repo, "pr", "view", "--json", ",".join(PR_VIEW_FIELDS))

        if not outcome.success:
            if is_command_not_found(outcome):
                raise PullRequestQueryError(GH_NOT_FOUND_MESSAGE, context=context)
            if is_no_pull_request(outcome.error_text):
                return None
            raise PullRequestQueryError(
                outcome.error_text or "Failed to query PR status",
                tool_output=outcome.error_text,
                context=context,
            )

        raw = outcome.stdout.strip()
        if not raw:
            raise PullRequestQueryError("No PR data returned", context=context)

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise PullRequestQueryError(
                "gh returned malformed PR data", tool_output=raw, context=context, cause=e
            ) from e
        if not data:
            raise PullRequestQueryError("No PR data returned", context=context)

        try:
            return PullRequestInfo.model_validate(data)
        except ValidationError as e:
            raise PullRequestQueryError(
                f"Unexpected PR data from gh: {e.error_count()} invalid field(s)",
                tool_output=raw,
                context=context,
                cause=e,
            ) from e
