"""
Commit & Push Sequencer
=======================

Publishes the working copy in one call:

1. EnsureBranch (opt-in): when HEAD is on the default branch, or detached,
   switch to a fresh ``<prefix>/<base36 timestamp>`` branch first so nothing
   is committed straight onto the default branch.
2. CheckDirty: ``git status --porcelain``; a clean tree skips 3 and 4.
3. Stage: ``git add -A``.
4. Commit: ``git commit -m``. "nothing to commit" counts as success; a
   concurrent commit can empty the index between stage and commit.
5. Push: ``git push``, retried once as ``git push --set-upstream <remote>
   <branch>`` (first push of a new branch). A second failure is fatal.

Stage/commit problems are logged and appended to the summary output; they do
not stop the push, since earlier commits may still need publishing.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from ..core.exceptions import (
    BranchCreateError,
    ErrorContext,
    ExternalToolError,
    NotARepositoryError,
    PushError,
)
from .branch_state import BranchStateResolver
from .classifiers import is_dirty, is_nothing_to_commit
from .commands import GitCommands

logger = logging.getLogger(__name__)

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def to_base36(value: int) -> str:
    """Lower-case base-36 rendering of a non-negative integer."""
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36_DIGITS[rem])
    return "".join(reversed(digits))


class CommitState(str, Enum):
    """What the stage/commit step did."""

    CLEAN = "clean"
    COMMITTED = "committed"
    NOTHING_TO_COMMIT = "nothing_to_commit"


@dataclass
class PushSummary:
    """Outcome of a successful commit-and-push."""

    branch: str
    output: str
    commit_state: CommitState | None = None
    created_branch: bool = False
    notes: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class CommitPushSequencer:
    """Stages, commits and pushes a working copy."""

    def __init__(
        self,
        commands: GitCommands,
        branches: BranchStateResolver,
        clock: Callable[[], float] = time.time,
    ):
        self.commands = commands
        self.branches = branches
        self.clock = clock

    def ensure_repository(self, repo: Path, operation: str = "") -> None:
        outcome = self.commands.git(repo, "rev-parse", "--is-inside-work-tree")
        if not outcome.success:
            raise NotARepositoryError(
                f"Not a git repository: {repo} ({outcome.error_text})",
                context=ErrorContext(
                    operation=operation, stage="check_repository", workspace=str(repo)
                ),
            )

    def new_branch_name(self, prefix: str) -> str:
        return f"{prefix}/{to_base36(int(self.clock() * 1000))}"

    def ensure_feature_branch(
        self, repo: Path, current_branch: str, default_branch: str, prefix: str
    ) -> str | None:
        """
        Switch to a new branch when on the default branch (or detached).

        Returns:
            The new branch name, or None when no branch was needed
        """
        if current_branch and current_branch != default_branch:
            return None

        name = self.new_branch_name(prefix)
        outcome = self.commands.git(repo, "checkout", "-b", name)
        if not outcome.success:
            raise BranchCreateError(
                f"Failed to create branch '{name}': {outcome.error_text}",
                context=ErrorContext(
                    operation="commit_and_push", stage="ensure_branch", workspace=str(repo)
                ),
            )
        logger.info(f"Created branch {name} off {default_branch or 'detached HEAD'}")
        return name

    def stage_and_commit(
        self, repo: Path, message: str, notes: list[str] | None = None
    ) -> CommitState:
        """
        Commit everything in the working tree if it is dirty.

        Raises:
            ExternalToolError: status, add or commit failed for a reason other
                than "nothing to commit"
        """
        notes = notes if notes is not None else []

        status = self.commands.git(repo, "status", "--porcelain")
        if not status.success:
            raise ExternalToolError(
                f"git status failed: {status.error_text}",
                tool_output=status.error_text,
                context=ErrorContext(stage="check_dirty", workspace=str(repo)),
            )
        if not is_dirty(status.stdout):
            logger.debug("Working tree clean, nothing to stage")
            return CommitState.CLEAN

        add = self.commands.git(repo, "add", "-A")
        if not add.success:
            raise ExternalToolError(
                f"git add failed: {add.error_text}",
                tool_output=add.error_text,
                context=ErrorContext(stage="stage", workspace=str(repo)),
            )
        if add.combined_output:
            notes.append(add.combined_output)

        commit = self.commands.git(repo, "commit", "-m", message)
        if commit.success:
            if commit.combined_output:
                notes.append(commit.combined_output)
            return CommitState.COMMITTED

        if is_nothing_to_commit(commit.combined_output or commit.error_text):
            notes.append("git commit: nothing to commit")
            return CommitState.NOTHING_TO_COMMIT

        raise ExternalToolError(
            f"git commit failed: {commit.error_text}",
            tool_output=commit.error_text,
            context=ErrorContext(stage="commit", workspace=str(repo)),
        )

    def try_stage_and_commit(
        self,
        repo: Path,
        message: str,
        notes: list[str],
        warnings: list[str] | None = None,
    ) -> CommitState | None:
        """stage_and_commit that records failures instead of raising."""
        try:
            return self.stage_and_commit(repo, message, notes)
        except ExternalToolError as e:
            logger.warning(f"Stage/commit step failed, continuing: {e.message}")
            notes.append(e.message)
            if warnings is not None:
                warnings.append(e.message)
            return None

    def push(self, repo: Path, branch: str = "", notes: list[str] | None = None) -> None:
        """
        Push the current branch, creating the upstream on first push.

        Raises:
            PushError: both push attempts failed
        """
        notes = notes if notes is not None else []

        first = self.commands.git(repo, "push")
        if first.success:
            notes.append("git push: success")
            return

        logger.info(f"git push failed, retrying with --set-upstream: {first.error_text}")
        branch = branch or self.branches.current_branch(repo)
        if not branch:
            raise PushError(
                f"Failed to push branch to {self.commands.remote}. Please check your Git "
                "remotes and authentication. HEAD is detached and no branch name is "
                f"known; check out a branch first. ({first.error_text})",
                tool_output=first.error_text,
                context=ErrorContext(stage="push", workspace=str(repo)),
            )

        remote = self.commands.remote
        second = self.commands.git(repo, "push", "--set-upstream", remote, branch)
        if second.success:
            notes.append(f"git push --set-upstream {remote} {branch}: success")
            return

        raise PushError(
            f"Failed to push branch '{branch}' to {remote}. Please check your "
            f"Git remotes and authentication. ({second.error_text})",
            tool_output=second.error_text,
            context=ErrorContext(
                stage="push",
                workspace=str(repo),
                command=second.command_line,
            ),
        )

    def status_summary(self, repo: Path) -> str:
        outcome = self.commands.git(repo, "status", "-sb")
        return outcome.stdout.strip() if outcome.success else ""

    def commit_and_push(
        self,
        repo: Path,
        commit_message: str,
        create_branch_if_on_default: bool = True,
        branch_prefix: str = "orch",
    ) -> PushSummary:
        """
        Run the full sequence.

        Raises:
            NotARepositoryError: repo is not a git work tree
            BranchCreateError: the feature branch could not be created
            PushError: the push failed twice
        """
        self.ensure_repository(repo, operation="commit_and_push")

        current = self.branches.current_branch(repo)
        active = current
        created = False
        if create_branch_if_on_default:
            default = self.branches.default_branch(repo)
            new_branch = self.ensure_feature_branch(repo, current, default, branch_prefix)
            if new_branch:
                active = new_branch
                created = True

        notes: list[str] = []
        warnings: list[str] = []
        commit_state = self.try_stage_and_commit(repo, commit_message, notes, warnings)

        self.push(repo, active, notes)

        # Stage/commit failures ride along with the status line
        output = "\n".join(part for part in [self.status_summary(repo), *warnings] if part)
        return PushSummary(
            branch=active,
            output=output,
            commit_state=commit_state,
            created_branch=created,
            notes=notes,
            warnings=warnings,
        )
