"""
Branch State Resolver
=====================

Answers "which branch am I on, what is the default branch, and how far apart
are they" for a working copy.

Each question is answered by an ordered chain of strategies. A strategy
returns a value, or None to hand over to the next one; the chain ends in a
hard-coded default. Resolution is best-effort and never raises.

Default branch:
1. gh repo view --json defaultBranchRef   (hosting platform setting)
2. git remote show <remote>               ("HEAD branch: ..." line)
3. fallback_default_branch                (default: "main")

Ahead/behind:
1. git rev-list --left-right --count <remote>/<default>...HEAD
2. git status -sb                          ("[ahead N, behind M]")
3. (0, 0)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import TypeVar

from ..models import BranchStatus
from .classifiers import (
    parse_left_right_counts,
    parse_remote_head_branch,
    parse_status_ahead_behind,
)
from .commands import GitCommands

logger = logging.getLogger(__name__)

T = TypeVar("T")


def first_resolved(
    strategies: Sequence[Callable[[Path], T | None]], repo: Path, default: T
) -> T:
    """Run strategies in order and return the first non-None value."""
    for strategy in strategies:
        value = strategy(repo)
        if value is not None:
            return value
        logger.debug(f"{getattr(strategy, '__name__', strategy)} gave no answer")
    return default


class BranchStateResolver:
    """Resolves current/default branch and ahead/behind counts."""

    def __init__(self, commands: GitCommands, fallback_default_branch: str = "main"):
        self.commands = commands
        self.fallback_default_branch = fallback_default_branch

    # ==================== Current branch ====================

    def current_branch(self, repo: Path) -> str:
        """Current branch name, or "" for a detached HEAD."""
        outcome = self.commands.git(repo, "branch", "--show-current")
        if not outcome.success:
            logger.debug(f"Could not read current branch: {outcome.error_text}")
            return ""
        return outcome.stdout.strip()

    # ==================== Default branch ====================

    def default_branch_from_gh(self, repo: Path) -> str | None:
        outcome = self.commands.gh(
            repo,
            "repo", "view",
            "--json", "defaultBranchRef",
            "-q", ".defaultBranchRef.name",
        )
        if not outcome.success:
            return None
        return outcome.stdout.strip() or None

    def default_branch_from_remote(self, repo: Path) -> str | None:
        outcome = self.commands.git(repo, "remote", "show", self.commands.remote)
        if not outcome.success:
            return None
        return parse_remote_head_branch(outcome.stdout)

    def default_branch(self, repo: Path) -> str:
        return first_resolved(
            [self.default_branch_from_gh, self.default_branch_from_remote],
            repo,
            self.fallback_default_branch,
        )

    # ==================== Ahead / behind ====================

    def ahead_behind(self, repo: Path, default_branch: str) -> tuple[int, int]:
        """
        Commits on HEAD but not on the remote default branch, and the reverse.

        Returns:
            (ahead, behind); (0, 0) when no tracking information is available
        """

        def from_rev_list(path: Path) -> tuple[int, int] | None:
            outcome = self.commands.git(
                path,
                "rev-list", "--left-right", "--count",
                f"{self.commands.remote_ref(default_branch)}...HEAD",
            )
            if not outcome.success:
                return None
            counts = parse_left_right_counts(outcome.stdout)
            if counts is None:
                return None
            behind, ahead = counts  # left side is the remote branch
            return ahead, behind

        def from_status_line(path: Path) -> tuple[int, int] | None:
            outcome = self.commands.git(path, "status", "-sb")
            if not outcome.success:
                return None
            return parse_status_ahead_behind(outcome.stdout)

        return first_resolved([from_rev_list, from_status_line], repo, (0, 0))

    def resolve(self, repo: Path) -> BranchStatus:
        current = self.current_branch(repo)
        default = self.default_branch(repo)
        ahead, behind = self.ahead_behind(repo, default)
        return BranchStatus(
            current_branch=current,
            default_branch=default,
            ahead=ahead,
            behind=behind,
        )
