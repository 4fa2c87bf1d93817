"""
Hosting Platform Status
=======================

What the GitHub CLI knows about this machine and a project: whether gh is
installed and logged in, and which repository a project maps to.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from ..core.exceptions import ErrorContext, RepositoryLookupError
from ..models import GithubStatus
from .commands import GitCommands

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RepositoryInfo:
    repository: str
    default_branch: str


class HostingStatusChecker:
    """Queries gh for installation, authentication and repository details."""

    def __init__(
        self,
        commands: GitCommands,
        fallback_default_branch: str = "main",
        probe_timeout: float | None = None,
    ):
        self.commands = commands
        self.fallback_default_branch = fallback_default_branch
        self.probe_timeout = probe_timeout

    def is_installed(self) -> bool:
        return self.commands.gh(None, "--version", timeout=self.probe_timeout).success

    def is_authenticated(self) -> bool:
        return self.commands.gh(None, "auth", "status", timeout=self.probe_timeout).success

    def github_status(self) -> GithubStatus:
        """Never raises; an unreachable or logged-out gh is just reported."""
        if not self.is_installed():
            return GithubStatus(installed=False, authenticated=False)

        outcome = self.commands.gh(None, "api", "user")
        if not outcome.success:
            logger.debug(f"gh api user failed: {outcome.error_text}")
            return GithubStatus(installed=True, authenticated=False)

        try:
            user = json.loads(outcome.stdout)
        except json.JSONDecodeError:
            logger.warning("gh api user returned non-JSON output")
            return GithubStatus(installed=True, authenticated=False)

        if not isinstance(user, dict):
            return GithubStatus(installed=True, authenticated=False)
        return GithubStatus(installed=True, authenticated=True, user=user)

    def repository_info(self, project: Path) -> RepositoryInfo:
        """
        Repository ``owner/name`` and default branch for a project.

        Raises:
            RepositoryLookupError: gh is not logged in or does not know the repo
        """
        context = ErrorContext(
            operation="get_repository_info", stage="lookup", workspace=str(project)
        )
        if not self.is_authenticated():
            raise RepositoryLookupError("GitHub CLI not authenticated", context=context)

        outcome = self.commands.gh(
            project, "repo", "view", "--json", "name,nameWithOwner,defaultBranchRef"
        )
        not_found = RepositoryLookupError(
            "Repository not found on GitHub or not connected to GitHub CLI",
            tool_output=outcome.error_text,
            context=context,
        )
        if not outcome.success:
            raise not_found

        try:
            data = json.loads(outcome.stdout)
        except json.JSONDecodeError as e:
            raise not_found from e

        repository = data.get("nameWithOwner") if isinstance(data, dict) else None
        if not repository:
            raise not_found

        default_ref = data.get("defaultBranchRef")
        default_branch = default_ref.get("name") if isinstance(default_ref, dict) else None
        return RepositoryInfo(
            repository=repository,
            default_branch=default_branch or self.fallback_default_branch,
        )
