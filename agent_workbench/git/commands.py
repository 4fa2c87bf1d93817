"""
git / gh invocation helpers shared by the resolvers and managers.
"""

from __future__ import annotations

from pathlib import Path

from ..core.config import Settings
from ..core.gh_executable import get_gh_executable
from ..core.safe_subprocess import CommandOutcome, CommandRunner, ProcessRunner


class GitCommands:
    """
    Thin wrapper that runs git and gh through an injected CommandRunner.

    Every call returns a CommandOutcome; nothing here raises for a failing
    tool, so callers decide what a failure means.
    """

    def __init__(
        self,
        runner: CommandRunner,
        git_executable: str = "git",
        gh_executable: str = "gh",
        remote: str = "origin",
        timeout: float | None = None,
    ):
        self.runner = runner
        self.git_executable = git_executable
        self.gh_executable = gh_executable
        self.remote = remote
        self.timeout = timeout

    @classmethod
    def from_settings(
        cls, settings: Settings, runner: CommandRunner | None = None
    ) -> "GitCommands":
        if runner is None:
            runner = ProcessRunner(max_output=settings.max_output_bytes)
        return cls(
            runner,
            git_executable=settings.git_executable,
            gh_executable=get_gh_executable(settings.gh_executable),
            remote=settings.remote_name,
            timeout=settings.git_timeout,
        )

    def git(self, repo: Path | str | None, *args: str) -> CommandOutcome:
        return self.runner.run(
            self.git_executable, list(args), cwd=repo, timeout=self.timeout
        )

    def gh(
        self, repo: Path | str | None, *args: str, timeout: float | None = None
    ) -> CommandOutcome:
        return self.runner.run(
            self.gh_executable,
            list(args),
            cwd=repo,
            timeout=timeout if timeout is not None else self.timeout,
        )

    def remote_ref(self, branch: str) -> str:
        return f"{self.remote}/{branch}"
