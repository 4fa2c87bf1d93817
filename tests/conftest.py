"""Shared fixtures: a scripted command runner and real git repositories."""

from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

import pytest

from agent_workbench.core.config import get_settings
from agent_workbench.core.logging import clear_log_context
from agent_workbench.core.safe_subprocess import SPAWN_NOT_FOUND, CommandOutcome
from agent_workbench.git import GitCommands

GIT_AVAILABLE = shutil.which("git") is not None


@dataclass
class Call:
    command: str
    args: tuple[str, ...]
    cwd: str | None
    timeout: float | None

    @property
    def argv(self) -> tuple[str, ...]:
        return (self.command, *self.args)


@dataclass
class Rule:
    command: str
    prefix: tuple[str, ...]
    outcome: dict
    once: bool = False
    used: bool = False

    def matches(self, command: str, args: tuple[str, ...]) -> bool:
        return command == self.command and args[: len(self.prefix)] == self.prefix


@dataclass
class FakeRunner:
    """
    CommandRunner double.

    Rules are matched on command plus an argument prefix; the longest prefix
    wins. Among equal prefixes a pending ``once`` rule is used first (oldest
    first), then the most recently added persistent rule. Unmatched calls
    succeed with empty output.
    """

    rules: list[Rule] = field(default_factory=list)
    calls: list[Call] = field(default_factory=list)

    def on(
        self,
        command: str,
        *prefix: str,
        exit_code: int | None = 0,
        stdout: str = "",
        stderr: str = "",
        spawn_error: str | None = None,
        timed_out: bool = False,
        once: bool = False,
    ) -> "FakeRunner":
        self.rules.append(
            Rule(
                command,
                tuple(prefix),
                {
                    "exit_code": exit_code,
                    "stdout": stdout,
                    "stderr": stderr,
                    "spawn_error": spawn_error,
                    "timed_out": timed_out,
                },
                once=once,
            )
        )
        return self

    def fail(self, command: str, *prefix: str, stderr: str = "", stdout: str = "", once: bool = False):
        return self.on(command, *prefix, exit_code=1, stderr=stderr, stdout=stdout, once=once)

    def missing(self, command: str, *prefix: str) -> "FakeRunner":
        return self.on(
            command,
            *prefix,
            exit_code=None,
            spawn_error=f"{SPAWN_NOT_FOUND}: {command}: command not found",
        )

    def run(
        self,
        command: str,
        args: Sequence[str] = (),
        cwd: Path | str | None = None,
        timeout: float | None = None,
        max_output: int | None = None,
    ) -> CommandOutcome:
        args = tuple(str(a) for a in args)
        cwd_str = str(cwd) if cwd is not None else None
        self.calls.append(Call(command, args, cwd_str, timeout))

        candidates = [
            r for r in self.rules if r.matches(command, args) and not (r.once and r.used)
        ]
        if not candidates:
            return CommandOutcome(command=command, args=args, exit_code=0, cwd=cwd_str)

        longest = max(len(r.prefix) for r in candidates)
        best = [r for r in candidates if len(r.prefix) == longest]
        pending_once = [r for r in best if r.once]
        rule = pending_once[0] if pending_once else best[-1]
        if rule.once:
            rule.used = True
        return CommandOutcome(command=command, args=args, cwd=cwd_str, **rule.outcome)

    def invoked(self, command: str, *prefix: str) -> bool:
        return bool(self.calls_for(command, *prefix))

    def calls_for(self, command: str, *prefix: str) -> list[Call]:
        return [
            c
            for c in self.calls
            if c.command == command and c.args[: len(prefix)] == tuple(prefix)
        ]


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def commands(runner: FakeRunner) -> GitCommands:
    return GitCommands(runner, git_executable="git", gh_executable="gh")


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    path = tmp_path / "worktree"
    path.mkdir()
    return path


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Keep AGENT_WORKBENCH_* variables and stray .env files out of tests."""
    for key in list(os.environ):
        if key.startswith("AGENT_WORKBENCH_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    clear_log_context()
    yield
    get_settings.cache_clear()
    clear_log_context()


# =============================================================================
# Real repositories
# =============================================================================


def git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args], cwd=cwd, capture_output=True, text=True, check=True
    )
    return result.stdout.strip()


@pytest.fixture
def git_remote_repo(tmp_path: Path) -> tuple[Path, Path]:
    """A clone with one commit on ``main`` and a local bare origin."""
    if not GIT_AVAILABLE:
        pytest.skip("git is not installed")

    origin = tmp_path / "origin.git"
    git(tmp_path, "init", "--bare", "-b", "main", str(origin))

    repo = tmp_path / "clone"
    repo.mkdir()
    git(repo, "init", "-b", "main")
    git(repo, "config", "user.email", "test@example.com")
    git(repo, "config", "user.name", "Test User")
    git(repo, "config", "commit.gpgsign", "false")
    git(repo, "remote", "add", "origin", str(origin))
    (repo / "README.md").write_text("# Test\n")
    git(repo, "add", "README.md")
    git(repo, "commit", "-m", "Initial commit")
    git(repo, "push", "-u", "origin", "main")
    git(repo, "remote", "set-head", "origin", "main")
    return repo, origin


@pytest.fixture
def run_git():
    """``run_git(cwd, *args)`` for arranging repository state in tests."""
    return git
