"""
Safe Subprocess Utilities
=========================

Process runner used by every git, gh and CLI-probe call.

Provides:
- Timeout enforcement (child is killed when it overruns)
- Output capture with size limits
- Security guards against dangerous commands
- Never raises for a non-zero exit, a missing executable or a timeout;
  callers inspect the returned CommandOutcome instead

Usage:
    from agent_workbench.core.safe_subprocess import ProcessRunner

    runner = ProcessRunner()
    outcome = runner.run("git", ["status", "--porcelain"], cwd=repo)
    if outcome.success:
        print(outcome.stdout)
"""

from __future__ import annotations

import errno
import logging
import shlex
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, Sequence

logger = logging.getLogger(__name__)

# Maximum output size to capture per stream (1MB)
MAX_OUTPUT_SIZE = 1024 * 1024

# Prefixes of CommandOutcome.spawn_error
SPAWN_NOT_FOUND = "ENOENT"
SPAWN_TIMED_OUT = "ETIMEDOUT"
SPAWN_BLOCKED = "EBLOCKED"

# Commands that should never be executed
BLOCKED_COMMANDS = frozenset([
    "rm -rf /",
    "rm -rf /*",
    "mkfs",
    "dd if=/dev/zero",
    "dd if=/dev/random",
    ":(){:|:&};:",  # Fork bomb
    "chmod -R 777 /",
    "chown -R",
])

# Dangerous command prefixes
DANGEROUS_PREFIXES = (
    "sudo ",
    "su ",
    "doas ",
)


@dataclass(frozen=True)
class CommandOutcome:
    """Result of a single external process invocation."""

    command: str
    args: tuple[str, ...] = ()
    exit_code: int | None = None
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False
    spawn_error: str | None = None
    cwd: str | None = field(default=None, compare=False)

    @property
    def success(self) -> bool:
        return self.spawn_error is None and self.exit_code == 0

    @property
    def command_line(self) -> str:
        return quote_command([self.command, *self.args])

    @property
    def combined_output(self) -> str:
        """stdout followed by stderr, skipping empty streams."""
        parts = [s.strip() for s in (self.stdout, self.stderr) if s and s.strip()]
        return "\n".join(parts)

    @property
    def error_text(self) -> str:
        """Most useful failure text: stderr, then stdout, then spawn error."""
        if self.stderr.strip():
            return self.stderr.strip()
        if self.stdout.strip():
            return self.stdout.strip()
        if self.spawn_error:
            return self.spawn_error
        if self.exit_code is not None and self.exit_code != 0:
            return f"{self.command_line} exited with status {self.exit_code}"
        return ""


class CommandRunner(Protocol):
    """Anything that can run a command and hand back a CommandOutcome."""

    def run(
        self,
        command: str,
        args: Sequence[str] = (),
        cwd: Path | str | None = None,
        timeout: float | None = None,
        max_output: int | None = None,
    ) -> CommandOutcome: ...


def is_command_safe(command: str | Sequence[str]) -> tuple[bool, str]:
    """
    Check if a command is safe to execute.

    Args:
        command: Command string or sequence

    Returns:
        Tuple of (is_safe, reason)
    """
    if isinstance(command, str):
        cmd_str = command
    else:
        cmd_str = " ".join(str(c) for c in command)

    cmd_lower = cmd_str.lower().strip()

    # Check blocked commands
    for blocked in BLOCKED_COMMANDS:
        if blocked in cmd_lower:
            return False, f"Command contains blocked pattern: {blocked}"

    # Check dangerous prefixes
    for prefix in DANGEROUS_PREFIXES:
        if cmd_lower.startswith(prefix):
            return False, f"Command starts with dangerous prefix: {prefix}"

    return True, ""


def truncate_output(data: bytes | None, max_output: int) -> str:
    """Decode captured bytes, keeping at most ``max_output`` bytes."""
    if not data:
        return ""
    text = data[:max_output].decode("utf-8", errors="replace")
    if len(data) > max_output:
        text += f"\n... (truncated, {len(data) - max_output} bytes omitted)"
    return text


def _spawn_error_text(exc: OSError, command: str) -> str:
    if isinstance(exc, FileNotFoundError):
        return f"{SPAWN_NOT_FOUND}: {command}: command not found"
    symbol = errno.errorcode.get(exc.errno or 0, "EOSERROR")
    return f"{symbol}: {command}: {exc.strerror or exc}"


class ProcessRunner:
    """
    Runs external commands and captures their outcome.

    Args:
        default_timeout: Timeout in seconds applied when a call passes none
            (None means unbounded)
        max_output: Per-stream capture limit in bytes
        env: Environment for the child (None = inherit)
        guard_commands: Refuse command lines matching the block-list. Off for
            git/gh calls whose arguments carry free text (commit messages,
            PR bodies); on for user-extensible probe catalogs.
    """

    def __init__(
        self,
        default_timeout: float | None = None,
        max_output: int = MAX_OUTPUT_SIZE,
        env: dict[str, str] | None = None,
        guard_commands: bool = False,
    ):
        self.default_timeout = default_timeout
        self.max_output = max_output
        self.env = env
        self.guard_commands = guard_commands

    def run(
        self,
        command: str,
        args: Sequence[str] = (),
        cwd: Path | str | None = None,
        timeout: float | None = None,
        max_output: int | None = None,
    ) -> CommandOutcome:
        argv = [command, *[str(a) for a in args]]
        limit = max_output if max_output is not None else self.max_output
        effective_timeout = timeout if timeout is not None else self.default_timeout
        cwd_str = str(cwd) if cwd is not None else None
        base = {"command": command, "args": tuple(argv[1:]), "cwd": cwd_str}

        if self.guard_commands:
            is_safe, reason = is_command_safe(argv)
            if not is_safe:
                logger.warning(f"Refusing to run {quote_command(argv)}: {reason}")
                return CommandOutcome(
                    **base, spawn_error=f"{SPAWN_BLOCKED}: {reason}"
                )

        logger.debug(f"Running: {quote_command(argv)} (cwd={cwd_str})")

        try:
            completed = subprocess.run(
                argv,
                cwd=cwd_str,
                capture_output=True,
                timeout=effective_timeout,
                env=self.env,
                stdin=subprocess.DEVNULL,
            )
        except subprocess.TimeoutExpired as e:
            logger.warning(
                f"Command timed out after {effective_timeout}s: {quote_command(argv)}"
            )
            return CommandOutcome(
                **base,
                stdout=truncate_output(e.stdout, limit),
                stderr=truncate_output(e.stderr, limit),
                timed_out=True,
                spawn_error=f"{SPAWN_TIMED_OUT}: command timed out after {effective_timeout}s",
            )
        except OSError as e:
            return CommandOutcome(**base, spawn_error=_spawn_error_text(e, command))

        return CommandOutcome(
            **base,
            exit_code=completed.returncode,
            stdout=truncate_output(completed.stdout, limit),
            stderr=truncate_output(completed.stderr, limit),
        )


def run_command(
    command: str,
    args: Sequence[str] = (),
    cwd: Path | str | None = None,
    timeout: float | None = None,
    max_output: int = MAX_OUTPUT_SIZE,
) -> CommandOutcome:
    """One-off convenience wrapper around ProcessRunner.run."""
    return ProcessRunner(max_output=max_output).run(
        command, args, cwd=cwd, timeout=timeout
    )


def quote_command(command: Sequence[str]) -> str:
    """
    Quote a command sequence for display or logging.

    Args:
        command: Command and arguments

    Returns:
        Shell-safe quoted string
    """
    return " ".join(shlex.quote(str(arg)) for arg in command)
