"""
CLI Provider Catalog
====================

Static definitions of the command-line tools the workbench knows how to
drive: coding-agent CLIs plus the runtimes they need.

The catalog is an immutable tuple of CliDefinition records. It is passed to
the prober explicitly, so tests and users can supply their own. Extra
entries can be loaded from YAML:

    providers:
      - id: aider
        name: Aider
        commands: [aider]
        version_args: ["--version"]
        doc_url: https://aider.chat/docs/install.html
"""

from __future__ import annotations

import os
import shutil
import sys
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..core.exceptions import CatalogLoadError, ErrorContext
from ..core.safe_subprocess import CommandOutcome, is_command_safe
from ..git.classifiers import extract_version, is_command_not_found
from ..models import CliStatus


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of running one candidate command with its version flag."""

    command: str
    outcome: CommandOutcome
    version: str | None = None

    @classmethod
    def from_outcome(cls, command: str, outcome: CommandOutcome) -> "ProbeResult":
        version = extract_version(outcome.stdout) or extract_version(outcome.stderr)
        return cls(command=command, outcome=outcome, version=version)

    @property
    def success(self) -> bool:
        return self.outcome.success

    @property
    def not_found(self) -> bool:
        return is_command_not_found(self.outcome)


StatusResolver = Callable[["CliDefinition", ProbeResult], CliStatus]
MessageResolver = Callable[["CliDefinition", ProbeResult, CliStatus], "str | None"]


@dataclass(frozen=True)
class CliDefinition:
    """One catalog entry."""

    id: str
    name: str
    commands: tuple[str, ...]
    version_args: tuple[str, ...] = ("--version",)
    doc_url: str | None = None
    status_resolver: StatusResolver | None = None
    message_resolver: MessageResolver | None = None

    def __post_init__(self):
        if not self.commands:
            raise ValueError(f"CLI definition {self.id!r} has no candidate commands")


# =============================================================================
# Classification
# =============================================================================


def default_status(definition: CliDefinition, result: ProbeResult) -> CliStatus:
    """connected on success; missing when absent; error when present but failing."""
    if result.success:
        return CliStatus.CONNECTED
    if result.not_found:
        return CliStatus.MISSING
    return CliStatus.ERROR


def default_message(
    definition: CliDefinition, result: ProbeResult, status: CliStatus
) -> str | None:
    if status == CliStatus.MISSING:
        return f"{definition.name} was not found in PATH."
    if status == CliStatus.ERROR:
        return result.outcome.error_text or None
    return None


def resolve_status(definition: CliDefinition, result: ProbeResult) -> CliStatus:
    if definition.status_resolver is not None:
        return definition.status_resolver(definition, result)
    return default_status(definition, result)


def resolve_message(
    definition: CliDefinition, result: ProbeResult, status: CliStatus
) -> str | None:
    if definition.message_resolver is not None:
        return definition.message_resolver(definition, result, status)
    return default_message(definition, result, status)


# =============================================================================
# Custom resolvers
# =============================================================================

CODEX_INSTALL_PATHS = (
    "~/.npm-global/bin/codex",
    "/usr/local/bin/codex",
    "/opt/homebrew/bin/codex",
)


def is_codex_installed() -> bool:
    """Installation check for the Codex CLI: PATH, then common npm/Homebrew bins."""
    if shutil.which("codex"):
        return True
    return any(os.path.isfile(os.path.expanduser(p)) for p in CODEX_INSTALL_PATHS)


def installation_check_status(
    check: Callable[[], bool],
) -> StatusResolver:
    """Status resolver that trusts ``check`` over the version probe."""

    def resolver(definition: CliDefinition, result: ProbeResult) -> CliStatus:
        try:
            installed = check()
        except OSError:
            return CliStatus.CONNECTED if result.success else CliStatus.MISSING
        return CliStatus.CONNECTED if installed else CliStatus.MISSING

    return resolver


def codex_message(
    definition: CliDefinition, result: ProbeResult, status: CliStatus
) -> str | None:
    if status == CliStatus.CONNECTED:
        return None
    return "Codex CLI not detected. Install @openai/codex to enable Codex agents."


def api_key_status(env_var: str) -> StatusResolver:
    """needs_key when the tool runs but ``env_var`` is unset."""

    def resolver(definition: CliDefinition, result: ProbeResult) -> CliStatus:
        if not result.success:
            return default_status(definition, result)
        return CliStatus.CONNECTED if os.environ.get(env_var) else CliStatus.NEEDS_KEY

    return resolver


def api_key_message(env_var: str, purpose: str) -> MessageResolver:
    def resolver(
        definition: CliDefinition, result: ProbeResult, status: CliStatus
    ) -> str | None:
        if status == CliStatus.NEEDS_KEY:
            return f"Set {env_var} to unlock {purpose}."
        return default_message(definition, result, status)

    return resolver


# =============================================================================
# Built-in catalog
# =============================================================================


def python_commands(platform: str = sys.platform) -> tuple[str, ...]:
    if platform == "win32":
        return ("python", "py", "python3")
    return ("python3", "python")


def build_default_catalog(platform: str = sys.platform) -> tuple[CliDefinition, ...]:
    return (
        CliDefinition(
            id="codex",
            name="Codex CLI",
            commands=("codex",),
            doc_url="https://github.com/openai/codex",
            status_resolver=installation_check_status(is_codex_installed),
            message_resolver=codex_message,
        ),
        CliDefinition(
            id="claude",
            name="Claude Code CLI",
            commands=("claude",),
            doc_url="https://docs.anthropic.com/claude/docs/claude-code",
        ),
        CliDefinition(
            id="cursor",
            name="Cursor CLI",
            commands=("cursor-agent", "cursor"),
            doc_url="https://cursor.sh",
        ),
        CliDefinition(
            id="gemini",
            name="Gemini CLI",
            commands=("gemini",),
            doc_url="https://github.com/google-gemini/gemini-cli",
        ),
        CliDefinition(
            id="openai",
            name="OpenAI CLI",
            commands=("openai",),
            doc_url="https://platform.openai.com/docs/guides/openai-cli",
            status_resolver=api_key_status("OPENAI_API_KEY"),
            message_resolver=api_key_message("OPENAI_API_KEY", "OpenAI workflows"),
        ),
        CliDefinition(
            id="node",
            name="Node.js",
            commands=("node",),
            doc_url="https://nodejs.org/en/download/",
        ),
        CliDefinition(
            id="git",
            name="Git",
            commands=("git",),
            doc_url="https://git-scm.com/downloads",
        ),
        CliDefinition(
            id="python",
            name="Python",
            commands=python_commands(platform),
            doc_url="https://www.python.org/downloads/",
        ),
    )


DEFAULT_CATALOG: tuple[CliDefinition, ...] = build_default_catalog()


# =============================================================================
# YAML extension
# =============================================================================


class _CatalogEntry(BaseModel):
    """Schema of one YAML catalog entry."""

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    commands: list[str] = Field(min_length=1)
    version_args: list[str] = Field(default_factory=lambda: ["--version"])
    doc_url: str | None = None

    @field_validator("commands")
    @classmethod
    def _safe_commands(cls, commands: list[str]) -> list[str]:
        for command in commands:
            if not command.strip():
                raise ValueError("command names must not be blank")
            is_safe, reason = is_command_safe(command)
            if not is_safe:
                raise ValueError(reason)
        return commands

    def to_definition(self) -> CliDefinition:
        return CliDefinition(
            id=self.id,
            name=self.name,
            commands=tuple(self.commands),
            version_args=tuple(self.version_args),
            doc_url=self.doc_url,
        )


def load_catalog_file(path: Path) -> tuple[CliDefinition, ...]:
    """
    Read extra CLI definitions from a YAML file.

    Accepts either a top-level list or a mapping with a ``providers`` list.

    Raises:
        CatalogLoadError: unreadable file, bad YAML or invalid entries
    """
    context = ErrorContext(operation="load_catalog", extra={"path": str(path)})
    try:
        raw = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise CatalogLoadError(
            f"Cannot read provider catalog {path}: {e}", context=context, cause=e
        ) from e
    except yaml.YAMLError as e:
        raise CatalogLoadError(
            f"Invalid YAML in provider catalog {path}: {e}", context=context, cause=e
        ) from e

    if raw is None:
        return ()
    entries = raw.get("providers", []) if isinstance(raw, dict) else raw
    if not isinstance(entries, list):
        raise CatalogLoadError(
            f"Provider catalog {path} must contain a list of providers", context=context
        )

    definitions = []
    for index, entry in enumerate(entries):
        try:
            definitions.append(_CatalogEntry.model_validate(entry).to_definition())
        except ValidationError as e:
            raise CatalogLoadError(
                f"Invalid provider #{index + 1} in {path}: {e.errors()[0]['msg']}",
                context=context,
                cause=e,
            ) from e
    return tuple(definitions)


def merge_catalogs(
    base: Iterable[CliDefinition], extra: Iterable[CliDefinition]
) -> tuple[CliDefinition, ...]:
    """Append ``extra`` to ``base``; an entry with a known id replaces it in place."""
    merged = list(base)
    positions = {definition.id: i for i, definition in enumerate(merged)}
    for definition in extra:
        if definition.id in positions:
            merged[positions[definition.id]] = definition
        else:
            positions[definition.id] = len(merged)
            merged.append(definition)
    return tuple(merged)
