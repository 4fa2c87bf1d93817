"""
CLI Capability Prober
=====================

Runs each catalog entry's candidate commands with the version flag and turns
the result into a CliProviderStatus.

Candidate selection, per entry:
1. the first candidate that runs successfully;
2. else the first candidate that exists but fails, so a broken install is
   reported instead of being hidden behind "not found";
3. else the last candidate's not-found result.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from ..core.logging import Timer
from ..core.safe_subprocess import CommandRunner
from ..models import CliProviderStatus
from .catalog import (
    DEFAULT_CATALOG,
    CliDefinition,
    ProbeResult,
    resolve_message,
    resolve_status,
)

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 2.0


class CliCapabilityProber:
    """Probes the machine for the CLIs in a catalog."""

    def __init__(
        self,
        runner: CommandRunner,
        catalog: Sequence[CliDefinition] = DEFAULT_CATALOG,
        timeout: float = DEFAULT_PROBE_TIMEOUT,
    ):
        self.runner = runner
        self.catalog = tuple(catalog)
        self.timeout = timeout

    def run_candidate(self, command: str, args: Sequence[str]) -> ProbeResult:
        outcome = self.runner.run(command, list(args), timeout=self.timeout)
        return ProbeResult.from_outcome(command, outcome)

    def try_commands(self, definition: CliDefinition) -> ProbeResult:
        first_failure: ProbeResult | None = None
        last: ProbeResult | None = None
        for command in definition.commands:
            result = self.run_candidate(command, definition.version_args)
            if result.success:
                return result
            if not result.not_found and first_failure is None:
                first_failure = result
            last = result
        if first_failure is not None:
            return first_failure
        assert last is not None  # CliDefinition guarantees at least one command
        return last

    def probe(self, definition: CliDefinition) -> CliProviderStatus:
        with Timer(definition.id) as timer:
            result = self.try_commands(definition)
        status = resolve_status(definition, result)
        message = resolve_message(definition, result, status)
        logger.debug(
            f"Probed {definition.id} via {result.command}: {status.value}",
            extra={"duration_ms": timer.duration_ms},
        )
        return CliProviderStatus(
            id=definition.id,
            name=definition.name,
            status=status,
            version=result.version,
            message=message,
            doc_url=definition.doc_url,
            command=result.command,
        )

    def probe_all(self) -> list[CliProviderStatus]:
        """Probe every catalog entry in order."""
        return [self.probe(definition) for definition in self.catalog]
