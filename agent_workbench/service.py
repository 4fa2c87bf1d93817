"""
Workflow Service
================

Async facade the UI layer talks to. One method per user intent; each one
runs the synchronous managers in a worker thread and turns every outcome,
including failures, into a tagged result model. Nothing raises past this
layer.

Usage:
    service = WorkflowService.from_settings()
    result = await service.get_branch_status("/path/to/repo")
    print(result.to_payload())
"""

from __future__ import annotations

import asyncio
import contextvars
import functools
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any, Mapping, TypeVar

from pydantic import ValidationError

from .core.config import Settings, get_settings
from .core.exceptions import (
    ErrorContext,
    NotARepositoryError,
    WorkbenchError,
    get_error_code,
    user_message,
)
from .core.logging import Timer, log_context, log_exception, set_correlation_id, timed
from .core.safe_subprocess import ProcessRunner
from .git import (
    BranchStateResolver,
    CommitPushSequencer,
    GitCommands,
    HostingStatusChecker,
    PullRequestManager,
)
from .models import (
    BranchStatusResult,
    CliProvidersResult,
    CommitPushResult,
    GithubStatus,
    PrCreateRequest,
    PullRequestCreateResult,
    PullRequestStatusResult,
    RepositoryInfoResult,
)
from .providers import (
    DEFAULT_CATALOG,
    CliCapabilityProber,
    load_catalog_file,
    merge_catalogs,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class WorkflowService:
    """Git/GitHub workflow operations and CLI discovery for the UI layer."""

    def __init__(
        self,
        commands: GitCommands,
        prober: CliCapabilityProber,
        settings: Settings | None = None,
    ):
        self.settings = settings or Settings()
        self.commands = commands
        self.prober = prober
        self.branches = BranchStateResolver(
            commands, fallback_default_branch=self.settings.fallback_default_branch
        )
        self.sequencer = CommitPushSequencer(commands, self.branches)
        self.pull_requests = PullRequestManager(
            commands,
            self.branches,
            self.sequencer,
            commit_message=self.settings.pr_commit_message,
        )
        self.hosting = HostingStatusChecker(
            commands,
            fallback_default_branch=self.settings.fallback_default_branch,
            probe_timeout=self.settings.probe_timeout,
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "WorkflowService":
        """
        Wire real process runners from settings.

        git/gh calls run unguarded with the configured git timeout; CLI
        probes run through the command block-list with the probe timeout.

        Raises:
            ConfigurationError: the provider catalog file cannot be loaded
        """
        settings = settings or get_settings()
        commands = GitCommands.from_settings(
            settings, ProcessRunner(max_output=settings.max_output_bytes)
        )

        catalog = DEFAULT_CATALOG
        if settings.provider_catalog_file:
            catalog = merge_catalogs(
                catalog, load_catalog_file(settings.provider_catalog_file)
            )
        probe_runner = ProcessRunner(
            default_timeout=settings.probe_timeout,
            max_output=settings.max_output_bytes,
            guard_commands=True,
        )
        prober = CliCapabilityProber(
            probe_runner, catalog=catalog, timeout=settings.probe_timeout
        )
        return cls(commands, prober, settings)

    # ==================== Plumbing ====================

    async def _offload(self, func: Callable[..., T], *args: Any) -> T:
        """Run a blocking call in the default executor, keeping log context."""
        loop = asyncio.get_running_loop()
        ctx = contextvars.copy_context()
        return await loop.run_in_executor(
            None, functools.partial(ctx.run, func, *args)
        )

    async def _call(
        self,
        operation: str,
        workspace: Path | str | None,
        func: Callable[..., T],
        *args: Any,
    ) -> tuple[T | None, str | None]:
        """
        Run one operation under its own correlation id.

        Returns:
            (value, None) on success, (None, error message) on failure
        """
        set_correlation_id()
        with log_context(operation=operation, workspace=str(workspace or "")):
            with Timer(operation) as timer:
                try:
                    value = await self._offload(func, *args)
                except WorkbenchError as e:
                    logger.warning(
                        f"{operation} failed: {e}",
                        extra={"error_code": e.error_code, "stage": e.context.stage},
                    )
                    return None, user_message(e)
                except Exception as e:
                    log_exception(logger, f"{operation} failed unexpectedly", e)
                    return None, user_message(e)
            logger.info(
                f"{operation} succeeded",
                extra={"duration_ms": timer.duration_ms, "status": "success"},
            )
            return value, None

    def _require_workspace(self, workspace: Path, operation: str) -> None:
        if not workspace.is_dir():
            raise NotARepositoryError(
                f"Workspace path does not exist: {workspace}",
                context=ErrorContext(operation=operation, workspace=str(workspace)),
            )
        self.sequencer.ensure_repository(workspace, operation=operation)

    # ==================== Branch status ====================

    @timed()
    async def get_branch_status(self, workspace_path: Path | str) -> BranchStatusResult:
        workspace = Path(workspace_path)

        def resolve():
            self._require_workspace(workspace, "get_branch_status")
            return self.branches.resolve(workspace)

        status, error = await self._call("get_branch_status", workspace, resolve)
        if error is not None:
            return BranchStatusResult(success=False, error=error)
        return BranchStatusResult(
            success=True,
            branch=status.current_branch,
            default_branch=status.default_branch,
            ahead=status.ahead,
            behind=status.behind,
        )

    # ==================== Commit & push ====================

    @timed()
    async def commit_and_push(
        self,
        workspace_path: Path | str,
        commit_message: str | None = None,
        create_branch_if_on_default: bool | None = None,
        branch_prefix: str | None = None,
    ) -> CommitPushResult:
        workspace = Path(workspace_path)
        message = (commit_message or "").strip() or self.settings.commit_message
        create_branch = (
            self.settings.create_branch_if_on_default
            if create_branch_if_on_default is None
            else create_branch_if_on_default
        )
        prefix = (branch_prefix or "").strip().strip("/") or self.settings.branch_prefix

        def run():
            self._require_workspace(workspace, "commit_and_push")
            return self.sequencer.commit_and_push(
                workspace,
                message,
                create_branch_if_on_default=create_branch,
                branch_prefix=prefix,
            )

        summary, error = await self._call("commit_and_push", workspace, run)
        if error is not None:
            return CommitPushResult(success=False, error=error)
        return CommitPushResult(success=True, branch=summary.branch, output=summary.output)

    # ==================== Pull requests ====================

    @timed()
    async def create_pull_request(
        self, request: PrCreateRequest | Mapping[str, Any]
    ) -> PullRequestCreateResult:
        if not isinstance(request, PrCreateRequest):
            try:
                request = PrCreateRequest.model_validate(dict(request))
            except ValidationError as e:
                logger.warning(f"Rejected pull request request: {e.error_count()} error(s)")
                return PullRequestCreateResult(
                    success=False, error=f"Invalid pull request request: {e}"
                )

        def run():
            self._require_workspace(request.workspace_path, "create_pull_request")
            return self.pull_requests.create_pull_request(request)

        created, error = await self._call(
            "create_pull_request", request.workspace_path, run
        )
        if error is not None:
            return PullRequestCreateResult(success=False, error=error)
        return PullRequestCreateResult(success=True, url=created.url, output=created.output)

    @timed()
    async def get_pull_request_status(
        self, workspace_path: Path | str
    ) -> PullRequestStatusResult:
        workspace = Path(workspace_path)

        def run():
            self._require_workspace(workspace, "get_pull_request_status")
            return self.pull_requests.get_pull_request_status(workspace)

        pr, error = await self._call("get_pull_request_status", workspace, run)
        if error is not None:
            return PullRequestStatusResult(success=False, error=error)
        return PullRequestStatusResult(success=True, pr=pr)

    # ==================== CLI providers ====================

    async def _probe_parallel(self):
        return list(
            await asyncio.gather(
                *(
                    self._offload(self.prober.probe, definition)
                    for definition in self.prober.catalog
                )
            )
        )

    @timed()
    async def list_cli_providers(self) -> CliProvidersResult:
        set_correlation_id()
        with log_context(operation="list_cli_providers"):
            try:
                if self.settings.probe_parallel:
                    providers = await self._probe_parallel()
                else:
                    providers = await self._offload(self.prober.probe_all)
            except Exception as e:
                log_exception(logger, "list_cli_providers failed", e)
                return CliProvidersResult(success=False, error=user_message(e))
        return CliProvidersResult(success=True, providers=providers)

    # ==================== Hosting ====================

    @timed()
    async def get_github_status(self) -> GithubStatus:
        status, error = await self._call(
            "get_github_status", None, self.hosting.github_status
        )
        if error is not None:
            return GithubStatus(installed=False, authenticated=False)
        return status

    @timed()
    async def get_repository_info(self, project_path: Path | str) -> RepositoryInfoResult:
        project = Path(project_path)
        info, error = await self._call(
            "get_repository_info", project, self.hosting.repository_info, project
        )
        if error is not None:
            return RepositoryInfoResult(success=False, error=error)
        return RepositoryInfoResult(
            success=True, repository=info.repository, branch=info.default_branch
        )


def describe_failure(error: Exception) -> dict[str, Any]:
    """Log-friendly summary of an exception for callers outside the facade."""
    if isinstance(error, WorkbenchError):
        return error.to_dict()
    return {"error_code": get_error_code(error), "message": user_message(error)}
