"""
Agent Workbench
===============

Git/GitHub workflow orchestration and coding-agent CLI discovery for a
multi-agent development workbench.

Usage:
    from agent_workbench import WorkflowService

    service = WorkflowService.from_settings()
    result = await service.commit_and_push("/path/to/worktree")
"""

__version__ = "0.4.0"

__all__ = [
    "WorkflowService",
    "PrCreateRequest",
    "CliStatus",
    "__version__",
]


def __getattr__(name):
    """Lazy imports to keep ``agent_workbench.__version__`` import-cheap."""
    if name == "WorkflowService":
        from .service import WorkflowService

        return WorkflowService
    elif name in ("PrCreateRequest", "CliStatus"):
        from . import models as _models

        return getattr(_models, name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
