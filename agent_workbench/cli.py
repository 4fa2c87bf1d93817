#!/usr/bin/env python3
"""
Agent Workbench CLI
===================

Command-line front end for the workflow service. Every command prints its
result payload as JSON on stdout; logs go to stderr.

Usage:
    agent-workbench branch-status /path/to/repo
    agent-workbench commit-push /path/to/repo -m "feat: add parser"
    agent-workbench create-pr /path/to/repo --title "Add parser" --draft
    agent-workbench pr-status /path/to/repo
    agent-workbench providers
    agent-workbench github-status
    agent-workbench repo-info /path/to/repo

Exit status is 0 when the payload reports success, 1 otherwise.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from . import __version__
from .core.config import load_settings
from .core.exceptions import WorkbenchError
from .core.logging import configure_logging
from .models import PrCreateRequest
from .service import WorkflowService, describe_failure

logger = logging.getLogger(__name__)


def _add_workspace_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "workspace",
        nargs="?",
        type=Path,
        default=Path.cwd(),
        help="Working copy (default: current directory)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agent-workbench",
        description="Drive git/gh workflows and detect coding-agent CLIs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        type=str,
        help="Log level (DEBUG, INFO, WARNING, ERROR); overrides AGENT_WORKBENCH_LOG_LEVEL",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit structured JSON log lines on stderr",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        help="Load environment variables from this file before reading settings",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    branch_status = commands.add_parser(
        "branch-status", help="Current/default branch and ahead/behind counts"
    )
    _add_workspace_argument(branch_status)

    commit_push = commands.add_parser("commit-push", help="Stage, commit and push")
    _add_workspace_argument(commit_push)
    commit_push.add_argument("-m", "--message", help="Commit message")
    commit_push.add_argument(
        "--create-branch",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Switch to a new branch when on the default branch",
    )
    commit_push.add_argument("--branch-prefix", help="Prefix for the new branch")

    create_pr = commands.add_parser("create-pr", help="Commit, push and open a pull request")
    _add_workspace_argument(create_pr)
    create_pr.add_argument("--title", help="Pull request title")
    create_pr.add_argument("--body", help="Pull request body")
    create_pr.add_argument("--base", help="Base branch (default: repository default)")
    create_pr.add_argument("--head", help="Head ref (default: owner:branch)")
    create_pr.add_argument("--draft", action="store_true", help="Open as draft")
    create_pr.add_argument("--web", action="store_true", help="Open in the browser")
    create_pr.add_argument("--fill", action="store_true", help="Fill title/body from commits")

    pr_status = commands.add_parser("pr-status", help="Pull request for the current branch")
    _add_workspace_argument(pr_status)

    providers = commands.add_parser("providers", help="Detect installed coding-agent CLIs")
    providers.add_argument(
        "--parallel",
        action="store_true",
        help="Probe all CLIs concurrently",
    )

    commands.add_parser("github-status", help="gh installation and login state")

    repo_info = commands.add_parser("repo-info", help="GitHub repository for a project")
    _add_workspace_argument(repo_info)

    return parser


async def dispatch(service: WorkflowService, args: argparse.Namespace) -> dict[str, Any]:
    """Run the selected command and return its payload."""
    if args.command == "branch-status":
        result = await service.get_branch_status(args.workspace)
    elif args.command == "commit-push":
        result = await service.commit_and_push(
            args.workspace,
            commit_message=args.message,
            create_branch_if_on_default=args.create_branch,
            branch_prefix=args.branch_prefix,
        )
    elif args.command == "create-pr":
        result = await service.create_pull_request(
            PrCreateRequest(
                workspace_path=args.workspace,
                title=args.title,
                body=args.body,
                base=args.base,
                head=args.head,
                draft=args.draft,
                web=args.web,
                fill=args.fill,
            )
        )
    elif args.command == "pr-status":
        result = await service.get_pull_request_status(args.workspace)
    elif args.command == "providers":
        result = await service.list_cli_providers()
    elif args.command == "github-status":
        result = await service.get_github_status()
    elif args.command == "repo-info":
        result = await service.get_repository_info(args.workspace)
    else:
        raise ValueError(f"Unknown command: {args.command}")
    return result.to_payload()


def emit(payload: dict[str, Any]) -> int:
    print(json.dumps(payload, indent=2))
    return 0 if payload.get("success", True) else 1


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # ./.env is read by Settings itself; --env-file layers another file on top
    if args.env_file:
        if not args.env_file.is_file():
            parser.error(f"env file not found: {args.env_file}")
        load_dotenv(args.env_file, override=True)

    overrides: dict[str, Any] = {}
    if getattr(args, "parallel", False):
        overrides["probe_parallel"] = True

    try:
        settings = load_settings(**overrides)
        configure_logging(
            level=args.log_level or settings.log_level,
            structured=args.json_logs or settings.structured_logs,
        )
        service = WorkflowService.from_settings(settings)
    except (WorkbenchError, ValueError) as e:
        configure_logging(level=logging.ERROR, structured=args.json_logs)
        logger.error("Startup failed", extra={"error_code": describe_failure(e)["error_code"]})
        message = e.message if isinstance(e, WorkbenchError) else str(e)
        return emit({"success": False, "error": message})

    return emit(asyncio.run(dispatch(service, args)))


if __name__ == "__main__":
    sys.exit(main())
