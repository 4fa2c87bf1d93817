"""
Git / GitHub workflow orchestration.

- branch_state: current/default branch and ahead/behind counts
- commit_push: stage, commit and push with upstream creation
- pull_requests: gh pr create / gh pr view
- hosting: gh installation, authentication and repository lookup
- classifiers: text rules applied to git/gh output
"""

from .branch_state import BranchStateResolver
from .commands import GitCommands
from .commit_push import CommitPushSequencer, PushSummary
from .hosting import HostingStatusChecker, RepositoryInfo
from .pull_requests import PullRequestCreated, PullRequestManager, build_create_args

__all__ = [
    "BranchStateResolver",
    "CommitPushSequencer",
    "GitCommands",
    "HostingStatusChecker",
    "PullRequestCreated",
    "PullRequestManager",
    "PushSummary",
    "RepositoryInfo",
    "build_create_args",
]
