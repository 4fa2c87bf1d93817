"""
Output Classifiers
==================

git and gh report most conditions only as free text. Every rule that turns
that text into a decision lives here, one function per rule, so a change in
tool wording is fixed in one place.
"""

from __future__ import annotations

import re

from ..core.safe_subprocess import SPAWN_NOT_FOUND, CommandOutcome

_NOTHING_TO_COMMIT_RE = re.compile(r"nothing to commit", re.IGNORECASE)
_NO_PR_RE = re.compile(r"no pull requests? found|not found", re.IGNORECASE)
_URL_RE = re.compile(r"https?://\S+")
_VERSION_RE = re.compile(r"\d+\.\d+(\.\d+)?")
_AHEAD_RE = re.compile(r"ahead\s+(\d+)", re.IGNORECASE)
_BEHIND_RE = re.compile(r"behind\s+(\d+)", re.IGNORECASE)
_HEAD_BRANCH_RE = re.compile(r"^\s*HEAD branch:\s*(\S+)\s*$", re.MULTILINE)

# scp-like syntax: git@github.com:owner/repo.git
_SCP_REMOTE_RE = re.compile(r"^(?:[\w.+-]+@)?[\w.-]+:(?P<path>[^/\\].*)$")
# URL syntax: https://github.com/owner/repo, ssh://git@host:22/owner/repo.git
_URL_REMOTE_RE = re.compile(
    r"^[a-z][a-z0-9+.-]*://(?:[^@/]+@)?[^/]+/(?P<path>.+)$", re.IGNORECASE
)


def is_nothing_to_commit(text: str) -> bool:
    """True when git refused to commit because the index matches HEAD."""
    return bool(text) and bool(_NOTHING_TO_COMMIT_RE.search(text))


def is_no_pull_request(text: str) -> bool:
    """True when gh reports that the branch has no pull request."""
    return bool(text) and bool(_NO_PR_RE.search(text))


def is_command_not_found(outcome: CommandOutcome) -> bool:
    """True when the executable does not exist (as opposed to exiting badly)."""
    return bool(outcome.spawn_error) and outcome.spawn_error.startswith(SPAWN_NOT_FOUND)


def is_dirty(porcelain: str) -> bool:
    """True when ``git status --porcelain`` lists anything."""
    return bool(porcelain.strip())


def parse_count(text: str) -> int | None:
    """Parse a single integer such as ``git rev-list --count`` output."""
    try:
        return max(int(text.strip()), 0)
    except ValueError:
        return None


def parse_left_right_counts(text: str) -> tuple[int, int] | None:
    """
    Parse ``git rev-list --left-right --count A...B`` output.

    Returns:
        (left, right) commit counts, or None if the output has fewer than
        two numeric columns
    """
    parts = text.split()
    if len(parts) < 2:
        return None
    left = parse_count(parts[0])
    right = parse_count(parts[1])
    if left is None or right is None:
        return None
    return left, right


def parse_status_ahead_behind(text: str) -> tuple[int, int]:
    """
    Read ``ahead N`` / ``behind N`` markers from the first line of
    ``git status -sb`` (``## main...origin/main [ahead 2, behind 1]``).

    Returns:
        (ahead, behind); a missing marker counts as 0
    """
    first_line = text.splitlines()[0] if text else ""
    ahead = _AHEAD_RE.search(first_line)
    behind = _BEHIND_RE.search(first_line)
    return (
        int(ahead.group(1)) if ahead else 0,
        int(behind.group(1)) if behind else 0,
    )


def parse_remote_head_branch(text: str) -> str | None:
    """Extract the branch after ``HEAD branch:`` in ``git remote show`` output."""
    match = _HEAD_BRANCH_RE.search(text or "")
    if not match:
        return None
    branch = match.group(1)
    if branch.startswith("("):  # "(unknown)" when the remote has no HEAD
        return None
    return branch


def parse_repo_slug(remote_url: str) -> str | None:
    """
    Extract ``owner/repo`` from a remote URL.

    Handles scp-like SSH (``git@host:owner/repo.git``) and URL forms
    (``https://host/owner/repo``, ``ssh://git@host/owner/repo.git``).
    Local paths yield None.
    """
    url = (remote_url or "").strip()
    if not url:
        return None

    if "://" in url:
        match = _URL_REMOTE_RE.match(url)
    else:
        match = _SCP_REMOTE_RE.match(url)
    if not match:
        return None

    path = match.group("path").rstrip("/")
    if path.endswith(".git"):
        path = path[: -len(".git")]
    segments = [s for s in path.split("/") if s]
    if len(segments) < 2:
        return None
    return f"{segments[-2]}/{segments[-1]}"


def extract_first_url(text: str) -> str | None:
    """First URL-shaped token in ``text``."""
    match = _URL_RE.search(text or "")
    return match.group(0) if match else None


def extract_version(text: str) -> str | None:
    """First ``major.minor[.patch]`` token in ``text``."""
    match = _VERSION_RE.search(text or "")
    return match.group(0) if match else None
