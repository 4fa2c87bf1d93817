"""
GitHub CLI Executable Finder
============================

Utility to find the gh (GitHub CLI) executable, with platform-specific fallbacks.
"""

import os
import shutil

_cached_gh_path: str | None = None

HOMEBREW_PATHS = (
    "/opt/homebrew/bin/gh",  # Apple Silicon
    "/usr/local/bin/gh",  # Intel Mac
    "/home/linuxbrew/.linuxbrew/bin/gh",  # Linux Homebrew
)


def invalidate_gh_cache() -> None:
    """Invalidate the cached gh executable path.

    Useful when gh may have been installed or removed while the
    process is running.
    """
    global _cached_gh_path
    _cached_gh_path = None


def _windows_paths() -> list[str]:
    return [
        os.path.expandvars(r"%PROGRAMFILES%\GitHub CLI\gh.exe"),
        os.path.expandvars(r"%PROGRAMFILES(X86)%\GitHub CLI\gh.exe"),
        os.path.expandvars(r"%LOCALAPPDATA%\Programs\GitHub CLI\gh.exe"),
        r"C:\Program Files\GitHub CLI\gh.exe",
    ]


def find_gh_executable(configured: str | None = None) -> str | None:
    """Locate gh without running it.

    Priority order:
    1. Explicitly configured path (AGENT_WORKBENCH_GH_EXECUTABLE); when set,
       nothing else is tried
    2. shutil.which (if gh is in PATH)
    3. Homebrew paths on macOS/Linux
    4. Windows Program Files paths
    """
    if configured:
        if os.path.isfile(configured):
            return configured
        return shutil.which(configured)

    gh_path = shutil.which("gh")
    if gh_path:
        return gh_path

    candidates = _windows_paths() if os.name == "nt" else list(HOMEBREW_PATHS)
    for path in candidates:
        if os.path.isfile(path):
            return path

    return None


def get_gh_executable(configured: str | None = None) -> str:
    """Return the gh command to invoke.

    Falls back to the bare name ``gh`` so that a missing CLI surfaces as a
    normal not-found outcome from the process runner instead of an exception.
    Caches the first successful lookup; use invalidate_gh_cache() to force
    re-detection.
    """
    global _cached_gh_path

    if configured:
        return find_gh_executable(configured) or configured

    if _cached_gh_path is not None:
        return _cached_gh_path

    found = find_gh_executable()
    if found:
        _cached_gh_path = found
        return found
    return "gh"
