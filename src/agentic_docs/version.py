"""Version information with git commit tracking.

The reported version carries the commit date and hash of the checkout the
tool runs from, which tells editable installs apart. Git runs against this
package's repository, never the corpus in the current directory.
"""

import os
import subprocess

PACKAGE_VERSION = "0.4.0"

_REPO_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def _run_git(*args: str) -> str | None:
    """Run git in the tool's own repo. Return stdout, or None on any failure."""
    try:
        result = subprocess.run(
            ["git", "-C", _REPO_DIR, *args],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip()


def format_version(commit: str | None, date: str | None, dirty: bool) -> str:
    """Pure formatter: '0.4.0 (2026-02-13 g3a7f2c1+dirty)', or the bare version without git."""
    if not commit:
        return PACKAGE_VERSION
    suffix = "+dirty" if dirty else ""
    return f"{PACKAGE_VERSION} ({date or 'unknown'} g{commit}{suffix})"


def get_version() -> str:
    commit = _run_git("rev-parse", "--short", "HEAD")
    date = _run_git("log", "-1", "--format=%cs")
    dirty = bool(_run_git("status", "--porcelain"))
    return format_version(commit, date, dirty)
