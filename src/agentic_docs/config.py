"""Configuration constants and loader for the documentation corpus tools.

Constants describe the corpus layout contract (each topic directory exposes a
README.md and an index.md) and the checks the linter knows about. load_config()
reads an optional agentic-docs.toml from the corpus root, then applies
environment overrides.
"""

import os
import tomllib
from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Corpus layout
# ---------------------------------------------------------------------------

INDEX_FILENAME = "index.md"
README_FILENAME = "README.md"
MARKDOWN_SUFFIX = ".md"
CONFIG_FILENAME = "agentic-docs.toml"

DEFAULT_MAX_DEPTH = 10
DEFAULT_IGNORE_DIRS = {"node_modules", "__pycache__"}

# Status words in the root README's status table that exempt a module from
# the orphan check.
PLANNED_KEYWORDS = ("planned", "unreleased", "coming soon", "wip")


# ---------------------------------------------------------------------------
# Checks: id -> default severity
# ---------------------------------------------------------------------------

CHECK_SEVERITIES = {
    "missing-reference": "error",
    "foreign-reference": "warning",
    "duplicate-reference": "warning",
    "orphan-module": "error",
    "broken-link": "error",
    "module-count": "error",
    "missing-index": "warning",
    "missing-readme": "warning",
}

VALID_CHECKS = set(CHECK_SEVERITIES)


@dataclass
class DocsConfig:
    """Settings for one corpus."""

    root: str = "."
    ignore_dirs: set[str] = field(default_factory=lambda: set(DEFAULT_IGNORE_DIRS))
    disabled_checks: set[str] = field(default_factory=set)
    max_depth: int = DEFAULT_MAX_DEPTH
    log_file: str = ""


def validate_checks(names: list[str]) -> set[str]:
    """Return names as a set, or exit listing the valid check ids."""
    unknown = sorted(set(names) - VALID_CHECKS)
    if unknown:
        allowed = ", ".join(sorted(VALID_CHECKS))
        raise SystemExit(f"Unknown check(s): {', '.join(unknown)}. Valid checks: {allowed}")
    return set(names)


def _string_list(file_data: dict, key: str) -> list[str]:
    """Return a list-of-strings setting, or exit naming the bad key."""
    value = file_data.get(key, [])
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise SystemExit(f"Invalid {key} '{value}': expected a list of strings")
    return value


def load_config(root: str = ".", config_path: str | None = None) -> DocsConfig:
    """Load configuration from agentic-docs.toml and environment variables.

    Priority: environment variables > config file > defaults. The config file
    is looked up in the corpus root unless config_path is given. A relative
    log_file from the config file is taken relative to the corpus root.
    """
    root = os.path.abspath(root)
    if config_path is None:
        config_path = os.path.join(root, CONFIG_FILENAME)

    file_data: dict = {}
    if os.path.exists(config_path):
        with open(config_path, "rb") as f:
            file_data = tomllib.load(f)

    ignore_dirs = set(DEFAULT_IGNORE_DIRS) | set(_string_list(file_data, "ignore_dirs"))
    disabled = validate_checks(_string_list(file_data, "disabled_checks"))

    max_depth_raw = os.getenv("AGENTIC_DOCS_MAX_DEPTH", file_data.get("max_depth", DEFAULT_MAX_DEPTH))
    try:
        max_depth = int(max_depth_raw)
    except (TypeError, ValueError):
        raise SystemExit(f"Invalid max_depth '{max_depth_raw}': expected an integer")

    log_file = file_data.get("log_file", "")
    if log_file:
        log_file = os.path.join(root, os.path.expanduser(log_file))

    return DocsConfig(
        root=root,
        ignore_dirs=ignore_dirs,
        disabled_checks=disabled,
        max_depth=max_depth,
        log_file=os.getenv("AGENTIC_DOCS_LOG_FILE", log_file),
    )
