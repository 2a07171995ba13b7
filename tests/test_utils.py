"""Tests for root discovery, path helpers, logging, and version formatting."""

import pytest

from agentic_docs import utils
from agentic_docs.utils import UnreadableFileError, find_docs_root, log, plural, read_text, set_log_file
from agentic_docs.version import PACKAGE_VERSION, format_version


# --- find_docs_root ---

def test_finds_config_file_in_ancestor(tmp_path):
    (tmp_path / "agentic-docs.toml").write_text("", encoding="utf-8")
    nested = tmp_path / "rails" / "drafts"
    nested.mkdir(parents=True)
    assert find_docs_root(str(nested)) == str(tmp_path)


def test_finds_git_checkout(tmp_path):
    (tmp_path / ".git").mkdir()
    (tmp_path / "docker").mkdir()
    assert find_docs_root(str(tmp_path / "docker")) == str(tmp_path)


def test_nearest_marker_wins(tmp_path):
    (tmp_path / ".git").mkdir()
    inner = tmp_path / "conventions"
    inner.mkdir()
    (inner / "agentic-docs.toml").write_text("", encoding="utf-8")
    assert find_docs_root(str(inner)) == str(inner)


# --- path helpers ---

def test_read_text_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_text(str(tmp_path / "missing.md"))


def test_read_text_invalid_utf8_names_the_file(tmp_path):
    path = tmp_path / "models.md"
    path.write_bytes(b"caf\xe9\n")
    with pytest.raises(UnreadableFileError) as excinfo:
        read_text(str(path))
    assert excinfo.value.path == str(path)
    assert "models.md is not valid UTF-8" in str(excinfo.value)


def test_plural():
    assert plural(1, "module") == "1 module"
    assert plural(0, "module") == "0 modules"
    assert plural(17, "module") == "17 modules"


# --- logging ---

def test_log_appends_to_configured_file(tmp_path):
    log_file = tmp_path / "agentic-docs.log"
    set_log_file(str(log_file))
    try:
        log("first")
        log("second", style="red")
    finally:
        set_log_file("")
    assert log_file.read_text(encoding="utf-8") == "first\nsecond\n"


def test_log_survives_unwritable_log_file(tmp_path):
    set_log_file(str(tmp_path / "no-such-dir" / "x.log"))
    try:
        log("still fine")
    finally:
        set_log_file("")
    assert utils._log_file == ""


# --- version ---

def test_version_without_git_is_bare():
    assert format_version(None, None, False) == PACKAGE_VERSION


def test_version_with_commit_and_dirty_tree():
    assert format_version("3a7f2c1", "2026-02-13", True) == f"{PACKAGE_VERSION} (2026-02-13 g3a7f2c1+dirty)"
