"""Tests for splicing @path inclusion markers into a single document."""

import os

import pytest

from agentic_docs.resolver import (
    MISSING_PLACEHOLDER,
    CircularIncludeError,
    IncludeDepthError,
    MissingReferenceError,
    expand,
    expand_file,
    resolve_reference_path,
)


def _write_tree(root, files: dict) -> None:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


DOCKER_CORPUS = {
    "docker/index.md": "@docker/dockerfile.md\n@docker/compose.md\n",
    "docker/dockerfile.md": "## Dockerfile\n\nUse multi-stage builds.\n",
    "docker/compose.md": "## Compose\n\nPin image tags.\n",
}


# --- resolve_reference_path ---

def test_relative_path_joins_base_dir():
    assert resolve_reference_path("rails/models.md", "/srv/conventions") == os.path.normpath(
        "/srv/conventions/rails/models.md"
    )


def test_absolute_path_is_kept(tmp_path):
    target = str(tmp_path / "rails" / "models.md")
    assert resolve_reference_path(target, "/elsewhere") == os.path.normpath(target)


def test_home_path_is_expanded():
    result = resolve_reference_path("~/conventions/rails/models.md", "/base")
    assert result.startswith(os.path.expanduser("~"))
    assert "~" not in result


def test_dot_segments_are_normalized():
    assert resolve_reference_path("./rails/../docker/compose.md", "/base") == os.path.normpath(
        "/base/docker/compose.md"
    )


# --- expand ---

def test_splices_nested_index(tmp_path):
    _write_tree(tmp_path, DOCKER_CORPUS)
    host = "# Project rules\n\n@docker/index.md\n\nKeep PRs small.\n"
    result = expand(host, str(tmp_path))
    assert result.text == (
        "# Project rules\n\n"
        "## Dockerfile\n\nUse multi-stage builds.\n"
        "## Compose\n\nPin image tags.\n"
        "\nKeep PRs small.\n"
    )


def test_included_lists_files_in_first_inclusion_order(tmp_path):
    _write_tree(tmp_path, DOCKER_CORPUS)
    result = expand("@docker/index.md\n@docker/compose.md\n", str(tmp_path))
    names = [os.path.relpath(p, str(tmp_path)).replace(os.sep, "/") for p in result.included]
    assert names == ["docker/index.md", "docker/dockerfile.md", "docker/compose.md"]


def test_commented_marker_is_copied_verbatim(tmp_path):
    _write_tree(tmp_path, DOCKER_CORPUS)
    host = "<!-- @docker/compose.md -->\n"
    assert expand(host, str(tmp_path)).text == host


def test_marker_inside_multiline_comment_is_not_spliced(tmp_path):
    _write_tree(tmp_path, DOCKER_CORPUS)
    host = "<!--\n@docker/compose.md\n-->\n@docker/dockerfile.md\n"
    result = expand(host, str(tmp_path))
    assert result.text == "<!--\n@docker/compose.md\n-->\n## Dockerfile\n\nUse multi-stage builds.\n"
    assert [os.path.basename(p) for p in result.included] == ["dockerfile.md"]


def test_marker_inside_code_fence_is_not_spliced(tmp_path):
    _write_tree(tmp_path, DOCKER_CORPUS)
    host = "```\n@docker/compose.md\n```\n"
    assert expand(host, str(tmp_path)).text == host


def test_text_without_markers_is_unchanged(tmp_path):
    host = "# Rules\n\nNo includes here.\n"
    result = expand(host, str(tmp_path))
    assert result.text == host
    assert result.included == []


def test_missing_reference_raises_in_strict_mode(tmp_path):
    with pytest.raises(MissingReferenceError) as excinfo:
        expand("intro\n@rails/models.md\n", str(tmp_path), source="CLAUDE.md")
    assert excinfo.value.path == "rails/models.md"
    assert excinfo.value.line == 2
    assert "CLAUDE.md:2" in str(excinfo.value)


def test_missing_reference_leaves_placeholder_when_lenient(tmp_path):
    result = expand("@rails/models.md\n", str(tmp_path), strict=False)
    assert result.text == MISSING_PLACEHOLDER.format(path="rails/models.md") + "\n"
    assert result.missing == ["rails/models.md"]


def test_self_inclusion_is_circular(tmp_path):
    _write_tree(tmp_path, {"loop/a.md": "@loop/a.md\n"})
    with pytest.raises(CircularIncludeError):
        expand("@loop/a.md\n", str(tmp_path))


def test_mutual_inclusion_reports_chain(tmp_path):
    _write_tree(tmp_path, {"loop/a.md": "@loop/b.md\n", "loop/b.md": "@loop/a.md\n"})
    with pytest.raises(CircularIncludeError) as excinfo:
        expand("@loop/a.md\n", str(tmp_path))
    chain = [os.path.basename(p) for p in excinfo.value.chain]
    assert chain[-3:] == ["a.md", "b.md", "a.md"]


def test_same_file_twice_is_not_circular(tmp_path):
    _write_tree(tmp_path, {"docker/compose.md": "compose\n"})
    result = expand("@docker/compose.md\n@docker/compose.md\n", str(tmp_path))
    assert result.text == "compose\ncompose\n"
    assert len(result.included) == 1


def test_depth_limit(tmp_path):
    _write_tree(tmp_path, {
        "chain/one.md": "@chain/two.md\n",
        "chain/two.md": "@chain/three.md\n",
        "chain/three.md": "end\n",
    })
    assert expand("@chain/one.md\n", str(tmp_path), max_depth=3).text == "end\n"
    with pytest.raises(IncludeDepthError):
        expand("@chain/one.md\n", str(tmp_path), max_depth=2)


def test_empty_included_file_leaves_blank_line(tmp_path):
    _write_tree(tmp_path, {"rails/empty.md": ""})
    assert expand("a\n@rails/empty.md\nb\n", str(tmp_path)).text == "a\n\nb\n"


# --- expand_file ---

def test_expand_file_defaults_base_dir_to_file_directory(tmp_path):
    _write_tree(tmp_path, DOCKER_CORPUS)
    _write_tree(tmp_path, {"CLAUDE.md": "@docker/compose.md\n"})
    result = expand_file(str(tmp_path / "CLAUDE.md"))
    assert result.text == "## Compose\n\nPin image tags.\n"


def test_expand_file_with_separate_base_dir(tmp_path):
    corpus = tmp_path / "conventions"
    _write_tree(corpus, DOCKER_CORPUS)
    _write_tree(tmp_path, {"project/AGENTS.md": "@docker/dockerfile.md\n"})
    result = expand_file(str(tmp_path / "project" / "AGENTS.md"), base_dir=str(corpus))
    assert "multi-stage" in result.text


def test_expand_file_detects_host_including_itself(tmp_path):
    _write_tree(tmp_path, {"CLAUDE.md": "@CLAUDE.md\n"})
    with pytest.raises(CircularIncludeError):
        expand_file(str(tmp_path / "CLAUDE.md"))
