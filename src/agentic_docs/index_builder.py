"""Regenerate a topic's index.md from the module files on disk.

The entry point of a topic should reference every module in the directory.
build_index_text() rewrites only the run of active ``@topic/module.md`` lines,
so headings, prose, and commented-out markers in an existing index survive.
"""

import os
from typing import Annotated

import typer

from agentic_docs.config import INDEX_FILENAME, load_config
from agentic_docs.documents import Topic, iter_lines, list_topic_dirs, load_topic, match_marker
from agentic_docs.utils import UnreadableFileError, find_docs_root, log, plural, set_log_file


def default_index_heading(topic_name: str) -> str:
    return f"# {topic_name.replace('-', ' ').replace('_', ' ').capitalize()} conventions"


def build_index_text(topic: Topic, existing_text: str | None = None) -> str:
    """Return index.md content listing every module of the topic.

    Pure function over the topic's module list and the current index text.
    The first run of active markers is replaced by one marker per module in
    sorted order and any later active markers are dropped. Modules that the
    index lists as commented-out markers, one-line or inside a multi-line
    HTML comment, stay commented out. The bullet style of the first existing
    marker (e.g. '- @') is reused.
    """
    if existing_text is None:
        markers = [f"@{m}" for m in topic.modules]
        return "\n".join([default_index_heading(topic.name), ""] + markers) + "\n"

    lines = []
    inactive = set()
    prefix = None
    for _number, line, in_fence, in_comment in iter_lines(existing_text):
        ref = None if in_fence else match_marker(line)
        if ref is not None and in_comment:
            ref.active = False
        if ref is not None and not ref.active:
            inactive.add(os.path.normpath(ref.path).replace(os.sep, "/"))
        if ref is not None and ref.active and prefix is None:
            prefix = line[:line.index("@")]
        lines.append((line, ref))

    markers = [f"{prefix or ''}@{m}" for m in topic.modules if m not in inactive]

    out = []
    inserted = False
    for line, ref in lines:
        if ref is None or not ref.active:
            out.append(line)
            continue
        if not inserted:
            out.extend(markers)
            inserted = True

    if not inserted:
        while out and not out[-1].strip():
            out.pop()
        if out:
            out.append("")
        out.extend(markers)
        out.append("")

    return "\n".join(out)


def sync_index(root: str, topic_name: str, write: bool = True) -> bool:
    """Bring <topic>/index.md in line with the modules on disk.

    Returns True when the index content changed (or would change, when
    write is False).
    """
    topic = load_topic(root, topic_name)
    existing = topic.index.text if topic.index is not None else None
    updated = build_index_text(topic, existing)
    if updated == existing:
        return False
    if write:
        path = os.path.join(root, topic_name, INDEX_FILENAME)
        with open(path, "w", encoding="utf-8") as f:
            f.write(updated)
    return True


# ============================================
# Commands
# ============================================


def register(app: typer.Typer) -> None:
    """Register index commands on the shared app."""
    app.command(name="index")(index_cmd)


def index_cmd(
    topic: Annotated[str, typer.Argument(help="Topic directory to update (default: every topic)")] = "",
    root: Annotated[str, typer.Option(help="Corpus root (default: nearest repo root)")] = "",
    check: Annotated[
        bool, typer.Option("--check", help="Report stale indexes without writing; exit 1 if any")
    ] = False,
) -> None:
    """Regenerate index.md so it references every module in the topic."""
    config = load_config(root or find_docs_root(os.getcwd()))
    set_log_file(config.log_file)

    topics = [topic] if topic else list_topic_dirs(config.root, config.ignore_dirs)
    stale = []
    for name in topics:
        if not os.path.isdir(os.path.join(config.root, name)):
            log(f"Topic directory not found: {name}", style="bold red")
            raise typer.Exit(code=1)
        try:
            changed = sync_index(config.root, name, write=not check)
        except UnreadableFileError as exc:
            log(str(exc), style="bold red")
            raise typer.Exit(code=1)
        if changed:
            stale.append(name)
            verb = "is stale" if check else "updated"
            log(f"{name}/{INDEX_FILENAME} {verb}", style="yellow" if check else "green")

    if not stale:
        log(f"All {plural(len(topics), 'topic')} up to date", style="green")
    if check and stale:
        raise typer.Exit(code=1)
