"""CLI app definition and command registration."""

import os
from typing import Annotated

import typer
from rich.table import Table

from agentic_docs.checks import (
    check_index_references,
    check_module_count,
    check_orphan_modules,
    count_index_modules,
    find_module_claim,
    load_planned_entries,
)
from agentic_docs.config import DocsConfig, load_config
from agentic_docs.documents import Topic, load_corpus, parse_references
from agentic_docs.utils import UnreadableFileError, console, find_docs_root, log, read_text, set_log_file
from agentic_docs.version import get_version


def _version_callback(value: bool):
    if value:
        console.print(get_version())
        raise typer.Exit()


app = typer.Typer(
    help="Resolve @path inclusion markers and lint AI-agent convention docs.",
    no_args_is_help=True,
)


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option("--version", "-v", help="Show version and exit.", callback=_version_callback, is_eager=True),
    ] = False,
) -> None:
    """Tools for a corpus of includable Markdown convention files."""

# Register commands from submodules
from agentic_docs import checks as _checks_mod
from agentic_docs import index_builder as _index_mod
from agentic_docs import resolver as _resolver_mod

_resolver_mod.register(app)
_checks_mod.register(app)
_index_mod.register(app)


# ============================================
# Commands
# ============================================


def _topic_errors(topic: Topic, planned: set[str], config: DocsConfig) -> bool:
    """True when check would report an error for this topic's index or modules."""
    findings = (
        check_index_references(topic, config.root)
        + check_orphan_modules(topic, planned)
        + check_module_count(topic)
    )
    return any(f.severity == "error" and f.check not in config.disabled_checks for f in findings)


@app.command()
def refs(
    file: Annotated[str, typer.Argument(help="Markdown document to scan")],
    all_refs: Annotated[
        bool, typer.Option("--all", help="Include commented-out <!-- @path --> markers")
    ] = False,
) -> None:
    """List the inclusion markers in a document, with line numbers."""
    try:
        text = read_text(file)
    except FileNotFoundError:
        log(f"File not found: {file}", style="bold red")
        raise typer.Exit(code=1)
    except UnreadableFileError as exc:
        log(str(exc), style="bold red")
        raise typer.Exit(code=1)

    found = [r for r in parse_references(text) if all_refs or r.active]
    if not found:
        log(f"No inclusion markers in {file}", style="yellow")
        return
    for ref in found:
        state = "" if ref.active else "  (inactive)"
        typer.echo(f"{ref.line:>5}  @{ref.path}{state}")


@app.command()
def status(
    root: Annotated[str, typer.Argument(help="Corpus root (default: nearest repo root)")] = "",
) -> None:
    """Quick view of every topic: modules on disk, index entries, README claim."""
    config = load_config(root or find_docs_root(os.getcwd()))
    set_log_file(config.log_file)
    try:
        topics = load_corpus(config.root, config.ignore_dirs)
        planned = load_planned_entries(config.root)
    except UnreadableFileError as exc:
        log(str(exc), style="bold red")
        raise typer.Exit(code=1)
    if not topics:
        log(f"No topic directories under {config.root}", style="yellow")
        return

    table = Table(title=f"Topics in {config.root}")
    table.add_column("Topic", style="bold cyan")
    table.add_column("Modules", justify="right")
    table.add_column("Indexed", justify="right")
    table.add_column("README claim", justify="right")
    table.add_column("State")

    for topic in topics:
        indexed = count_index_modules(topic.index) if topic.index is not None else None
        claim = find_module_claim(topic.readme.text) if topic.readme is not None else None
        claimed = claim[0] if claim else None

        if indexed is None:
            state = "[yellow]no index[/yellow]"
        elif _topic_errors(topic, planned, config):
            state = "[red]drift[/red]"
        else:
            state = "[green]ok[/green]"

        table.add_row(
            topic.name,
            str(len(topic.modules)),
            "-" if indexed is None else str(indexed),
            "-" if claimed is None else str(claimed),
            state,
        )

    console.print(table)
