"""Inclusion resolver: splice ``@path/to/file.md`` markers into one document.

This mirrors what an AI-agent host does with a CLAUDE.md or AGENTS.md that
includes corpus files, so a configuration can be previewed or flattened
before the host sees it. Commented markers (``<!-- @path -->``) and fenced
code blocks are copied through untouched.
"""

import os
from dataclasses import dataclass, field
from typing import Annotated, Optional

import typer

from agentic_docs.config import DEFAULT_MAX_DEPTH, load_config
from agentic_docs.documents import iter_lines, match_marker
from agentic_docs.utils import UnreadableFileError, find_docs_root, log, read_text, set_log_file


# ============================================
# Errors
# ============================================


class IncludeError(Exception):
    """Base class for inclusion failures."""


class MissingReferenceError(IncludeError):
    def __init__(self, path: str, source: str, line: int):
        self.path = path
        self.source = source
        self.line = line
        super().__init__(f"{source}:{line}: referenced file not found: @{path}")


class CircularIncludeError(IncludeError):
    def __init__(self, chain: list[str]):
        self.chain = chain
        super().__init__("Circular inclusion: " + " -> ".join(chain))


class IncludeDepthError(IncludeError):
    def __init__(self, path: str, max_depth: int):
        self.path = path
        self.max_depth = max_depth
        super().__init__(f"Inclusion nested deeper than {max_depth} levels at @{path}")


# ============================================
# Resolution
# ============================================


@dataclass
class ExpandResult:
    text: str
    included: list[str] = field(default_factory=list)   # resolved paths, first-inclusion order
    missing: list[str] = field(default_factory=list)    # marker paths that did not resolve


MISSING_PLACEHOLDER = "<!-- agentic-docs: missing @{path} -->"


def resolve_reference_path(ref_path: str, base_dir: str) -> str:
    """Map a marker path to a filesystem path.

    Pure function: '~' is expanded, absolute paths are kept, everything else
    is joined to base_dir. The result is normalised.
    """
    path = os.path.expanduser(ref_path)
    if not os.path.isabs(path):
        path = os.path.join(base_dir, path)
    return os.path.normpath(path)


def _expand(
    text: str,
    source: str,
    base_dir: str,
    stack: list[str],
    strict: bool,
    max_depth: int,
    result: ExpandResult,
) -> str:
    out = []
    for number, line, in_fence, in_comment in iter_lines(text):
        ref = None if in_fence or in_comment else match_marker(line)
        if ref is None or not ref.active:
            out.append(line)
            continue

        path = resolve_reference_path(ref.path, base_dir)
        real = os.path.realpath(path)
        if real in stack:
            raise CircularIncludeError(stack + [real])
        if len(stack) > max_depth:
            raise IncludeDepthError(ref.path, max_depth)

        if not os.path.isfile(path):
            if strict:
                raise MissingReferenceError(ref.path, source, number)
            result.missing.append(ref.path)
            out.append(MISSING_PLACEHOLDER.format(path=ref.path))
            continue

        if path not in result.included:
            result.included.append(path)
        spliced = _expand(read_text(path), path, base_dir, stack + [real], strict, max_depth, result)
        out.append(spliced.rstrip("\n"))
    return "\n".join(out)


def expand(
    text: str,
    base_dir: str,
    *,
    strict: bool = True,
    max_depth: int = DEFAULT_MAX_DEPTH,
    source: str = "<text>",
) -> ExpandResult:
    """Replace every active marker in text with the referenced file's content.

    Included files are expanded recursively against the same base_dir. With
    strict=False, missing files leave a placeholder comment and are listed in
    the result instead of raising MissingReferenceError.
    """
    result = ExpandResult(text="")
    # Text without a backing file gets a sentinel so nesting depth counts the same.
    stack = [os.path.realpath(source)] if os.path.isfile(source) else ["<text>"]
    result.text = _expand(text, source, base_dir, stack, strict, max_depth, result)
    return result


def expand_file(
    path: str,
    base_dir: str | None = None,
    *,
    strict: bool = True,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> ExpandResult:
    """Read a host file (e.g. CLAUDE.md) and expand its markers.

    base_dir defaults to the directory holding the file.
    """
    if base_dir is None:
        base_dir = os.path.dirname(os.path.abspath(path))
    return expand(read_text(path), base_dir, strict=strict, max_depth=max_depth, source=path)


# ============================================
# Commands
# ============================================


def register(app: typer.Typer) -> None:
    """Register resolver commands on the shared app."""
    app.command()(resolve)


def resolve(
    file: Annotated[str, typer.Argument(help="Host file to expand, e.g. CLAUDE.md")],
    base_dir: Annotated[
        str, typer.Option(help="Directory marker paths are relative to (default: the file's directory)")
    ] = "",
    output: Annotated[str, typer.Option("--output", "-o", help="Write the result here instead of stdout")] = "",
    lenient: Annotated[
        bool, typer.Option(help="Leave a placeholder for missing files instead of failing")
    ] = False,
    max_depth: Annotated[
        Optional[int], typer.Option(help="Maximum inclusion nesting (default: from agentic-docs.toml)")
    ] = None,
) -> None:
    """Expand every @path marker in FILE into one document."""
    config = load_config(find_docs_root(os.path.dirname(os.path.abspath(file))))
    set_log_file(config.log_file)
    if max_depth is None:
        max_depth = config.max_depth

    try:
        result = expand_file(file, base_dir or None, strict=not lenient, max_depth=max_depth)
    except FileNotFoundError:
        log(f"File not found: {file}", style="bold red")
        raise typer.Exit(code=1)
    except (IncludeError, UnreadableFileError) as exc:
        log(str(exc), style="bold red")
        raise typer.Exit(code=1)
    except OSError as exc:
        log(f"Cannot read {exc.filename or file}: {exc.strerror}", style="bold red")
        raise typer.Exit(code=1)

    for missing in result.missing:
        log(f"Missing reference left in place: @{missing}", style="yellow")

    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(result.text)
        log(f"Wrote {output} ({len(result.included)} files included)", style="green")
    else:
        typer.echo(result.text, nl=False)
