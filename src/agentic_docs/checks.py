"""Documentation consistency checks for a corpus of topic directories.

Each check is a pure function over loaded documents that returns a list of
Finding objects. run_checks() loads the corpus once and runs them all. Known
findings can be recorded in a baseline file and suppressed on later runs.
"""

import json
import os
import re
from dataclasses import asdict, dataclass
from typing import Annotated
from urllib.parse import unquote

import typer

from agentic_docs.config import (
    CHECK_SEVERITIES,
    INDEX_FILENAME,
    PLANNED_KEYWORDS,
    README_FILENAME,
    DocsConfig,
    load_config,
)
from agentic_docs.documents import (
    Document,
    Topic,
    active_references,
    iter_corpus_documents,
    iter_lines,
    load_corpus,
    load_document,
)
from agentic_docs.utils import UnreadableFileError, find_docs_root, log, plural, set_log_file


@dataclass
class Finding:
    """A single consistency problem."""

    check: str
    path: str
    line: int
    message: str
    severity: str  # "error" or "warning"


def _finding(check: str, path: str, line: int, message: str) -> Finding:
    return Finding(check=check, path=path, line=line, message=message, severity=CHECK_SEVERITIES[check])


def _normalize(path: str) -> str:
    return os.path.normpath(path).replace(os.sep, "/")


# ============================================
# Layout contract
# ============================================


def check_topic_layout(topic: Topic) -> list[Finding]:
    """A topic directory should expose both index.md and README.md."""
    findings = []
    if topic.index is None:
        findings.append(_finding(
            "missing-index", f"{topic.name}/", 0,
            f"Topic '{topic.name}' has no {INDEX_FILENAME} entry point",
        ))
    if topic.readme is None:
        findings.append(_finding(
            "missing-readme", f"{topic.name}/", 0,
            f"Topic '{topic.name}' has no {README_FILENAME}",
        ))
    return findings


# ============================================
# Entry-point references
# ============================================


def check_index_references(topic: Topic, root: str) -> list[Finding]:
    """Every active reference in the index must resolve inside the topic.

    Reference paths are relative to the corpus root, e.g. '@rails/models.md'.
    """
    if topic.index is None:
        return []
    findings = []
    seen = set()
    for ref in active_references(topic.index.references):
        target = _normalize(ref.path)
        if target in seen:
            findings.append(_finding(
                "duplicate-reference", topic.index.path, ref.line,
                f"@{ref.path} is listed more than once",
            ))
            continue
        seen.add(target)

        if not os.path.isfile(os.path.join(root, target)):
            findings.append(_finding(
                "missing-reference", topic.index.path, ref.line,
                f"@{ref.path} does not resolve to an existing file",
            ))
        elif os.path.dirname(target) != topic.name:
            findings.append(_finding(
                "foreign-reference", topic.index.path, ref.line,
                f"@{ref.path} points outside the '{topic.name}' directory",
            ))
    return findings


_PLANNED_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(k) for k in PLANNED_KEYWORDS) + r")\b", re.IGNORECASE
)
_MD_PATH_RE = re.compile(r"[\w./-]+\.md\b")
_LINK_TARGET_RE = re.compile(r"\]\(([^)\s]+)")
_DIR_TOKEN_RE = re.compile(r"(?<![\w./-])([\w-]+/)(?![\w.-])")


def parse_planned_entries(readme_text: str) -> set[str]:
    """Collect paths marked planned/unreleased in a README status table.

    Pure function. Looks at Markdown table rows whose text contains a planned
    keyword and returns every .md path, link target, and 'dir/' token in them.
    """
    planned = set()
    for _number, line, in_fence, in_comment in iter_lines(readme_text):
        if in_fence or in_comment or not line.strip().startswith("|"):
            continue
        if not _PLANNED_RE.search(line):
            continue
        for target in _LINK_TARGET_RE.findall(line):
            planned.add(target.removeprefix("./"))
        for path in _MD_PATH_RE.findall(line):
            planned.add(path.removeprefix("./"))
        for dir_token in _DIR_TOKEN_RE.findall(line):
            planned.add(dir_token)
    return planned


def _is_planned(module: str, topic_name: str, planned: set[str]) -> bool:
    return (
        module in planned
        or f"{topic_name}/" in planned
        or f"{topic_name}/{README_FILENAME}" in planned
    )


def check_orphan_modules(topic: Topic, planned: set[str]) -> list[Finding]:
    """Every module file must be listed in the topic's index.md.

    A commented-out marker counts as listed: the module is in the index but
    switched off on purpose. Modules marked planned/unreleased in the root
    README are exempt. Topics without an index are reported by
    check_topic_layout instead.
    """
    if topic.index is None:
        return []
    listed = {_normalize(r.path) for r in topic.index.references}
    findings = []
    for module in topic.modules:
        if module in listed or _is_planned(module, topic.name, planned):
            continue
        findings.append(_finding(
            "orphan-module", module, 0,
            f"{module} is not referenced by {topic.index.path}",
        ))
    return findings


# ============================================
# Module-count claims
# ============================================

_MODULE_CLAIM_RE = re.compile(r"\b(\d+)\s+modules?\b", re.IGNORECASE)


def find_module_claim(readme_text: str) -> tuple[int, int] | None:
    """Return (claimed_count, line) for the first 'N modules' claim, or None."""
    for number, line, in_fence, in_comment in iter_lines(readme_text):
        if in_fence or in_comment:
            continue
        m = _MODULE_CLAIM_RE.search(line)
        if m:
            return int(m.group(1)), number
    return None


def count_index_modules(index: Document) -> int:
    """Number of distinct active references in an index."""
    return len({_normalize(r.path) for r in active_references(index.references)})


def check_module_count(topic: Topic) -> list[Finding]:
    """A README's 'N modules' claim must match the index's reference count."""
    if topic.index is None or topic.readme is None:
        return []
    claim = find_module_claim(topic.readme.text)
    if claim is None:
        return []
    claimed, line = claim
    actual = count_index_modules(topic.index)
    if claimed == actual:
        return []
    return [_finding(
        "module-count", topic.readme.path, line,
        f"README claims {plural(claimed, 'module')} but {topic.index.path} lists {actual}",
    )]


# ============================================
# Relative links
# ============================================

_CODE_SPAN_RE = re.compile(r"`+[^`]*`+")
# Target is either <angle bracketed> (may hold spaces) or a bare run without
# whitespace, optionally followed by a "double", 'single' or (paren) title.
_LINK_RE = re.compile(
    r"!?\[[^\]]*\]\(\s*(?:<([^>\n]+)>|([^)\s]+))"
    r"(?:\s+(?:\"[^\"]*\"|'[^']*'|\([^)]*\)))?\s*\)"
)
_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")


def extract_links(text: str) -> list[tuple[str, int]]:
    """Return (target, line) for inline Markdown links outside code.

    Pure function. Code spans, fenced blocks, and HTML comments are ignored.
    """
    links = []
    for number, line, in_fence, in_comment in iter_lines(text):
        if in_fence or in_comment:
            continue
        for m in _LINK_RE.finditer(_CODE_SPAN_RE.sub("", line)):
            links.append((m.group(1) or m.group(2), number))
    return links


def link_target_path(target: str) -> str | None:
    """Strip anchors and queries from a link target and percent-decode it.

    Returns None for external and anchor-only links.
    """
    if _SCHEME_RE.match(target) or target.startswith("#"):
        return None
    path = unquote(target.split("#", 1)[0].split("?", 1)[0])
    return path or None


def check_links(doc: Document, root: str) -> list[Finding]:
    """Relative links in a document must point at existing files or directories."""
    findings = []
    doc_dir = os.path.dirname(doc.path)
    for target, line in extract_links(doc.text):
        path = link_target_path(target)
        if path is None:
            continue
        if path.startswith("/"):
            resolved = os.path.join(root, path.lstrip("/"))
        else:
            resolved = os.path.join(root, doc_dir, path)
        if not os.path.exists(resolved):
            findings.append(_finding(
                "broken-link", doc.path, line,
                f"Link target '{target}' does not exist",
            ))
    return findings


# ============================================
# Orchestration
# ============================================


def _sort_key(f: Finding):
    return (f.path, f.line, f.check, f.message)


def load_planned_entries(root: str) -> set[str]:
    """Planned entries from the root README, or an empty set without one."""
    if not os.path.isfile(os.path.join(root, README_FILENAME)):
        return set()
    return parse_planned_entries(load_document(root, README_FILENAME).text)


def run_checks(config: DocsConfig) -> list[Finding]:
    """Run every enabled check over the corpus at config.root."""
    root = config.root
    topics = load_corpus(root, config.ignore_dirs)
    planned = load_planned_entries(root)

    findings = []
    for topic in topics:
        findings.extend(check_topic_layout(topic))
        findings.extend(check_index_references(topic, root))
        findings.extend(check_orphan_modules(topic, planned))
        findings.extend(check_module_count(topic))
    for doc in iter_corpus_documents(root, config.ignore_dirs):
        findings.extend(check_links(doc, root))

    findings = [f for f in findings if f.check not in config.disabled_checks]
    findings.sort(key=_sort_key)
    return findings


def count_by_severity(findings: list[Finding]) -> dict[str, int]:
    counts = {"error": 0, "warning": 0}
    for f in findings:
        counts[f.severity] = counts.get(f.severity, 0) + 1
    return counts


# ============================================
# Baseline support
# ============================================


def baseline_key(f: Finding) -> str:
    """Line numbers are left out so edits above a finding don't resurface it."""
    return f"{f.check}::{f.path}::{f.message}"


def load_baseline(path: str) -> set[str]:
    """Load baseline keys. Returns an empty set if the file doesn't exist."""
    if not path or not os.path.exists(path):
        return set()
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    return {e["key"] for e in data.get("findings", []) if "key" in e}


def save_baseline(path: str, findings: list[Finding]) -> None:
    """Write current findings to a baseline file for future suppression."""
    entries = []
    for finding in findings:
        entry = asdict(finding)
        entry["key"] = baseline_key(finding)
        entries.append(entry)
    with open(path, "w", encoding="utf-8") as f:
        json.dump({"findings": entries}, f, indent=2)
        f.write("\n")


def filter_against_baseline(findings: list[Finding], baseline: set[str]) -> list[Finding]:
    return [f for f in findings if baseline_key(f) not in baseline]


# ============================================
# Commands
# ============================================

DEFAULT_BASELINE_FILE = ".agentic-docs-baseline.json"


def register(app: typer.Typer) -> None:
    """Register check commands on the shared app."""
    app.command()(check)


def check(
    root: Annotated[str, typer.Argument(help="Corpus root (default: nearest repo root)")] = "",
    output_format: Annotated[str, typer.Option("--format", help="Output format: markdown or json")] = "markdown",
    baseline: Annotated[
        str, typer.Option(help="Baseline JSON file; known findings are suppressed")
    ] = "",
    update_baseline: Annotated[
        bool, typer.Option("--update-baseline", help="Record current findings in the baseline and exit")
    ] = False,
    strict: Annotated[bool, typer.Option("--strict", help="Fail on warnings too")] = False,
) -> None:
    """Check index references, orphan modules, links, and module-count claims."""
    from agentic_docs.report import format_json_report, format_markdown_report

    if output_format not in ("markdown", "json"):
        raise typer.BadParameter(f"Unknown format '{output_format}'. Use markdown or json.")

    config = load_config(root or find_docs_root(os.getcwd()))
    set_log_file(config.log_file)
    if not os.path.isdir(config.root):
        log(f"Corpus root not found: {config.root}", style="bold red")
        raise typer.Exit(code=1)

    try:
        findings = run_checks(config)
    except UnreadableFileError as exc:
        log(str(exc), style="bold red")
        raise typer.Exit(code=1)
    except OSError as exc:
        log(f"Cannot read {exc.filename}: {exc.strerror}", style="bold red")
        raise typer.Exit(code=1)

    if update_baseline:
        baseline_path = baseline or os.path.join(config.root, DEFAULT_BASELINE_FILE)
        save_baseline(baseline_path, findings)
        log(f"Baseline written to {baseline_path} ({plural(len(findings), 'finding')} recorded)", style="green")
        return

    baselined_count = 0
    if baseline:
        filtered = filter_against_baseline(findings, load_baseline(baseline))
        baselined_count = len(findings) - len(filtered)
        findings = filtered

    if output_format == "json":
        typer.echo(format_json_report(findings, baselined_count))
    else:
        typer.echo(format_markdown_report(findings, baselined_count))

    counts = count_by_severity(findings)
    if counts["error"] or (strict and counts["warning"]):
        raise typer.Exit(code=1)
