"""Markdown and JSON reports for documentation check findings."""

import json
from dataclasses import asdict

from agentic_docs.checks import Finding, count_by_severity
from agentic_docs.utils import plural


def _severity_label(severity: str) -> str:
    if severity == "warning":
        return "warning"
    return "ERROR"


def _location(f: Finding) -> str:
    return f"{f.path}:{f.line}" if f.line else f.path


def group_by_check(findings: list[Finding]) -> dict[str, list[Finding]]:
    """Group findings by check id, keeping first-seen check order."""
    groups: dict[str, list[Finding]] = {}
    for f in findings:
        groups.setdefault(f.check, []).append(f)
    return groups


def format_markdown_report(findings: list[Finding], baselined_count: int = 0) -> str:
    """Format findings as a Markdown report suitable for a PR comment or issue.

    Errors and warnings share one table per check, with a Severity column.
    """
    if not findings:
        lines = ["## Documentation Check: All Clear", ""]
        lines.append("No problems found. Every index, link, and module count is consistent.")
        if baselined_count:
            lines.append("")
            lines.append(f"_{plural(baselined_count, 'known finding')} suppressed by baseline._")
        return "\n".join(lines)

    counts = count_by_severity(findings)
    lines = [f"## Documentation Check: {plural(len(findings), 'issue')} found", ""]
    lines.append(
        f"**{plural(counts['error'], 'error')}** (must fix) and "
        f"**{plural(counts['warning'], 'warning')}**."
    )
    if baselined_count:
        lines.append("")
        lines.append(
            f"_{plural(baselined_count, 'known finding')} suppressed by baseline. "
            "They reappear if their message changes._"
        )
    lines.append("")

    for check, group in group_by_check(findings).items():
        lines.append(f"### {check}")
        lines.append("")
        lines.append("| Severity | Location | Problem |")
        lines.append("|----------|----------|---------|")
        for f in group:
            message = f.message.replace("|", "\\|")
            lines.append(f"| {_severity_label(f.severity)} | {_location(f)} | {message} |")
        lines.append("")

    return "\n".join(lines).rstrip("\n")


def format_json_report(findings: list[Finding], baselined_count: int = 0) -> str:
    counts = count_by_severity(findings)
    output = {
        "findings": [asdict(f) for f in findings],
        "summary": {
            "total": len(findings),
            "errors": counts["error"],
            "warnings": counts["warning"],
            "baselined": baselined_count,
        },
    }
    return json.dumps(output, indent=2)
