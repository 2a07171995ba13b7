"""Document, reference, and topic parsing for a documentation corpus.

A corpus is a directory of topic directories (rails/, docker/, ...). Each topic
holds Markdown modules plus an index.md entry point whose ``@topic/module.md``
lines enumerate the modules, and a README.md for humans. The pure parsing
functions here take raw text; the load_* wrappers do the file I/O.
"""

import os
import re
from dataclasses import dataclass, field

from agentic_docs.config import (
    DEFAULT_IGNORE_DIRS,
    INDEX_FILENAME,
    MARKDOWN_SUFFIX,
    README_FILENAME,
)
from agentic_docs.utils import read_text


# ============================================
# Data types
# ============================================

@dataclass
class Reference:
    """One inclusion marker found in a document."""
    path: str      # e.g. "rails/models.md"
    line: int      # 1-based line number of the marker
    active: bool   # False for markers commented out as <!-- @path -->


@dataclass
class Document:
    """A Markdown file identified by its corpus-relative path."""
    path: str
    text: str
    references: list[Reference] = field(default_factory=list)


@dataclass
class Topic:
    """A topic directory: entry point, README, and module files."""
    name: str
    index: Document | None
    readme: Document | None
    modules: list[str]     # corpus-relative paths, sorted


# ============================================
# Parsing
# ============================================

_ACTIVE_MARKER_RE = re.compile(r"^\s*(?:[-*]\s+)?@(\S+\.md)\s*$")
_INACTIVE_MARKER_RE = re.compile(r"^\s*<!--\s*@(\S+\.md)\s*-->\s*$")
_FENCE_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})")


def _comment_open_after(line: str, is_open: bool) -> bool:
    """Return whether an HTML comment is still open at the end of line."""
    pos = 0
    while True:
        if is_open:
            end = line.find("-->", pos)
            if end < 0:
                return True
            is_open = False
            pos = end + 3
        else:
            start = line.find("<!--", pos)
            if start < 0:
                return False
            is_open = True
            pos = start + 4


def iter_lines(text: str):
    """Yield (line_number, line, in_fence, in_comment) for every line of Markdown text.

    Fence delimiter lines themselves are reported as in_fence=True. A fence
    closes only on a delimiter of the same character at least as long as the
    opener. in_comment is True for lines that open, sit inside, or close a
    multi-line HTML comment; a comment that opens and closes on one line
    leaves it False.
    """
    fence = ""
    comment = False
    for number, line in enumerate(text.split("\n"), start=1):
        if comment:
            comment = _comment_open_after(line, True)
            yield number, line, False, True
            continue
        m = _FENCE_RE.match(line)
        if fence:
            if m and m.group(1)[0] == fence[0] and len(m.group(1)) >= len(fence):
                fence = ""
            yield number, line, True, False
            continue
        if m:
            fence = m.group(1)
            yield number, line, True, False
            continue
        comment = _comment_open_after(line, False)
        yield number, line, False, comment


def match_marker(line: str) -> Reference | None:
    """Return a Reference (line=0) if line is an inclusion marker, else None."""
    m = _ACTIVE_MARKER_RE.match(line)
    if m:
        return Reference(path=m.group(1), line=0, active=True)
    m = _INACTIVE_MARKER_RE.match(line)
    if m:
        return Reference(path=m.group(1), line=0, active=False)
    return None


def parse_references(text: str) -> list[Reference]:
    """Parse every inclusion marker in document order.

    Pure function. Markers inside fenced code blocks are example text, not
    references, and are skipped. Markers inside a multi-line HTML comment are
    disabled, like the one-line ``<!-- @path -->`` form.
    """
    refs = []
    for number, line, in_fence, in_comment in iter_lines(text):
        if in_fence:
            continue
        ref = match_marker(line)
        if ref is not None:
            ref.line = number
            if in_comment:
                ref.active = False
            refs.append(ref)
    return refs


def active_references(refs: list[Reference]) -> list[Reference]:
    return [r for r in refs if r.active]


# ============================================
# Loading
# ============================================


def load_document(root: str, rel_path: str) -> Document:
    """Read a corpus document. Raises FileNotFoundError if it doesn't exist."""
    text = read_text(os.path.join(root, rel_path))
    return Document(path=rel_path, text=text, references=parse_references(text))


def _load_optional(root: str, rel_path: str) -> Document | None:
    if not os.path.isfile(os.path.join(root, rel_path)):
        return None
    return load_document(root, rel_path)


def list_topic_dirs(root: str, ignore_dirs: set[str] | None = None) -> list[str]:
    """Return sorted names of root's subdirectories that hold Markdown files.

    Hidden directories and names in ignore_dirs are skipped. Returns an empty
    list if root doesn't exist.
    """
    if ignore_dirs is None:
        ignore_dirs = DEFAULT_IGNORE_DIRS
    try:
        entries = sorted(os.listdir(root))
    except OSError:
        return []
    topics = []
    for name in entries:
        if name.startswith(".") or name in ignore_dirs:
            continue
        path = os.path.join(root, name)
        if not os.path.isdir(path):
            continue
        if any(f.endswith(MARKDOWN_SUFFIX) for f in os.listdir(path)):
            topics.append(name)
    return topics


def list_module_files(root: str, topic_name: str) -> list[str]:
    """Return corpus-relative paths of a topic's modules (not index/README)."""
    topic_dir = os.path.join(root, topic_name)
    modules = []
    for name in sorted(os.listdir(topic_dir)):
        if not name.endswith(MARKDOWN_SUFFIX):
            continue
        if name in (INDEX_FILENAME, README_FILENAME):
            continue
        if os.path.isfile(os.path.join(topic_dir, name)):
            modules.append(f"{topic_name}/{name}")
    return modules


def load_topic(root: str, topic_name: str) -> Topic:
    return Topic(
        name=topic_name,
        index=_load_optional(root, f"{topic_name}/{INDEX_FILENAME}"),
        readme=_load_optional(root, f"{topic_name}/{README_FILENAME}"),
        modules=list_module_files(root, topic_name),
    )


def load_corpus(root: str, ignore_dirs: set[str] | None = None) -> list[Topic]:
    """Load every topic directory under root, sorted by name."""
    return [load_topic(root, name) for name in list_topic_dirs(root, ignore_dirs)]


def list_corpus_files(root: str, ignore_dirs: set[str] | None = None) -> list[str]:
    """Return corpus-relative paths of every Markdown file under root, at any depth.

    Hidden directories and names in ignore_dirs are pruned from the walk.
    """
    if ignore_dirs is None:
        ignore_dirs = DEFAULT_IGNORE_DIRS
    paths = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith(".") and d not in ignore_dirs)
        rel_dir = os.path.relpath(dirpath, root)
        for name in sorted(filenames):
            if not name.endswith(MARKDOWN_SUFFIX):
                continue
            rel = name if rel_dir == "." else os.path.join(rel_dir, name)
            paths.append(rel.replace(os.sep, "/"))
    return paths


def iter_corpus_documents(root: str, ignore_dirs: set[str] | None = None):
    """Yield a Document for every Markdown file in the corpus, nested ones included."""
    for rel_path in list_corpus_files(root, ignore_dirs):
        yield load_document(root, rel_path)
