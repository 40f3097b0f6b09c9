"""Workspace inspection used to decide between edit and create mode."""

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

CODE_EXTENSIONS = frozenset(
    {".ts", ".tsx", ".js", ".jsx", ".py", ".java", ".go", ".rs", ".css", ".html"}
)

IGNORED_DIRS = frozenset(
    {"node_modules", ".git", ".vscode", "out", "dist", "build", ".verno", ".next", "coverage"}
)

# Order matters: the first pattern that matches names the language
LANGUAGE_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\bpython3?\b", re.I), "Python"),
    (re.compile(r"\.py\b", re.I), "Python"),
    (re.compile(r"\btypescript\b", re.I), "TypeScript"),
    (re.compile(r"\.ts\b", re.I), "TypeScript"),
    (re.compile(r"\bjavascript\b", re.I), "JavaScript"),
    (re.compile(r"\.js\b", re.I), "JavaScript"),
    (re.compile(r"\bjava\b(?!script)", re.I), "Java"),
    (re.compile(r"\bruby\b", re.I), "Ruby"),
    (re.compile(r"\brust\b", re.I), "Rust"),
    (re.compile(r"\bgolang\b|\bgo\b", re.I), "Go"),
    (re.compile(r"\bc\+\+|\bcpp\b", re.I), "C++"),
    (re.compile(r"\bc#|\bcsharp\b", re.I), "C#"),
    (re.compile(r"\bphp\b", re.I), "PHP"),
    (re.compile(r"\bswift\b", re.I), "Swift"),
    (re.compile(r"\bkotlin\b", re.I), "Kotlin"),
    (re.compile(r"\bhtml\b", re.I), "HTML"),
    (re.compile(r"\bcss\b", re.I), "CSS"),
    (re.compile(r"\bsql\b", re.I), "SQL"),
    (re.compile(r"\bbash\b|\bshell\b", re.I), "Bash"),
]


@dataclass
class ExistingFile:
    relative_path: str
    content: str
    truncated: bool = False


def detect_language(user_request: str) -> str | None:
    """Return the first programming language named in the request."""
    for pattern, language in LANGUAGE_PATTERNS:
        if pattern.search(user_request or ""):
            return language
    return None


def collect_existing_files(
    root: Path | str,
    max_files: int = 15,
    max_chars: int = 3000,
) -> list[ExistingFile]:
    """Collect source files from a workspace.

    Walks the tree depth-first in sorted order, skipping IGNORED_DIRS and
    unreadable entries, and stops after ``max_files`` files. Content longer
    than ``max_chars`` is cut and marked truncated.
    """
    root = Path(root)
    files: list[ExistingFile] = []
    if not root.is_dir():
        return files

    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in IGNORED_DIRS)
        for filename in sorted(filenames):
            if len(files) >= max_files:
                return files
            path = Path(dirpath) / filename
            if path.suffix not in CODE_EXTENSIONS:
                continue
            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                logger.debug("SCAN: skipping unreadable %s", path)
                continue
            truncated = len(content) > max_chars
            if truncated:
                content = content[:max_chars] + "\n... (truncated)"
            files.append(
                ExistingFile(
                    relative_path=path.relative_to(root).as_posix(),
                    content=content,
                    truncated=truncated,
                )
            )
    return files


def format_existing_files(files: list[ExistingFile]) -> str:
    """Render files as markdown sections for a prompt."""
    return "\n\n".join(f"### {f.relative_path}\n```\n{f.content}\n```" for f in files)
