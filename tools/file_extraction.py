"""Recover source files from free-form LLM output.

Parsing is an ordered list of strategies. Each strategy returns the files
it found (possibly none); the first non-empty result wins:

1. ``FILE:``/``EDIT:`` labelled code fences, inline or on the line above
2. ``# file: name`` / ``// file: name`` comment headers without fences
3. language-tagged code fences with a guessed filename

Malformed input never raises, it just yields an empty list.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractedFile:
    """A file recovered from LLM output."""

    name: str
    content: str


ExtractionStrategy = Callable[[str], list[ExtractedFile]]


_INLINE_LABEL_RE = re.compile(r"```(?:FILE|EDIT):\s*([^\n]+)\n([\s\S]*?)```")
_SPLIT_LABEL_RE = re.compile(
    r"(?:^|\n)(?:FILE|EDIT):\s*([^\n]+)\s*\n+\s*```(?:[\w+#.-]+)?[ \t]*\n([\s\S]*?)```"
)
_COMMENT_HEADER_RE = re.compile(
    r"(?:^|\n)(?:#|//)\s*file:\s*([^\n]+)\s*\n([\s\S]*?)(?=\n(?:#|//)\s*file:|\Z)",
    re.IGNORECASE,
)
_FENCE_OPEN_RE = re.compile(r"^```[\w+#.-]*[ \t]*\n")
_FENCE_CLOSE_RE = re.compile(r"\n?```$")
_LANG_BLOCK_RE = re.compile(r"```(\w+)[ \t]*\n([\s\S]*?)```")

_TRAILING_FILENAME_RE = re.compile(
    r"([\w./-]+\.(?:html|css|js|ts|jsx|tsx|py|java|json|md|xml|yaml|yml|go|rs|rb|php|sh|sql))\s*$",
    re.IGNORECASE | re.MULTILINE,
)
_PATH_TOKEN_RE = re.compile(r"(?:^|\s|`|\*\*)([\w/-]+/[\w.-]+)(?=`|\*\*|\s|$)", re.MULTILINE)

LANGUAGE_EXTENSIONS: dict[str, str] = {
    "html": ".html",
    "htm": ".html",
    "css": ".css",
    "scss": ".scss",
    "less": ".less",
    "javascript": ".js",
    "js": ".js",
    "jsx": ".jsx",
    "typescript": ".ts",
    "ts": ".ts",
    "tsx": ".tsx",
    "python": ".py",
    "py": ".py",
    "java": ".java",
    "json": ".json",
    "markdown": ".md",
    "md": ".md",
    "xml": ".xml",
    "yaml": ".yaml",
    "yml": ".yaml",
    "bash": ".sh",
    "sh": ".sh",
    "shell": ".sh",
    "sql": ".sql",
    "go": ".go",
    "rust": ".rs",
    "ruby": ".rb",
    "php": ".php",
}

DEFAULT_FILENAMES: dict[str, str] = {
    "html": "index.html",
    "css": "styles.css",
    "javascript": "script.js",
    "js": "script.js",
    "typescript": "index.ts",
    "ts": "index.ts",
    "json": "package.json",
    "python": "main.py",
    "py": "main.py",
    "markdown": "README.md",
    "md": "README.md",
}

# Fence tags that mark prose or program output rather than a file
NON_CODE_TAGS = frozenset({"text", "plaintext", "diff", "log", "output", "console"})

# Blocks shorter than this are usually inline examples
MIN_BLOCK_CHARS = 20


def _append_unique(files: list[ExtractedFile], name: str, content: str) -> None:
    name = name.strip()
    content = content.strip()
    if not name or not content:
        return
    if any(f.name == name for f in files):
        return
    files.append(ExtractedFile(name=name, content=content))


def parse_labelled_blocks(text: str) -> list[ExtractedFile]:
    """Find ```FILE: name fences and FILE: name lines followed by a fence."""
    files: list[ExtractedFile] = []
    for match in _INLINE_LABEL_RE.finditer(text):
        _append_unique(files, match.group(1), match.group(2))
    for match in _SPLIT_LABEL_RE.finditer(text):
        _append_unique(files, match.group(1), match.group(2))
    return files


def parse_comment_headers(text: str) -> list[ExtractedFile]:
    """Split raw text on ``# file:`` / ``// file:`` headers."""
    files: list[ExtractedFile] = []
    for match in _COMMENT_HEADER_RE.finditer(text):
        content = match.group(2).strip()
        if content.startswith("```") and content.endswith("```"):
            content = _FENCE_CLOSE_RE.sub("", _FENCE_OPEN_RE.sub("", content, count=1), count=1)
        _append_unique(files, match.group(1), content)
    return files


def guess_filename(text: str, offset: int, lang: str, ext: str, index: int) -> str:
    """Guess a name for the code block starting at ``offset``.

    Looks at the 200 characters before the block for a filename, then for
    a path-like token, then falls back to a per-language default.
    """
    before = text[max(0, offset - 200):offset]

    names = _TRAILING_FILENAME_RE.findall(before)
    if names:
        return names[-1].strip()

    for match in _PATH_TOKEN_RE.finditer(before):
        candidate = match.group(1)
        if "." in candidate:
            return candidate

    return DEFAULT_FILENAMES.get(lang, f"file_{index}{ext}")


def _dedupe_name(name: str, used: set[str]) -> str:
    if name not in used:
        return name
    path = PurePosixPath(name)
    n = 1
    while True:
        candidate = str(path.with_name(f"{path.stem}_{n}{path.suffix}"))
        if candidate not in used:
            return candidate
        n += 1


def parse_language_blocks(text: str) -> list[ExtractedFile]:
    """Treat language-tagged fences as files with guessed names.

    Blocks under MIN_BLOCK_CHARS are ignored unless no longer block exists,
    so a response made of a single one-liner still yields a file.
    """
    candidates = []
    for match in _LANG_BLOCK_RE.finditer(text):
        lang = match.group(1).lower()
        code = match.group(2).strip()
        if lang not in LANGUAGE_EXTENSIONS and lang in NON_CODE_TAGS:
            continue
        if not code:
            continue
        candidates.append((match.start(), lang, code))

    kept = [c for c in candidates if len(c[2]) >= MIN_BLOCK_CHARS] or candidates

    files: list[ExtractedFile] = []
    used: set[str] = set()
    for index, (offset, lang, code) in enumerate(kept):
        ext = LANGUAGE_EXTENSIONS.get(lang, f".{lang}")
        name = _dedupe_name(guess_filename(text, offset, lang, ext, index), used)
        used.add(name)
        files.append(ExtractedFile(name=name, content=code))
    return files


DEFAULT_STRATEGIES: tuple[ExtractionStrategy, ...] = (
    parse_labelled_blocks,
    parse_comment_headers,
    parse_language_blocks,
)


def extract_files(
    text: str,
    strategies: tuple[ExtractionStrategy, ...] = DEFAULT_STRATEGIES,
) -> list[ExtractedFile]:
    """Run the strategies in order and return the first non-empty result."""
    if not text:
        return []

    for strategy in strategies:
        files = strategy(text)
        if files:
            logger.info("EXTRACT: %s found %d files", strategy.__name__, len(files))
            return files

    logger.warning("EXTRACT: no code files found in %d chars of output", len(text))
    return []


def format_file_blocks(files: list[ExtractedFile], label: str = "FILE") -> str:
    """Render files in the labelled-fence form that parse_labelled_blocks reads."""
    return "\n\n".join(f"```{label}: {f.name}\n{f.content}\n```" for f in files)
