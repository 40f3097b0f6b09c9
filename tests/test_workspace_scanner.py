"""Tests for workspace inspection."""

import pytest

from tools.workspace_scanner import (
    ExistingFile,
    collect_existing_files,
    detect_language,
    format_existing_files,
)


def _write(root, relative: str, content: str = "x = 1\n") -> None:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


class TestCollectExistingFiles:
    """Tests for collect_existing_files."""

    def test_missing_root(self, tmp_path):
        """A missing directory yields nothing."""
        assert collect_existing_files(tmp_path / "nope") == []

    def test_collects_code_files_only(self, workspace):
        """Only recognised source extensions are collected."""
        _write(workspace, "app.py")
        _write(workspace, "README.md", "# readme")
        _write(workspace, "web/index.html", "<html></html>")

        paths = [f.relative_path for f in collect_existing_files(workspace)]

        assert paths == ["app.py", "web/index.html"]

    def test_skips_ignored_directories(self, workspace):
        """Dependency, build and app directories are not scanned."""
        _write(workspace, "node_modules/lib/index.js")
        _write(workspace, ".verno/llm/developer.py")
        _write(workspace, "dist/bundle.js")
        _write(workspace, "src/main.ts", "export {}")

        paths = [f.relative_path for f in collect_existing_files(workspace)]

        assert paths == ["src/main.ts"]

    def test_max_files(self, workspace):
        """Scanning stops after max_files files."""
        for i in range(5):
            _write(workspace, f"m{i}.py")

        assert len(collect_existing_files(workspace, max_files=3)) == 3

    def test_truncates_long_files(self, workspace):
        """Long content is cut and marked truncated."""
        _write(workspace, "big.py", "a" * 50)

        (found,) = collect_existing_files(workspace, max_chars=10)

        assert found.truncated is True
        assert found.content == "a" * 10 + "\n... (truncated)"

    def test_skips_undecodable_files(self, workspace):
        """Files that are not UTF-8 are skipped."""
        (workspace / "bad.py").write_bytes(b"\xff\xfe\x00bad")
        _write(workspace, "good.py")

        assert [f.relative_path for f in collect_existing_files(workspace)] == ["good.py"]


class TestDetectLanguage:
    """Tests for detect_language."""

    @pytest.mark.parametrize(
        ("request_text", "language"),
        [
            ("Build a CLI in Python", "Python"),
            ("fix utils.py", "Python"),
            ("A TypeScript library", "TypeScript"),
            ("a javascript game", "JavaScript"),
            ("a Java service", "Java"),
            ("write it in golang", "Go"),
            ("a static html page", "HTML"),
        ],
    )
    def test_detects(self, request_text, language):
        """The first language named in the request wins."""
        assert detect_language(request_text) == language

    def test_no_language(self):
        """Requests without a language yield None."""
        assert detect_language("Build a todo app") is None
        assert detect_language("") is None


class TestFormatExistingFiles:
    """Tests for the prompt rendering."""

    def test_renders_sections(self):
        """Each file becomes a heading and a fence."""
        text = format_existing_files(
            [ExistingFile("a.py", "A = 1"), ExistingFile("b.py", "B = 2")]
        )

        assert text == "### a.py\n```\nA = 1\n```\n\n### b.py\n```\nB = 2\n```"
