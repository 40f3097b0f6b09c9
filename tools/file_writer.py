"""Workspace file writer."""

import logging
from pathlib import Path
from typing import Any

from .base import BaseTool, ToolResult

logger = logging.getLogger(__name__)


class FileWriter(BaseTool):
    """Create, update and read files under a workspace root.

    Every operation returns a ToolResult; IO failures never raise.
    Paths are resolved relative to ``base_path`` and may not escape it.
    """

    name = "file_writer"
    description = "Workspace file create/update operations"

    def __init__(self, base_path: Path | str | None = None) -> None:
        """Initialize file writer.

        Args:
            base_path: Workspace root (default: current directory)
        """
        self.base_path = Path(base_path) if base_path else Path.cwd()

    def execute(self, operation: str, **kwargs: Any) -> ToolResult:
        operations = {
            "create": self.create_file,
            "update": self.update_file,
            "write": self.write_file,
            "read": self.read_file,
            "exists": self._exists,
        }

        if operation not in operations:
            return ToolResult.fail(
                f"Unknown operation: {operation}. Available: {list(operations.keys())}"
            )

        return operations[operation](**kwargs)

    def resolve(self, path: str | Path) -> Path:
        """Resolve a path against the workspace root.

        Raises:
            ValueError: If the path points outside the workspace
        """
        p = Path(path)
        full = p if p.is_absolute() else self.base_path / p
        root = self.base_path.resolve()
        resolved = full.resolve()
        if resolved != root and root not in resolved.parents:
            raise ValueError(f"Path escapes workspace: {path}")
        return full

    def exists(self, path: str | Path) -> bool:
        try:
            return self.resolve(path).is_file()
        except ValueError:
            return False

    def create_file(self, path: str, content: str) -> ToolResult:
        """Create (or overwrite) a file, creating parent directories."""
        return self._write(path, content, "create")

    def update_file(self, path: str, content: str) -> ToolResult:
        """Replace the content of an existing file."""
        try:
            if not self.resolve(path).is_file():
                return ToolResult.fail(f"File not found: {path}")
        except ValueError as e:
            return ToolResult.fail(str(e))
        return self._write(path, content, "update")

    def write_file(self, path: str, content: str) -> ToolResult:
        """Update the file if it exists, otherwise create it."""
        if self.exists(path):
            return self.update_file(path, content)
        return self.create_file(path, content)

    def read_file(self, path: str, encoding: str = "utf-8") -> ToolResult:
        try:
            file_path = self.resolve(path)
            if not file_path.is_file():
                return ToolResult.fail(f"File not found: {path}")
            return ToolResult.ok(file_path.read_text(encoding=encoding), path=str(file_path))
        except (OSError, ValueError, UnicodeDecodeError) as e:
            return ToolResult.fail(str(e))

    def _exists(self, path: str) -> ToolResult:
        return ToolResult.ok(self.exists(path))

    def _write(self, path: str, content: str, operation: str) -> ToolResult:
        try:
            file_path = self.resolve(path)
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_text(content, encoding="utf-8")
        except (OSError, ValueError) as e:
            logger.warning("FILES: %s %s failed: %s", operation, path, e)
            return ToolResult.fail(str(e), operation=operation)

        logger.debug("FILES: %s %s (%d chars)", operation, file_path, len(content))
        return ToolResult.ok(str(file_path), operation=operation, bytes=len(content.encode("utf-8")))
