"""In-memory audit trail of files written by agents."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class FileChange:
    """One recorded write."""

    path: str
    content: str
    operation: str = "write"
    timestamp: datetime = field(default_factory=datetime.now)


class ChangeTracker:
    """Records every file an agent writes."""

    def __init__(self) -> None:
        self._changes: list[FileChange] = []

    def record_change(self, path: str | Path, content: str, operation: str = "write") -> None:
        self._changes.append(FileChange(path=str(path), content=content, operation=operation))
        logger.debug("FILES: recorded %s of %s", operation, path)

    @property
    def changes(self) -> list[FileChange]:
        return list(self._changes)

    def files_changed(self) -> list[str]:
        """Distinct paths in first-write order."""
        seen: dict[str, None] = {}
        for change in self._changes:
            seen.setdefault(change.path, None)
        return list(seen)

    def latest(self, path: str | Path) -> FileChange | None:
        for change in reversed(self._changes):
            if change.path == str(path):
                return change
        return None

    def clear(self) -> None:
        self._changes.clear()

    def __len__(self) -> int:
        return len(self._changes)
