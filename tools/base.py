"""Base tool interface for deterministic operations."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ToolStatus(Enum):
    """Status of a tool execution."""

    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"
    TIMEOUT = "timeout"


@dataclass
class ToolResult:
    """Result of a tool execution.

    Used wherever an operation may fail without that failure being an
    exception for the caller (file writes, best-effort backups).
    """

    status: ToolStatus
    output: Any = None
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.status == ToolStatus.SUCCESS

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, output: Any = None, **metadata: Any) -> "ToolResult":
        return cls(status=ToolStatus.SUCCESS, output=output, metadata=metadata)

    @classmethod
    def fail(cls, error: str, **metadata: Any) -> "ToolResult":
        return cls(status=ToolStatus.FAILURE, error=error, metadata=metadata)

    @classmethod
    def skipped(cls, reason: str | None = None) -> "ToolResult":
        return cls(status=ToolStatus.SKIPPED, error=reason)


class BaseTool(ABC):
    """Abstract base class for all tools.

    Tools are deterministic operations that agents can invoke.
    Unlike LLM calls, tools have predictable behavior.
    """

    name: str = "base_tool"
    description: str = "Base tool interface"

    @abstractmethod
    def execute(self, operation: str, **kwargs: Any) -> ToolResult:
        """Execute a tool operation.

        Args:
            operation: Operation name
            **kwargs: Operation-specific parameters

        Returns:
            ToolResult with status and output
        """
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
