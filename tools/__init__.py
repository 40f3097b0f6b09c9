"""Deterministic tools used by agents.

Tools wrap operations with predictable behavior (file writes, parsing,
workspace inspection) and report failures through ToolResult instead of
raising.
"""

from .base import BaseTool, ToolResult, ToolStatus
from .change_tracker import ChangeTracker, FileChange
from .file_extraction import (
    DEFAULT_STRATEGIES,
    ExtractedFile,
    extract_files,
    format_file_blocks,
    parse_comment_headers,
    parse_labelled_blocks,
    parse_language_blocks,
)
from .file_writer import FileWriter
from .shell_tool import ShellTool
from .workspace_scanner import (
    ExistingFile,
    collect_existing_files,
    detect_language,
    format_existing_files,
)
from .workspace_checks import (
    DEFAULT_CHECKS,
    CheckResult,
    CheckStatus,
    WorkspaceCheck,
    WorkspaceChecker,
)

__all__ = [
    "BaseTool",
    "ToolResult",
    "ToolStatus",
    "ChangeTracker",
    "FileChange",
    "FileWriter",
    "ShellTool",
    "DEFAULT_STRATEGIES",
    "ExtractedFile",
    "extract_files",
    "format_file_blocks",
    "parse_comment_headers",
    "parse_labelled_blocks",
    "parse_language_blocks",
    "ExistingFile",
    "collect_existing_files",
    "detect_language",
    "format_existing_files",
    "DEFAULT_CHECKS",
    "CheckResult",
    "CheckStatus",
    "WorkspaceCheck",
    "WorkspaceChecker",
]
