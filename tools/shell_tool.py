"""Shell command execution tool."""

import os
import shlex
import subprocess
from pathlib import Path
from typing import Any

from .base import BaseTool, ToolResult, ToolStatus


class ShellTool(BaseTool):
    """Tool for executing build and test commands inside a workspace.

    Only the toolchain commands used by workspace checks are allowed:
    - Node.js (npm, npx, tsc, node)
    - Python test runners (python -m pytest, pytest)
    """

    name = "shell"
    description = "Shell command execution"

    ALLOWED_COMMANDS = {
        "node",
        "npm",
        "npx",
        "tsc",
        "python",
        "python3",
        "pytest",
    }

    def __init__(
        self,
        working_dir: Path | str | None = None,
        timeout: int = 60,
        allowed_commands: set[str] | None = None,
    ) -> None:
        """Initialize shell tool.

        Args:
            working_dir: Working directory for commands
            timeout: Default timeout in seconds
            allowed_commands: Override allowed command set
        """
        self.working_dir = Path(working_dir) if working_dir else Path.cwd()
        self.timeout = timeout
        self.allowed_commands = allowed_commands or self.ALLOWED_COMMANDS

    def execute(self, operation: str, **kwargs: Any) -> ToolResult:
        operations = {
            "run": self._run,
        }

        if operation not in operations:
            return ToolResult.fail(
                f"Unknown operation: {operation}. Available: {list(operations.keys())}"
            )

        try:
            return operations[operation](**kwargs)
        except Exception as e:
            return ToolResult.fail(str(e))

    def run(self, command: str | list[str], timeout: int | None = None) -> ToolResult:
        return self.execute("run", command=command, timeout=timeout)

    def _run(self, command: str | list[str], timeout: int | None = None) -> ToolResult:
        """Run a command; a non-zero exit is a FAILURE carrying stderr (or stdout)."""
        parts = shlex.split(command) if isinstance(command, str) else list(command)

        if not parts:
            return ToolResult.fail("Empty command")

        cmd_name = Path(parts[0]).name
        if cmd_name not in self.allowed_commands:
            return ToolResult.fail(f"Command not allowed: {cmd_name}")

        limit = timeout or self.timeout
        try:
            result = subprocess.run(
                parts,
                cwd=self.working_dir,
                capture_output=True,
                text=True,
                timeout=limit,
                check=False,
                env={**os.environ},
            )
        except subprocess.TimeoutExpired:
            return ToolResult(
                status=ToolStatus.TIMEOUT,
                error=f"Command timed out after {limit}s",
            )
        except FileNotFoundError:
            return ToolResult.fail(f"Command not found: {parts[0]}", not_found=True)

        output = {
            "stdout": result.stdout,
            "stderr": result.stderr,
            "returncode": result.returncode,
        }
        if result.returncode == 0:
            return ToolResult.ok(output)
        return ToolResult(
            status=ToolStatus.FAILURE,
            output=output,
            error=result.stderr or result.stdout or f"Exit code {result.returncode}",
        )
