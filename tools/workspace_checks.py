"""Compile and test checks run against a generated workspace.

Each check runs only when its manifest is present (tsconfig.json for the
TypeScript compiler, a package.json test script for npm test, a tests/
directory for pytest). Results are plain data; the code review agent turns
failures into issues.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable

from .base import ToolStatus
from .shell_tool import ShellTool

logger = logging.getLogger(__name__)

MAX_DETAIL_CHARS = 500


class CheckStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class WorkspaceCheck:
    """One command plus the precondition that makes it applicable.

    ``skip_reason`` returns None when the check applies to the workspace.
    """

    name: str
    command: tuple[str, ...]
    timeout: int
    skip_reason: Callable[[Path], str | None]


@dataclass
class CheckResult:
    name: str
    status: CheckStatus
    detail: str = ""

    @property
    def failed(self) -> bool:
        return self.status == CheckStatus.FAILED

    def summary(self) -> str:
        if self.status == CheckStatus.SKIPPED:
            return f"{self.name}: skipped ({self.detail})"
        line = f"{self.name}: {self.status.value.upper()}"
        return f"{line}\n{self.detail}" if self.detail else line


def _requires_file(filename: str) -> Callable[[Path], str | None]:
    def skip_reason(root: Path) -> str | None:
        return None if (root / filename).is_file() else f"no {filename} found"

    return skip_reason


def _requires_npm_test_script(root: Path) -> str | None:
    path = root / "package.json"
    if not path.is_file():
        return "no package.json found"
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return "package.json is not valid JSON"
    scripts = data.get("scripts") if isinstance(data, dict) else None
    if not isinstance(scripts, dict) or not scripts.get("test"):
        return "no test script in package.json"
    return None


def _requires_python_tests(root: Path) -> str | None:
    tests_dir = root / "tests"
    if not tests_dir.is_dir() or not any(tests_dir.glob("test_*.py")):
        return "no tests/test_*.py found"
    return None


DEFAULT_CHECKS: tuple[WorkspaceCheck, ...] = (
    WorkspaceCheck(
        "TypeScript compilation",
        ("npx", "tsc", "--noEmit"),
        30,
        _requires_file("tsconfig.json"),
    ),
    WorkspaceCheck("Tests", ("npm", "test"), 60, _requires_npm_test_script),
    WorkspaceCheck("Python tests", ("python", "-m", "pytest", "-q"), 60, _requires_python_tests),
)


class WorkspaceChecker:
    """Runs the applicable checks through a ShellTool rooted at the workspace."""

    def __init__(
        self,
        checks: tuple[WorkspaceCheck, ...] = DEFAULT_CHECKS,
        shell_factory: Callable[[Path], ShellTool] = ShellTool,
    ) -> None:
        self.checks = checks
        self.shell_factory = shell_factory

    def run(self, workspace_root: str | Path) -> list[CheckResult]:
        root = Path(workspace_root)
        if not root.is_dir():
            return []

        shell = self.shell_factory(root)
        results: list[CheckResult] = []
        for check in self.checks:
            reason = check.skip_reason(root)
            if reason:
                results.append(CheckResult(check.name, CheckStatus.SKIPPED, reason))
                continue

            logger.info("CHECK: running %s (%s)", check.name, " ".join(check.command))
            outcome = shell.run(list(check.command), timeout=check.timeout)
            if outcome.success:
                stdout = (outcome.output or {}).get("stdout", "")
                results.append(CheckResult(check.name, CheckStatus.PASSED, stdout[:MAX_DETAIL_CHARS]))
            elif outcome.metadata.get("not_found"):
                results.append(CheckResult(check.name, CheckStatus.SKIPPED, outcome.error or ""))
            else:
                detail = (outcome.error or "")[:MAX_DETAIL_CHARS]
                if outcome.status == ToolStatus.TIMEOUT:
                    logger.warning("CHECK: %s timed out", check.name)
                results.append(CheckResult(check.name, CheckStatus.FAILED, detail))
        return results
