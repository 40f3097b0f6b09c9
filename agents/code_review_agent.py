"""Code review agent: validates what the developer stage produced.

Checks for:
- Skeleton / stub code (placeholder comments, empty bodies)
- Suspiciously short files
- Structural quality via an LLM review
- Compile and test commands, when the workspace has their manifests

Writes CODE_REVIEW.md and returns the report, whose verdict line starts
with PASS, NEEDS FIXES or FAIL.
"""

from __future__ import annotations

import re

from schemas.feedback import Issue, IssueSeverity
from schemas.plan_state import AgentPhase
from tools.file_extraction import ExtractedFile, extract_files
from tools.workspace_checks import CheckResult, CheckStatus, WorkspaceChecker

from .base import Agent, AgentContext

PLACEHOLDER_PATTERNS = [
    re.compile(r"(?://|#)\s*TODO", re.I),
    re.compile(r"(?://|#)\s*implement", re.I),
    re.compile(r"(?://|#)\s*add\s+(?:your\s+)?logic", re.I),
    re.compile(r"(?://|#)\s*code\s+for\s+handling", re.I),
    re.compile(r"//\s*\.\.\."),
    re.compile(r"(?://|#)\s*complete\s+implementation", re.I),
    re.compile(r"(?://|#)\s*add\s+here", re.I),
    re.compile(r"(?://|#)\s*placeholder", re.I),
    re.compile(r"(?://|#)\s*stub", re.I),
]

EMPTY_BODY_PATTERNS = [
    re.compile(r"=>\s*\{\s*\}"),
    re.compile(r"\)\s*\{\s*\}"),
    re.compile(r"def \w+\([^)]*\)\s*(?:->\s*[^:]+)?:\s*\n\s*(?:pass|\.\.\.)\s*(?:\n|$)"),
]

SHORT_FILE_EXEMPT_SUFFIXES = (".json", ".env")
PROSE_SUFFIXES = (".md", ".markdown", ".txt")
MIN_NON_EMPTY_LINES = 3

VERDICT_FAIL = "FAIL — Skeleton code detected"
VERDICT_NEEDS_FIXES = "NEEDS FIXES — Critical issues found"
VERDICT_PASS = "PASS — Code looks complete and functional"


def detect_skeleton_code(files: list[ExtractedFile]) -> list[Issue]:
    """Static checks for stub code. Placeholders and empty bodies are critical."""
    issues: list[Issue] = []
    for f in files:
        # Markdown headings look like "# " comments
        code_checks = not f.name.lower().endswith(PROSE_SUFFIXES)
        for pattern in PLACEHOLDER_PATTERNS if code_checks else ():
            match = pattern.search(f.content)
            if match:
                issues.append(
                    Issue(
                        severity=IssueSeverity.CRITICAL,
                        description=f"Skeleton code in {f.name}: placeholder comment found",
                        context=f'Pattern matched: "{match.group(0)}"; file should contain a real implementation',
                    )
                )

        for pattern in EMPTY_BODY_PATTERNS if code_checks else ():
            if pattern.search(f.content):
                issues.append(
                    Issue(
                        severity=IssueSeverity.CRITICAL,
                        description=f"Skeleton code in {f.name}: empty function body detected",
                        context="Function body is empty and must contain implementation logic",
                    )
                )
    return issues


def detect_short_files(files: list[ExtractedFile]) -> list[Issue]:
    """Files under MIN_NON_EMPTY_LINES are high severity, not skeleton code."""
    issues: list[Issue] = []
    for f in files:
        lines = [line for line in f.content.splitlines() if line.strip()]
        if len(lines) < MIN_NON_EMPTY_LINES and not f.name.endswith(SHORT_FILE_EXEMPT_SUFFIXES):
            issues.append(
                Issue(
                    severity=IssueSeverity.HIGH,
                    description=f"Suspiciously short file: {f.name} ({len(lines)} non-empty lines)",
                    context="File may be a stub",
                )
            )
    return issues


def is_skeleton_failure(review_output: str) -> bool:
    """True when a review report carries the skeleton-code verdict.

    The LLM quality review section may itself contain "FAIL", so only the
    verdict text counts.
    """
    return VERDICT_FAIL in review_output


class CodeReviewAgent(Agent):
    """Reviews the developer output like a senior engineer."""

    id = "codereview"
    name = "Code Reviewer"
    description = "Validates generated code for completeness, correctness and quality"
    phase = AgentPhase.CODE

    def __init__(
        self,
        max_review_chars: int = 12000,
        checker: WorkspaceChecker | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.max_review_chars = max_review_chars
        self.checker = checker

    def execute(self, context: AgentContext) -> str:
        developer_output = context.get_output("developer")
        if not developer_output:
            self.logger.warning("No developer output found to review")
            return "No developer output found to review."

        completed: list[str] = []
        files = extract_files(developer_output)
        completed.append(f"Parsed {len(files)} files for review")

        skeleton_issues = detect_skeleton_code(files)
        issues = skeleton_issues + detect_short_files(files)
        if skeleton_issues:
            self.logger.warning("Found %d skeleton code issues", len(skeleton_issues))
        else:
            completed.append("No skeleton code detected")

        review = self._llm_review(files, context.user_request)
        completed.append("Completed LLM quality review")

        checks = self._run_checks(context, completed, issues)

        has_blocking = any(i.severity.is_blocking for i in issues)
        if skeleton_issues:
            verdict = VERDICT_FAIL
        elif has_blocking:
            verdict = VERDICT_NEEDS_FIXES
        else:
            verdict = VERDICT_PASS

        report = self.build_report(files, skeleton_issues, review, verdict, issues, checks)

        if context.has_workspace:
            self._write_artifact(
                context, "CODE_REVIEW.md", report, issues, completed, severity=IssueSeverity.MEDIUM
            )

        if skeleton_issues:
            next_steps = ["Re-run the developer stage with review feedback to fix skeleton code"]
        elif has_blocking:
            next_steps = ["Fix critical issues and re-run the review"]
        else:
            next_steps = ["Code is ready for QA", "Consider additional manual testing"]
        self._record_feedback(
            context,
            completed,
            ["Fix skeleton code"] if skeleton_issues else [],
            issues,
            [],
            next_steps,
        )
        return report

    def _llm_review(self, files: list[ExtractedFile], user_request: str) -> str:
        llm = self._require_llm()
        if not files:
            return "No files to review."

        summary = "\n\n".join(f"### {f.name}\n```\n{f.content[:3000]}\n```" for f in files)
        prompt = f"""You are a senior code reviewer. Review the following generated code files for quality and correctness.

User's original request: {user_request}

## Generated Files:
{summary[: self.max_review_chars]}

## Review Checklist:
1. Does each function have a REAL implementation (not empty bodies or placeholder comments)?
2. Are imports correct and used?
3. Is error handling present and meaningful?
4. Are models/schemas complete with field definitions?
5. Would this code actually run without errors?
6. Are there any logical bugs or missing pieces?

Provide a concise review with:
- ISSUES: specific problems found (if any)
- VERDICT: PASS, NEEDS_FIXES, or FAIL
- SUGGESTIONS: improvements to consider"""
        try:
            return llm.generate_text(prompt)
        except Exception as e:
            self.logger.warning("LLM quality review failed: %s", e)
            return f"LLM review unavailable: {e}"

    def _run_checks(
        self, context: AgentContext, completed: list[str], issues: list[Issue]
    ) -> list[CheckResult]:
        """Run compile and test checks; each failure becomes a high issue."""
        if self.checker is None or not context.has_workspace:
            return []

        results = self.checker.run(context.workspace_root)
        for result in results:
            if result.failed:
                self.logger.warning("%s failed", result.name)
                issues.append(
                    Issue(
                        severity=IssueSeverity.HIGH,
                        description=f"{result.name} failed",
                        context=result.detail,
                    )
                )
            elif result.status == CheckStatus.PASSED:
                completed.append(f"{result.name} passed")
        return results

    @staticmethod
    def build_report(
        files: list[ExtractedFile],
        skeleton_issues: list[Issue],
        review: str,
        verdict: str,
        issues: list[Issue],
        checks: list[CheckResult] | None = None,
    ) -> str:
        blocking = sum(1 for i in issues if i.severity.is_blocking)
        lines = [
            "# 🔍 Code Review Report",
            "",
            f"**Verdict: {verdict}**",
            "",
            f"**Files Reviewed:** {len(files)}",
            f"**Issues Found:** {len(issues)}",
            f"**Critical/High:** {blocking}",
            "",
            "---",
            "",
            "## 1. Skeleton Code Detection",
            "",
        ]
        if not skeleton_issues:
            lines += ["✅ **No skeleton code detected.**", ""]
        else:
            lines += [f"❌ **{len(skeleton_issues)} skeleton code issue(s) found:**", ""]
            for issue in skeleton_issues:
                lines += [f"- 🔴 **{issue.description}**", f"  {issue.context}", ""]

        lines += ["## 2. Quality Review", "", review, ""]
        section = 3
        if checks:
            lines += [f"## {section}. Workspace Checks", ""]
            lines += [f"- {check.summary()}" for check in checks]
            lines.append("")
            section += 1
        lines += [f"## {section}. Files Reviewed", ""]
        lines += [f"- `{f.name}` ({len(f.content.splitlines())} lines)" for f in files]
        return "\n".join(lines) + "\n"
