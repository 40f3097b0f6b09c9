"""Developer agent: generates source files and writes them to the workspace."""

from __future__ import annotations

from schemas.feedback import Issue, IssueSeverity
from schemas.plan_state import AgentPhase
from tools.file_extraction import ExtractedFile, extract_files
from tools.workspace_scanner import (
    collect_existing_files,
    detect_language,
    format_existing_files,
)

from .base import Agent, AgentContext

CREATE_FORMAT = """OUTPUT FORMAT (MANDATORY):
Wrap each file in a code block labeled with FILE: like this:

```FILE: index.html
<!DOCTYPE html>...
```

```FILE: styles.css
body { ... }
```

You MUST output complete code using the format above. Do not describe what you would do. Write the actual code."""

EDIT_FORMAT = """OUTPUT FORMAT (MANDATORY):
For modified files:
```EDIT: path/to/existing-file.ext
...full modified content...
```

For new files:
```FILE: path/to/new-file.ext
...code...
```

You MUST output code using the format above. Do not describe what you would do. Write the actual code."""


def _language_lines(language: str | None) -> tuple[str, str]:
    if not language:
        return "", ""
    return (
        f"LANGUAGE: {language}. You MUST write ALL code in {language}.\n",
        f"- You MUST use {language}. Do NOT use any other language.\n",
    )


def build_create_prompt(
    user_request: str,
    analysis: str,
    architecture: str,
    language: str | None,
    history: str = "",
) -> str:
    header, rule = _language_lines(language)
    parts = [f"{header}You are Amelia, a senior software engineer. OUTPUT CODE FILES ONLY.",
             f"Task: {user_request}", ""]
    if history:
        parts.append(f"CONVERSATION:\n{history}\n")
    if analysis:
        parts.append(f"ANALYSIS:\n{analysis}\n")
    if architecture:
        parts.append(f"ARCHITECTURE:\n{architecture}\n")
    parts.append(
        "RULES:\n"
        "- Generate FULLY WORKING, COMPLETE code. No stubs, no placeholders.\n"
        "- Every function must have a real implementation.\n"
        "- Include README.md and a dependency manifest if applicable.\n"
        f"{rule}"
    )
    parts.append(CREATE_FORMAT)
    return "\n".join(parts)


def build_edit_prompt(
    user_request: str,
    analysis: str,
    architecture: str,
    existing_files: str,
    language: str | None,
    review: str = "",
) -> str:
    header, rule = _language_lines(language)
    parts = [f"{header}You are Amelia, a senior software engineer. OUTPUT MODIFIED CODE FILES ONLY.",
             f"Task: {user_request}", ""]
    if existing_files:
        parts.append(f"EXISTING CODE:\n{existing_files}\n")
    if review:
        parts.append(f"CODE REVIEW TO ADDRESS:\n{review}\n")
    if analysis:
        parts.append(f"ANALYSIS:\n{analysis}\n")
    if architecture:
        parts.append(f"ARCHITECTURE:\n{architecture}\n")
    parts.append(
        "RULES:\n"
        "- Modify the existing files as needed. Do NOT recreate files from scratch.\n"
        "- Only output files that need changes or new files.\n"
        "- Show the FULL content of each modified file.\n"
        f"{rule}"
    )
    parts.append(EDIT_FORMAT)
    return "\n".join(parts)


def implementation_notes(written: list[str], output: str) -> str:
    files = "\n".join(f"- `{name}`" for name in written) or "_No files written._"
    return f"# Implementation\n\n## Files\n\n{files}\n\n## Generated Output\n\n{output}\n"


class DeveloperAgent(Agent):
    """Generates code, extracts file blocks and writes them.

    Runs in edit mode when ``editMode`` is set or the workspace already
    holds source files; otherwise asks for a fresh build.
    """

    id = "developer"
    name = "Developer"
    description = "Senior software engineer, code implementation"
    phase = AgentPhase.CODE

    def __init__(
        self,
        max_context_chars: int = 8000,
        scan_max_files: int = 15,
        scan_max_file_chars: int = 3000,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.max_context_chars = max_context_chars
        self.scan_max_files = scan_max_files
        self.scan_max_file_chars = scan_max_file_chars

    def build_prompt(self, context: AgentContext) -> str:
        existing = ""
        if context.has_workspace:
            existing = format_existing_files(
                collect_existing_files(
                    context.workspace_root, self.scan_max_files, self.scan_max_file_chars
                )
            )

        language = detect_language(context.user_request)
        # Edit prompts carry the existing code, so leave less room for design docs
        share = self.max_context_chars // 4
        if context.edit_mode or existing:
            self.logger.info("DEV: edit mode (existing code: %s)", bool(existing))
            return build_edit_prompt(
                context.user_request,
                context.get_output("analyst", share),
                context.get_output("architect", share),
                existing,
                language,
                review=str(context.metadata.get("reviewFeedback") or "")[: self.max_context_chars],
            )

        return build_create_prompt(
            context.user_request,
            context.get_output("analyst", share),
            context.get_output("architect", share),
            language,
            history=str(context.metadata.get("conversationHistory") or ""),
        )

    def execute(self, context: AgentContext) -> str:
        llm = self._require_llm()
        completed: list[str] = []
        issues: list[Issue] = []

        chunks: list[str] = []
        try:
            llm.stream_generate(self.build_prompt(context), chunks.append)
            completed.append("Generated code from LLM")
        except Exception as e:
            self.logger.error("DEV: code generation failed: %s", e)
            issues.append(
                Issue(
                    severity=IssueSeverity.CRITICAL,
                    description="Code generation failed",
                    context=f"Error: {e}",
                )
            )
            self._finish(context, completed, issues, [])
            return "".join(chunks)

        output = "".join(chunks)
        failed: list[str] = []
        if context.has_workspace:
            files = extract_files(output)
            self.logger.info("DEV: parsed %d code files from LLM output", len(files))
            completed.append(f"Parsed {len(files)} files")
            if not files:
                issues.append(
                    Issue(
                        severity=IssueSeverity.HIGH,
                        description="No code files found in LLM output",
                        context="Expected FILE:/EDIT: labelled code blocks",
                    )
                )
            failed = self._write_files(context, files, completed, issues)
            written = [f.name for f in files if f.name not in failed]
            self._write_artifact(
                context,
                "IMPLEMENTATION.md",
                implementation_notes(written, output),
                issues,
                completed,
                severity=IssueSeverity.MEDIUM,
            )

        self._finish(context, completed, issues, failed)
        return output

    def _write_files(
        self,
        context: AgentContext,
        files: list[ExtractedFile],
        completed: list[str],
        issues: list[Issue],
    ) -> list[str]:
        writer = self._writer(context)
        failed = []
        for f in files:
            existed = writer.exists(f.name)
            result = writer.write_file(f.name, f.content)
            if not result:
                self.logger.error("DEV: failed to write %s: %s", f.name, result.error)
                issues.append(
                    Issue(
                        severity=IssueSeverity.HIGH,
                        description=f"Failed to write {f.name}",
                        context=f"Error: {result.error}",
                    )
                )
                failed.append(f.name)
                continue
            self.change_tracker.record_change(result.output, f.content, "update" if existed else "create")
            completed.append(f"{'Updated' if existed else 'Created'} {f.name}")
        return failed

    def _finish(
        self,
        context: AgentContext,
        completed: list[str],
        issues: list[Issue],
        failed: list[str],
    ) -> None:
        remaining = []
        if any(i.severity.is_blocking for i in issues):
            remaining.append("Fix critical/high severity issues")
        remaining.extend(f"Write {name}" for name in failed)

        if issues:
            next_steps = ["Address high-priority issues first", "Re-run the developer stage after fixes"]
        else:
            next_steps = ["Proceed to code review", "Proceed to QA review"]

        self._record_feedback(context, completed, remaining, issues, [], next_steps)
