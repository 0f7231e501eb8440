"""Run a formatter tool over a buffer and route the result."""
from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Mapping

from goformatter.editor.patcher import BufferPatcher, PatchError
from goformatter.formatter.environment import build_environment
from goformatter.formatter.process_runner import ProcessRunner
from goformatter.lang.diagnostics import DiagnosticsSink, parse_diagnostics

if TYPE_CHECKING:
    from goformatter.editor.buffer import TextBuffer
    from goformatter.formatter.registry import ToolDescriptor
    from goformatter.workspace.workspace_manager import WorkspaceManager

logger = logging.getLogger(__name__)

GO_SCOPE = "source.go"


class FormatOutcome(str, Enum):
    APPLIED = "applied"
    UNCHANGED = "unchanged"
    TOOL_ERROR = "tool_error"
    SKIPPED = "skipped"
    SPAWN_FAILED = "spawn_failed"
    PATCH_FAILED = "patch_failed"
    INELIGIBLE = "ineligible"


class FormatOrchestrator:
    """Decide whether a buffer can be formatted, run the tool, apply or report.

    Every failure is resolved here: ``format`` reports what happened through its
    return value and the diagnostics sink and never raises for tool or buffer
    problems, so it is safe to call from save hooks.
    """

    def __init__(
        self,
        runner: ProcessRunner | None = None,
        patcher: BufferPatcher | None = None,
        diagnostics_sink: DiagnosticsSink | None = None,
        workspace: "WorkspaceManager | None" = None,
        target_scope: str = GO_SCOPE,
        env: Mapping[str, object] | None = None,
        timeout: float | None = None,
    ) -> None:
        self.runner = runner or ProcessRunner()
        self.patcher = patcher or BufferPatcher()
        self.diagnostics_sink = diagnostics_sink
        self.workspace = workspace
        self.target_scope = target_scope
        self.env = dict(env or {})
        self.timeout = timeout

    def configure(self, settings: Mapping[str, object]) -> None:
        """Pick up ``scope``, ``env`` and ``timeout`` from the formatter section."""

        self.target_scope = str(settings.get("scope") or GO_SCOPE)
        env = settings.get("env")
        self.env = dict(env) if isinstance(env, Mapping) else {}
        timeout = settings.get("timeout")
        try:
            self.timeout = float(timeout) if timeout else None
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid formatter timeout %r", timeout)
            self.timeout = None

    def is_eligible(self, buffer: "TextBuffer | None") -> bool:
        if buffer is None or not buffer.is_alive():
            return False
        return buffer.grammar_scope == self.target_scope

    def format(self, buffer: "TextBuffer | None", tool: "ToolDescriptor", file_path: str | None = None) -> FormatOutcome:
        if buffer is None or not self.is_eligible(buffer):
            return FormatOutcome.INELIGIBLE

        target_path = file_path or buffer.path
        self._publish([])

        result = self.runner.run(
            tool.command,
            tool.args,
            input_text=buffer.text(),
            env=build_environment(self.env),
            cwd=self._working_directory(target_path),
            timeout=self.timeout,
        )

        if result.spawn_error is not None:
            logger.error("%s: could not run %s: %s", tool.name, tool.command, result.spawn_error)
            return FormatOutcome.SPAWN_FAILED

        if result.stderr.strip():
            diagnostics = parse_diagnostics(target_path, result.stderr)
            if self.diagnostics_sink is None or not diagnostics:
                logger.warning("%s: (stderr) %s", tool.name, result.stderr.strip())
            else:
                logger.info("%s reported %d diagnostic(s) for %s", tool.name, len(diagnostics), target_path)
            self._publish(diagnostics)
            return FormatOutcome.TOOL_ERROR

        if result.exit_code == 0 and result.stdout.strip():
            try:
                edits = self.patcher.apply(buffer, result.stdout)
            except PatchError as exc:
                logger.error("%s: %s", tool.name, exc)
                return FormatOutcome.PATCH_FAILED
            return FormatOutcome.APPLIED if edits else FormatOutcome.UNCHANGED

        logger.debug("%s: skipped (exit code %s)", tool.name, result.exit_code)
        return FormatOutcome.SKIPPED

    def _publish(self, diagnostics) -> None:
        if self.diagnostics_sink is not None:
            self.diagnostics_sink.set_diagnostics(diagnostics)

    def _working_directory(self, file_path: str | None) -> str | None:
        if self.workspace is None:
            return None
        return self.workspace.project_root_for(file_path)
