"""Integration bootstrap: wires configuration, workspace and formatter tools."""
from __future__ import annotations

from typing import Any

from goformatter.core.config import ConfigManager
from goformatter.core.disposables import CompositeDisposable
from goformatter.core.events import CommandRegistry
from goformatter.core.logging import get_logger
from goformatter.formatter.orchestrator import FormatOrchestrator, FormatOutcome
from goformatter.formatter.process_runner import ProcessRunner
from goformatter.formatter.registry import DEFAULT_NAMESPACE, ToolRegistry
from goformatter.lang.diagnostics import DiagnosticsSink
from goformatter.workspace.workspace_manager import WorkspaceManager

logger = get_logger(__name__)


class FormatterIntegration:
    """Owns the orchestrator and tool registry for one editor session.

    ``activate`` starts observing the ``formatter`` settings; every change
    rebuilds the tool bindings from scratch. ``deactivate`` releases them all.
    """

    def __init__(
        self,
        config: ConfigManager,
        command_registry: CommandRegistry | None = None,
        workspace: WorkspaceManager | None = None,
        diagnostics_sink: DiagnosticsSink | None = None,
        runner: ProcessRunner | None = None,
    ) -> None:
        self.config = config
        self.command_registry = command_registry or CommandRegistry()
        languages = config.section("languages")
        self.workspace = workspace or WorkspaceManager(extension_map=languages.get("extension_map"))
        self.orchestrator = FormatOrchestrator(
            runner=runner,
            diagnostics_sink=diagnostics_sink,
            workspace=self.workspace,
        )
        self.registry = ToolRegistry(self.orchestrator, self.command_registry, self.workspace)
        self._subscriptions = CompositeDisposable()
        self.active = False

    def activate(self) -> None:
        if self.active:
            return
        self.active = True
        self._subscriptions = CompositeDisposable()
        self._subscriptions.add(self.config.observe("formatter", self._on_formatter_settings))
        logger.info("Formatter integration activated")

    def deactivate(self) -> None:
        if not self.active:
            return
        self._subscriptions.dispose()
        self.registry.teardown()
        self.active = False
        logger.info("Formatter integration deactivated")

    def format_active(self, tool_name: str) -> FormatOutcome | None:
        tool = self.registry.get(tool_name)
        if tool is None:
            logger.warning("No formatter tool named %r", tool_name)
            return None
        return self.registry.format_active(tool)

    def _on_formatter_settings(self, settings: Any) -> None:
        section = settings if isinstance(settings, dict) else {}
        self.orchestrator.configure(section)
        self.registry.namespace = str(section.get("namespace") or DEFAULT_NAMESPACE)
        self.registry.register_from_config(section.get("format_tools"))
