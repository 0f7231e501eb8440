"""Configured formatter tools and the commands and save hooks bound to them."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from goformatter.core.disposables import CompositeDisposable, Disposable
from goformatter.core.events import CommandDescriptor, CommandRegistry
from goformatter.formatter.orchestrator import FormatOrchestrator, FormatOutcome
from goformatter.workspace.workspace_manager import WorkspaceManager

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "golang"


class ToolConfigError(ValueError):
    """A configured tool entry cannot be used."""


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    command: str
    args: tuple[str, ...] = field(default_factory=tuple)
    run_on_save: bool = False

    @classmethod
    def from_config(cls, entry: Mapping[str, Any]) -> "ToolDescriptor":
        """Build a descriptor from a ``{name, cmd, args, onSave}`` entry."""

        if not isinstance(entry, Mapping):
            raise ToolConfigError(f"Tool entry must be a mapping, got {type(entry).__name__}")
        name = str(entry.get("name") or "").strip()
        command = str(entry.get("cmd") or entry.get("command") or "").strip()
        if not name:
            raise ToolConfigError("Tool entry has no name")
        if not command:
            raise ToolConfigError(f"Tool {name!r} has no command")
        args = entry.get("args") or []
        if isinstance(args, str) or not isinstance(args, Iterable):
            raise ToolConfigError(f"Tool {name!r}: args must be a list")
        on_save = entry.get("onSave", entry.get("on_save", False))
        return cls(name=name, command=command, args=tuple(str(a) for a in args), run_on_save=bool(on_save))


def parse_tools(entries: Iterable[Any] | None) -> list[ToolDescriptor]:
    """Parse configuration entries, skipping invalid ones and repeated names."""

    tools: list[ToolDescriptor] = []
    seen: set[str] = set()
    for entry in entries or []:
        try:
            tool = ToolDescriptor.from_config(entry)
        except ToolConfigError as exc:
            logger.warning("Skipping formatter tool: %s", exc)
            continue
        if tool.name in seen:
            logger.warning("Skipping duplicate formatter tool %r", tool.name)
            continue
        seen.add(tool.name)
        tools.append(tool)
    return tools


class ToolRegistry:
    """Owns every command binding and save subscription for the configured tools.

    Each ``register`` call releases everything created by the previous one
    before binding the new set, so a save never triggers a tool twice.
    """

    def __init__(
        self,
        orchestrator: FormatOrchestrator,
        command_registry: CommandRegistry,
        workspace: WorkspaceManager,
        namespace: str = DEFAULT_NAMESPACE,
    ) -> None:
        self.orchestrator = orchestrator
        self.command_registry = command_registry
        self.workspace = workspace
        self.namespace = namespace
        self.tools: list[ToolDescriptor] = []
        self._bindings = CompositeDisposable()

    def command_id(self, tool: ToolDescriptor) -> str:
        return f"{self.namespace}:{tool.name}"

    def commands(self) -> list[str]:
        return [self.command_id(tool) for tool in self.tools]

    def get(self, name: str) -> ToolDescriptor | None:
        return next((tool for tool in self.tools if tool.name == name), None)

    def register_from_config(self, entries: Iterable[Any] | None) -> None:
        self.register(parse_tools(entries))

    def register(self, descriptors: Iterable[ToolDescriptor]) -> None:
        self.teardown()
        self.tools = list(descriptors)
        for tool in self.tools:
            self._bind_command(tool)
            if tool.run_on_save:
                self._bindings.add(self.workspace.observe_buffers(lambda buffer, t=tool: self._bind_save(buffer, t)))
        logger.info(
            "Registered formatter tools: %s",
            ", ".join(f"{t.name}{' (on save)' if t.run_on_save else ''}" for t in self.tools) or "none",
        )

    def teardown(self) -> None:
        self._bindings.clear()
        self.tools = []

    def format_active(self, tool: ToolDescriptor) -> FormatOutcome:
        return self.orchestrator.format(self.workspace.active_buffer, tool)

    def _bind_command(self, tool: ToolDescriptor) -> None:
        command_id = self.command_id(tool)
        self.command_registry.register_command(
            CommandDescriptor(
                id=command_id,
                description=f"Format with {tool.name}",
                category="Format",
                callback=lambda t=tool: self.format_active(t),
            )
        )
        self._bindings.add(Disposable(lambda: self.command_registry.unregister_command(command_id)))

    def _bind_save(self, buffer, tool: ToolDescriptor) -> None:
        if buffer is None or not buffer.is_alive():
            return
        subscriptions = CompositeDisposable()

        def _on_will_save(path: str | None = None) -> None:
            try:
                self.orchestrator.format(buffer, tool, path)
            except Exception:
                # Save hooks must never break the host's save.
                logger.exception("%s: formatting on save failed", tool.name)

        def _on_did_destroy() -> None:
            subscriptions.dispose()
            self._bindings.remove(subscriptions)

        subscriptions.add(buffer.on_will_save(_on_will_save))
        subscriptions.add(buffer.on_did_destroy(_on_did_destroy))
        self._bindings.add(subscriptions)
