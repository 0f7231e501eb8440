"""Lightweight command registry used for palette entries."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from difflib import SequenceMatcher
from typing import Any, Callable, List

logger = logging.getLogger(__name__)


@dataclass
class CommandDescriptor:
    """Metadata for commands exposed to the palette."""

    id: str
    description: str
    category: str
    callback: Callable[..., Any]


class CommandRegistry:
    def __init__(self) -> None:
        self._commands: list[CommandDescriptor] = []

    def register_command(self, command: CommandDescriptor) -> None:
        self._commands = [cmd for cmd in self._commands if cmd.id != command.id]
        self._commands.append(command)

    def unregister_command(self, command_id: str) -> bool:
        before = len(self._commands)
        self._commands = [cmd for cmd in self._commands if cmd.id != command_id]
        return len(self._commands) != before

    def get(self, command_id: str) -> CommandDescriptor | None:
        for cmd in self._commands:
            if cmd.id == command_id:
                return cmd
        return None

    def list_commands(self, filter_text: str | None = None) -> List[CommandDescriptor]:
        if not filter_text:
            return list(self._commands)

        def _score(command: CommandDescriptor) -> float:
            haystack = f"{command.id} {command.description}"
            return SequenceMatcher(None, filter_text.lower(), haystack.lower()).ratio()

        scored = [cmd for cmd in self._commands if _score(cmd) > 0.1]
        scored.sort(key=_score, reverse=True)
        return scored

    # Execution helpers -------------------------------------------------
    def execute(self, command_id: str, **kwargs: Any) -> Any:
        descriptor = self.get(command_id)
        if descriptor is None:
            raise KeyError(f"Unknown command: {command_id}")
        logger.debug("Executing command %s", command_id)
        return descriptor.callback(**kwargs)
