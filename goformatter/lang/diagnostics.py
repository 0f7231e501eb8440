"""Diagnostics parsed from formatter output, and the model that displays them."""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Iterator, List, Protocol

from PySide6.QtCore import Signal
from PySide6.QtGui import QStandardItem, QStandardItemModel

# Tools reading stdin report positions against a placeholder name,
# e.g. "<standard input>:12:5: expected ';', found newline".
DIAGNOSTIC_PATTERN = re.compile(r"^<.*?>:(\d+):(\d+):(.*)$", re.IGNORECASE)


class Severity(str, Enum):
    ERROR = "error"


@dataclass(frozen=True)
class Diagnostic:
    file: str
    line: int
    col: int
    end_col: int
    message: str
    severity: Severity = Severity.ERROR

    @property
    def range(self) -> tuple[tuple[int, int], tuple[int, int]]:
        return (self.line, self.col), (self.line, self.end_col)

    def to_message(self) -> dict[str, Any]:
        """Record shape expected by linter-style consumers."""

        return {
            "file": self.file,
            "range": self.range,
            "excerpt": self.message,
            "severity": self.severity.value,
        }


def iter_diagnostics(file_path: str | None, lines: Iterable[str]) -> Iterator[Diagnostic]:
    """Yield a diagnostic for every line that carries a position.

    Lines that do not match, or whose numbers are not positive, are skipped.
    """

    if not file_path:
        return
    for raw in lines:
        match = DIAGNOSTIC_PATTERN.match(raw.rstrip("\r\n"))
        if not match:
            continue
        try:
            line = int(match.group(1))
            column = int(match.group(2))
        except (TypeError, ValueError):
            continue
        if line < 1 or column < 1:
            continue
        yield Diagnostic(
            file=file_path,
            line=line - 1,
            col=column - 1,
            end_col=column,
            message=(match.group(3) or "").strip(),
        )


def parse_diagnostics(file_path: str | None, stderr_text: str) -> list[Diagnostic]:
    return list(iter_diagnostics(file_path, stderr_text.splitlines()))


class DiagnosticsSink(Protocol):
    def set_diagnostics(self, diagnostics: Iterable[Diagnostic]) -> None:
        ...


class DiagnosticsModel(QStandardItemModel):
    """Table model holding the latest published diagnostics."""

    headers = ["File", "Line", "Column", "Severity", "Message"]
    diagnostics_changed = Signal(list)

    def __init__(self, parent=None) -> None:
        super().__init__(parent)
        self.setHorizontalHeaderLabels(self.headers)
        self._diagnostics: list[Diagnostic] = []

    def set_diagnostics(self, diagnostics: Iterable[Diagnostic]) -> None:
        self._diagnostics = list(diagnostics)
        self.clear()
        self.setHorizontalHeaderLabels(self.headers)
        for diag in self._diagnostics:
            self.appendRow(self._items_for_diag(diag))
        self.diagnostics_changed.emit(list(self._diagnostics))

    def diagnostics(self) -> list[Diagnostic]:
        return list(self._diagnostics)

    def _items_for_diag(self, diag: Diagnostic) -> List[QStandardItem]:
        return [
            QStandardItem(str(diag.file)),
            QStandardItem(str(diag.line + 1)),
            QStandardItem(str(diag.col + 1)),
            QStandardItem(diag.severity.value),
            QStandardItem(diag.message),
        ]
