"""Editable text buffers backed by a QTextDocument."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Mapping, Protocol, Sequence

from PySide6.QtCore import QObject, Signal
from PySide6.QtGui import QTextCursor, QTextDocument

from goformatter.core.disposables import Disposable
from goformatter.editor.patcher import TextEdit

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION_MAP: dict[str, str] = {".go": "source.go"}
PARAGRAPH_SEPARATOR = "\u2029"


def grammar_scope_for(path: str | Path | None, extension_map: Mapping[str, str] | None = None) -> str | None:
    """Map a file suffix to a grammar scope such as ``source.go``."""

    if not path:
        return None
    mapping = dict(DEFAULT_EXTENSION_MAP)
    for suffix, scope in (extension_map or {}).items():
        mapping[f".{str(suffix).lstrip('.')}".lower()] = scope
    return mapping.get(Path(path).suffix.lower())


def _qt_position(text: str, offset: int) -> int:
    # QTextDocument positions count UTF-16 code units.
    return len(text[:offset].encode("utf-16-le")) // 2


class TextBuffer(Protocol):
    """What the formatter needs from a host buffer."""

    @property
    def path(self) -> str | None:
        ...

    @property
    def grammar_scope(self) -> str | None:
        ...

    def is_alive(self) -> bool:
        ...

    def text(self) -> str:
        ...

    def apply_edits(self, edits: Sequence[TextEdit]) -> None:
        ...

    def on_will_save(self, callback: Callable[[str | None], None]) -> Disposable:
        ...

    def on_did_destroy(self, callback: Callable[[], None]) -> Disposable:
        ...


def _disconnect(signal, callback: Callable) -> None:
    try:
        signal.disconnect(callback)
    except (RuntimeError, TypeError):
        logger.debug("Signal already disconnected", exc_info=True)


class DocumentBuffer(QObject):
    """A file's text held in a QTextDocument, with save/destroy lifecycle signals.

    ``document`` may be shared with an editor widget (``QPlainTextEdit.document()``)
    so edits land in the widget's undo history and cursors.
    """

    will_save = Signal(object)
    did_destroy = Signal()

    def __init__(
        self,
        path: str | Path | None = None,
        text: str = "",
        *,
        grammar_scope: str | None = None,
        document: QTextDocument | None = None,
        extension_map: Mapping[str, str] | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._path = str(path) if path else None
        self._extension_map = dict(extension_map or {})
        self._explicit_scope = grammar_scope
        self._document = document if document is not None else QTextDocument(self)
        if document is None or text:
            self._document.setPlainText(text)
        self._document.setModified(False)
        self._alive = True

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        *,
        extension_map: Mapping[str, str] | None = None,
        parent: QObject | None = None,
    ) -> "DocumentBuffer":
        file_path = Path(path)
        with file_path.open("r", encoding="utf-8") as handle:
            text = handle.read()
        return cls(file_path, text, extension_map=extension_map, parent=parent)

    # Accessors ----------------------------------------------------------
    @property
    def path(self) -> str | None:
        return self._path

    @property
    def grammar_scope(self) -> str | None:
        if self._explicit_scope:
            return self._explicit_scope
        return grammar_scope_for(self._path, self._extension_map)

    @property
    def document(self) -> QTextDocument:
        return self._document

    def is_alive(self) -> bool:
        return self._alive

    def is_modified(self) -> bool:
        return bool(self._document.isModified())

    def text(self) -> str:
        # toPlainText() folds NBSP and U+2028 into plain whitespace; only the
        # block separator maps back to a newline.
        return self._document.toRawText().replace(PARAGRAPH_SEPARATOR, "\n")

    # Mutation -----------------------------------------------------------
    def apply_edits(self, edits: Sequence[TextEdit]) -> None:
        """Apply non-overlapping edits as a single undo step."""

        if not edits:
            return
        original = self.text()
        cursor = QTextCursor(self._document)
        cursor.beginEditBlock()
        try:
            for edit in sorted(edits, key=lambda e: e.start, reverse=True):
                cursor.setPosition(_qt_position(original, edit.start))
                cursor.setPosition(_qt_position(original, edit.end), QTextCursor.MoveMode.KeepAnchor)
                cursor.insertText(edit.text)
        finally:
            cursor.endEditBlock()

    # Lifecycle ----------------------------------------------------------
    def on_will_save(self, callback: Callable[[str | None], None]) -> Disposable:
        self.will_save.connect(callback)
        return Disposable(lambda: _disconnect(self.will_save, callback))

    def on_did_destroy(self, callback: Callable[[], None]) -> Disposable:
        self.did_destroy.connect(callback)
        return Disposable(lambda: _disconnect(self.did_destroy, callback))

    def save(self, path: str | Path | None = None) -> Path:
        """Notify save listeners, then write the (possibly reformatted) text."""

        target = Path(path) if path else (Path(self._path) if self._path else None)
        if target is None:
            raise ValueError("Buffer has no path to save to")
        self.will_save.emit(str(target))
        with target.open("w", encoding="utf-8", newline="") as handle:
            handle.write(self.text())
        self._path = str(target)
        self._document.setModified(False)
        return target

    def destroy(self) -> None:
        if not self._alive:
            return
        self._alive = False
        self.did_destroy.emit()
