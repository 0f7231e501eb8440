"""Open buffers, the active buffer and project roots."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Iterable, Mapping, Optional

from PySide6.QtCore import QObject, Signal

from goformatter.core.disposables import Disposable
from goformatter.editor.buffer import DocumentBuffer

logger = logging.getLogger(__name__)


def _is_local(path: str) -> bool:
    return bool(path) and "://" not in path


class WorkspaceManager(QObject):
    """Track project folders and the buffers opened in them."""

    buffer_opened = Signal(object)
    buffer_closed = Signal(object)
    active_buffer_changed = Signal(object)

    def __init__(
        self,
        project_paths: Iterable[str | Path] = (),
        extension_map: Mapping[str, str] | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self.project_paths: list[str] = []
        self.extension_map = dict(extension_map or {})
        self._buffers: list[DocumentBuffer] = []
        self._active: Optional[DocumentBuffer] = None
        for path in project_paths:
            self.add_project_path(path)

    # Projects -----------------------------------------------------------
    def add_project_path(self, path: str | Path) -> None:
        value = str(path)
        if _is_local(value):
            value = os.path.abspath(value)
        if value not in self.project_paths:
            self.project_paths.append(value)

    def project_root_for(self, file_path: str | Path | None) -> str | None:
        """Return the project containing ``file_path``, else the first local project."""

        if file_path:
            target = os.path.abspath(str(file_path))
            containing = [
                root
                for root in self.project_paths
                if _is_local(root) and (target == root or target.startswith(root.rstrip(os.sep) + os.sep))
            ]
            if containing:
                return max(containing, key=len)
        return next((root for root in self.project_paths if _is_local(root)), None)

    # Buffers ------------------------------------------------------------
    def buffers(self) -> list[DocumentBuffer]:
        return list(self._buffers)

    def open_buffer(self, path: str | Path) -> DocumentBuffer:
        target = os.path.abspath(str(path))
        existing = next((b for b in self._buffers if b.path == target), None)
        if existing is not None:
            self.set_active_buffer(existing)
            return existing
        if os.path.exists(target):
            buffer = DocumentBuffer.from_file(target, extension_map=self.extension_map, parent=self)
        else:
            buffer = DocumentBuffer(target, extension_map=self.extension_map, parent=self)
        return self.add_buffer(buffer)

    def add_buffer(self, buffer: DocumentBuffer) -> DocumentBuffer:
        if buffer in self._buffers:
            return buffer
        self._buffers.append(buffer)
        buffer.did_destroy.connect(lambda b=buffer: self._forget(b))
        logger.debug("Opened buffer %s", buffer.path)
        self.buffer_opened.emit(buffer)
        self.set_active_buffer(buffer)
        return buffer

    def close_buffer(self, buffer: DocumentBuffer) -> None:
        buffer.destroy()

    def _forget(self, buffer: DocumentBuffer) -> None:
        if buffer not in self._buffers:
            return
        self._buffers.remove(buffer)
        if self._active is buffer:
            self.set_active_buffer(self._buffers[-1] if self._buffers else None)
        self.buffer_closed.emit(buffer)

    @property
    def active_buffer(self) -> DocumentBuffer | None:
        return self._active

    def set_active_buffer(self, buffer: DocumentBuffer | None) -> None:
        if buffer is self._active:
            return
        self._active = buffer
        self.active_buffer_changed.emit(buffer)

    def observe_buffers(self, callback: Callable[[DocumentBuffer], None]) -> Disposable:
        """Call ``callback`` for every open buffer now and for each one opened later."""

        for buffer in list(self._buffers):
            callback(buffer)
        self.buffer_opened.connect(callback)

        def _release() -> None:
            try:
                self.buffer_opened.disconnect(callback)
            except (RuntimeError, TypeError):
                logger.debug("Buffer observer already released", exc_info=True)

        return Disposable(_release)
