"""Apply formatter output to a buffer as a minimal set of edits."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from difflib import SequenceMatcher
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from goformatter.editor.buffer import TextBuffer

logger = logging.getLogger(__name__)


class PatchError(RuntimeError):
    """The buffer did not end up with the expected text."""


@dataclass(frozen=True)
class TextEdit:
    """Replace ``[start, end)`` (code point offsets) with ``text``."""

    start: int
    end: int
    text: str


def compute_edits(old: str, new: str) -> list[TextEdit]:
    """Line-level diff of ``old`` against ``new``, ordered back to front."""

    if old == new:
        return []
    old_lines = old.splitlines(keepends=True)
    new_lines = new.splitlines(keepends=True)

    offsets = [0]
    for line in old_lines:
        offsets.append(offsets[-1] + len(line))

    edits: list[TextEdit] = []
    matcher = SequenceMatcher(None, old_lines, new_lines, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            continue
        edits.append(TextEdit(offsets[i1], offsets[i2], "".join(new_lines[j1:j2])))
    edits.reverse()
    return edits


class BufferPatcher:
    def apply(self, buffer: "TextBuffer", new_text: str) -> list[TextEdit]:
        """Bring ``buffer`` to ``new_text`` touching only the changed lines.

        Returns the edits that were applied; an empty list means the buffer
        already held ``new_text`` and was not touched. If the result does not
        match, the original text is put back and ``PatchError`` is raised.
        """

        current = buffer.text()
        edits = compute_edits(current, new_text)
        if not edits:
            return []

        buffer.apply_edits(edits)
        if buffer.text() != new_text:
            logger.error("Patch of %s diverged from formatter output, restoring", buffer.path)
            buffer.apply_edits([TextEdit(0, len(buffer.text()), current)])
            raise PatchError(f"Could not merge changes into {buffer.path or 'buffer'}")
        logger.debug("Applied %d edit(s) to %s", len(edits), buffer.path)
        return edits
