"""Ownership helpers for subscriptions and bindings that must be released."""
from __future__ import annotations

import logging
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


class SupportsDispose(Protocol):
    def dispose(self) -> None:
        ...


class Disposable:
    """Wrap a release callback so it runs at most once."""

    def __init__(self, release: Callable[[], None] | None = None) -> None:
        self._release = release
        self.disposed = False

    def dispose(self) -> None:
        if self.disposed:
            return
        self.disposed = True
        release, self._release = self._release, None
        if release:
            release()


class CompositeDisposable:
    """Ordered collection of disposables released together.

    ``dispose`` releases every member exactly once, in insertion order, and
    leaves the collection empty. Members added after disposal are released
    immediately so nothing outlives its owner.
    """

    def __init__(self, *items: SupportsDispose) -> None:
        self._items: list[SupportsDispose] = list(items)
        self.disposed = False

    def add(self, item: SupportsDispose) -> SupportsDispose:
        if self.disposed:
            item.dispose()
        else:
            self._items.append(item)
        return item

    def remove(self, item: SupportsDispose) -> None:
        try:
            self._items.remove(item)
        except ValueError:
            pass

    def clear(self) -> None:
        """Release the current members but keep accepting new ones."""

        items, self._items = self._items, []
        for item in items:
            try:
                item.dispose()
            except RuntimeError:
                # Qt objects may already be gone by the time we release them.
                logger.debug("Ignoring release of a deleted object", exc_info=True)

    def dispose(self) -> None:
        if self.disposed:
            return
        self.clear()
        self.disposed = True

    def __len__(self) -> int:
        return len(self._items)
