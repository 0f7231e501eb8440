"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import os

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PySide6.QtWidgets import QApplication  # noqa: E402

_qt_app = QApplication.instance() or QApplication([])


@pytest.fixture(scope="session")
def qt_app():
    """Provide a shared QApplication instance for buffer and model tests."""

    return _qt_app
