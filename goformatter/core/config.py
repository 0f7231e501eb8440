"""Configuration management for the formatter integration."""
from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any, Callable

import yaml

from goformatter.core.disposables import Disposable

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")) / "goformatter"
DEFAULTS_PATH = Path(__file__).resolve().parent.parent / "settings" / "defaults.yaml"
USER_SETTINGS_PATH = CONFIG_DIR / "settings.yaml"

ConfigObserver = Callable[[Any], None]


class ConfigManager:
    """Loads default and user configuration and notifies observers of changes."""

    def __init__(self, user_settings_path: Path | None = None, defaults_path: Path | None = None) -> None:
        self.user_settings_path = Path(user_settings_path or USER_SETTINGS_PATH)
        self.defaults = self._load_yaml(Path(defaults_path or DEFAULTS_PATH))
        self.user_settings = self._load_yaml(self.user_settings_path)
        self.settings = self._deep_merge(self.defaults, self.user_settings)
        self._observers: dict[str, list[ConfigObserver]] = {}

    def _load_yaml(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        with path.open("r", encoding="utf-8") as handle:
            try:
                data = yaml.safe_load(handle) or {}
            except yaml.YAMLError as exc:
                logger.error("Ignoring unreadable settings file %s: %s", path, exc)
                return {}
        if not isinstance(data, dict):
            logger.error("Ignoring settings file %s: top level must be a mapping", path)
            return {}
        return data

    def get(self, key: str, default: Any | None = None) -> Any:
        return self.settings.get(key, default)

    def section(self, key: str) -> dict[str, Any]:
        """Return a copy of a mapping section, or an empty dict."""

        value = self.settings.get(key)
        return copy.deepcopy(value) if isinstance(value, dict) else {}

    def set(self, key: str, value: Any) -> None:
        self.settings[key] = value
        for callback in list(self._observers.get(key, [])):
            callback(value)

    def update_section(self, key: str, **values: Any) -> None:
        """Merge ``values`` into a mapping section and notify its observers once."""

        merged = self.section(key)
        merged.update(values)
        self.set(key, merged)

    def observe(self, key: str, callback: ConfigObserver) -> Disposable:
        """Call ``callback`` with the current value now and after every change."""

        self._observers.setdefault(key, []).append(callback)
        callback(self.settings.get(key))

        def _release() -> None:
            callbacks = self._observers.get(key, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return Disposable(_release)

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        merged: dict[str, Any] = copy.deepcopy(base)
        for key, value in override.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = self._deep_merge(merged[key], value)
            else:
                merged[key] = copy.deepcopy(value)
        return merged
