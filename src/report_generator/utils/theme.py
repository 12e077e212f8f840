"""
The light/dark theme preference of the rendered report.

The preference is an explicit value backed by an injected store: it is read
once at start-up (falling back to a platform default) and every change is
written back through the same store.
"""

import logging
import os
from enum import Enum
from typing import Optional, Protocol

import yaml

logger = logging.getLogger(__name__)


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"

    @property
    def plotly_template(self) -> str:
        return "plotly_dark" if self is Theme.DARK else "plotly_white"


class ThemeStore(Protocol):
    """Persistence capability for the theme preference."""

    def get(self) -> Optional[str]: ...

    def set(self, value: str) -> None: ...


class MemoryThemeStore:
    """Keeps the preference for the lifetime of the process only."""

    def __init__(self, value: Optional[str] = None):
        self.value = value

    def get(self) -> Optional[str]:
        return self.value

    def set(self, value: str) -> None:
        self.value = value


class FileThemeStore:
    """Persists the preference in a small YAML file across sessions."""

    def __init__(self, path: str):
        self.path = path

    def get(self) -> Optional[str]:
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.warning(f"Ignoring unreadable theme preference '{self.path}': {e}")
            return None
        return data.get("theme") if isinstance(data, dict) else None

    def set(self, value: str) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump({"theme": value}, f)


class ThemePreference:
    """The current theme, initialized from a store and written back on change."""

    def __init__(self, store: ThemeStore, platform_default: Theme = Theme.LIGHT):
        self.store = store
        stored = store.get()
        try:
            self._theme = Theme(stored) if stored else Theme(platform_default)
        except ValueError:
            logger.warning(f"Unknown stored theme '{stored}', using {platform_default}.")
            self._theme = Theme(platform_default)

    @property
    def theme(self) -> Theme:
        return self._theme

    def set(self, theme: Theme) -> Theme:
        self._theme = Theme(theme)
        self.store.set(self._theme.value)
        return self._theme

    def toggle(self) -> Theme:
        return self.set(Theme.LIGHT if self._theme is Theme.DARK else Theme.DARK)
