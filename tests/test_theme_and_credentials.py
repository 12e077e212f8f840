import asyncio
import os

from src.report_generator.utils import credentials as credentials_module
from src.report_generator.utils.credentials import EnvironmentCredentialProvider
from src.report_generator.utils.theme import (
    FileThemeStore,
    MemoryThemeStore,
    Theme,
    ThemePreference,
)


def test_theme_defaults_to_platform_preference():
    """Tests that an empty store falls back to the platform default."""
    preference = ThemePreference(MemoryThemeStore(), platform_default=Theme.DARK)
    assert preference.theme is Theme.DARK


def test_stored_theme_wins_over_default():
    """Tests that a stored preference is used at start-up."""
    preference = ThemePreference(MemoryThemeStore("light"), platform_default=Theme.DARK)
    assert preference.theme is Theme.LIGHT


def test_toggle_writes_back():
    """Tests that every change goes through the store."""
    store = MemoryThemeStore()
    preference = ThemePreference(store)
    assert preference.toggle() is Theme.DARK
    assert store.get() == "dark"
    assert preference.toggle() is Theme.LIGHT
    assert store.get() == "light"


def test_invalid_stored_theme_falls_back():
    """Tests that an unknown stored value is ignored."""
    preference = ThemePreference(MemoryThemeStore("sepia"), platform_default=Theme.LIGHT)
    assert preference.theme is Theme.LIGHT


def test_file_store_persists_across_sessions(tmp_path):
    """Tests that the file store keeps the preference between instances."""
    path = str(tmp_path / "prefs" / "theme.yaml")
    ThemePreference(FileThemeStore(path)).set(Theme.DARK)
    assert os.path.exists(path)
    assert ThemePreference(FileThemeStore(path)).theme is Theme.DARK


def test_plotly_templates():
    """Tests the Plotly template chosen per theme."""
    assert Theme.DARK.plotly_template == "plotly_dark"
    assert Theme.LIGHT.plotly_template == "plotly_white"


def test_credential_from_environment(monkeypatch):
    """Tests the API key check against the environment."""
    monkeypatch.setenv("TEST_REPORT_KEY", "secret")
    provider = EnvironmentCredentialProvider("TEST_REPORT_KEY", load_env_file=False)
    assert provider.has_usable_credential()

    monkeypatch.setenv("TEST_REPORT_KEY", "   ")
    assert not provider.has_usable_credential()


def test_non_interactive_prompt_does_not_set_key(monkeypatch):
    """Tests that the non-interactive selection only logs instructions."""
    monkeypatch.delenv("TEST_REPORT_KEY", raising=False)
    provider = EnvironmentCredentialProvider("TEST_REPORT_KEY", load_env_file=False)
    asyncio.run(provider.prompt_credential_selection())
    assert not provider.has_usable_credential()


def test_interactive_prompt_stores_key(monkeypatch):
    """Tests that the interactive selection stores the entered key."""
    monkeypatch.setenv("TEST_REPORT_KEY", "")
    monkeypatch.setattr(credentials_module.getpass, "getpass", lambda prompt: " new-key ")
    provider = EnvironmentCredentialProvider(
        "TEST_REPORT_KEY", interactive=True, load_env_file=False
    )
    asyncio.run(provider.prompt_credential_selection())
    assert provider.api_key == "new-key"
