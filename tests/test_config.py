import os

import pytest
from pydantic import ValidationError

from src import constants
from src.report_generator.main import (
    DEFAULT_REPORT_CONFIG_PATH,
    GEMINI_DEFAULT_MODEL_NAME,
    load_report_config,
    load_report_request,
)
from src.report_generator.models import DataSourceMode
from src.report_generator.utils.theme import Theme


def test_load_report_config(tmp_path):
    """Tests loading a partial configuration; omitted keys use defaults."""
    path = tmp_path / "config.yaml"
    path.write_text(
        "llm:\n"
        "  enable_search_grounding: false\n"
        "reporting:\n"
        "  visuals:\n"
        "    default_theme: dark\n",
        encoding="utf-8",
    )
    config = load_report_config(str(path))
    assert config.llm.enable_search_grounding is False
    assert config.llm.gemini_settings.model_name == GEMINI_DEFAULT_MODEL_NAME
    assert config.reporting.visuals.default_theme is Theme.DARK
    assert config.reporting.visuals.report_width_px == 1100
    assert config.output.save_reports is True


def test_shipped_config_is_valid():
    """Tests that the configuration shipped with the project validates."""
    config = load_report_config(
        os.path.join(constants.PROJECT_ROOT, DEFAULT_REPORT_CONFIG_PATH)
    )
    assert "{language}" in config.prompts.system_prompt_template


def test_empty_config_is_rejected(tmp_path):
    """Tests that an empty configuration file raises ValueError."""
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    with pytest.raises(ValueError):
        load_report_config(str(path))


def test_missing_config_is_reported(tmp_path):
    """Tests that a missing configuration file raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        load_report_config(str(tmp_path / "missing.yaml"))


def test_invalid_config_values(tmp_path):
    """Tests that wrongly typed values fail validation."""
    path = tmp_path / "bad.yaml"
    path.write_text("reporting:\n  visuals:\n    report_width_px: wide\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        load_report_config(str(path))


def test_load_example_request():
    """Tests loading the example report request with camelCase keys."""
    request = load_report_request(
        os.path.join(constants.PROJECT_ROOT, "config", "example_request.yaml")
    )
    assert request.topic == "Digital economy in Saudi Arabia 2025"
    assert request.target_audience == "Investors and decision makers"
    assert request.data_type is DataSourceMode.WEB
    assert request.chart_types == ["Bar", "Line", "Pie"]


def test_request_is_immutable():
    """Tests that a loaded request cannot be changed afterwards."""
    request = load_report_request(
        os.path.join(constants.PROJECT_ROOT, "config", "example_request.yaml")
    )
    with pytest.raises(ValidationError):
        request.topic = "Something else"
