"""
Centralized definitions for all project-wide constants.

This module consolidates file paths, directory names, and other static values
to ensure consistency and ease of maintenance. By defining these constants in one
place, we avoid hardcoding strings in other modules, making the codebase more
robust and easier to reconfigure.

Attributes:
    PROJECT_ROOT (str): The absolute path to the project's root directory.
    CONFIG_DIR (str): The name of the configuration directory.
    OUTPUT_DIR (str): The name of the main output directory.
    ASSETS_DIR (str): The name of the directory for static assets like CSS.
    REPORT_GEN_CONFIG_FILENAME (str): The filename for the report generator config.
    THEME_PREFERENCE_FILENAME (str): The file holding the persisted UI theme.
    REPORTS_DIR_NAME (str): The name for the reports subdirectory within a run output.
    REPORT_JSON_FILENAME (str): The filename of the saved report payload.
    REPORT_HTML_FILENAME (str): The filename of the exported HTML report.
    RUN_METADATA_FILENAME (str): The file recording how a saved report was requested.
    API_KEY_ENV_VAR (str): The environment variable holding the Gemini API key.
"""

import os

# --- Project Root ---
# Resolves the absolute path to the project's root directory, allowing for
# consistent pathing regardless of where the script is executed from.
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# --- Top-Level Directory Names ---
CONFIG_DIR = "config"
OUTPUT_DIR = "output"
ASSETS_DIR = os.path.join(PROJECT_ROOT, "assets")

# --- Configuration Filenames ---
REPORT_GEN_CONFIG_FILENAME = "config_report_generator.yaml"
THEME_PREFERENCE_FILENAME = ".theme_preference.yaml"

# --- Internal Names (used within a run-specific output folder) ---
REPORTS_DIR_NAME = "reports"
REPORT_JSON_FILENAME = "report.json"
REPORT_HTML_FILENAME = "report.html"
RUN_METADATA_FILENAME = "run_info.yaml"
RUN_DIR_REGEX = r"^\d{8}_\d{6}_run_.*"

# --- Credentials ---
API_KEY_ENV_VAR = "GOOGLE_API_KEY"

# --- Provider error signatures ---
# Gemini answers with this message when the selected key does not belong to a
# billing-enabled project (or no key is selected at all).
CREDENTIAL_ERROR_SIGNATURES = (
    "requested entity was not found",
    "entity not found",
)

# --- Grounding fallbacks ---
PLACEHOLDER_SOURCE_URL = "#"
