"""
Builds the LLM request for a report: the natural-language instruction, the
system instruction, and the JSON response schema the model must satisfy.

Everything here is pure data assembly. Building twice from the same
`ReportConfig` and profile gives identical output.
"""

import copy
import logging
from dataclasses import dataclass
from typing import Any, Dict

from langchain_core.prompts import PromptTemplate

from .models import ReportConfig, ReportProfile
from .profiles import (
    KEYWORDS_KEY,
    LISTINGS_KEY,
    STORES_KEY,
    declared_fields,
    get_profile_spec,
    required_fields,
)
from .prompts import (
    DEFAULT_PROMPT_TEMPLATE,
    DEFAULT_SYSTEM_TEMPLATE,
    EMPTY_DATA_DIRECTIVE,
)

logger = logging.getLogger(__name__)


# =============================================================================
# SCHEMA FRAGMENTS
# =============================================================================
_STRING = {"type": "string"}
_NUMBER = {"type": "number"}

_DATA_POINT_SCHEMA = {
    "type": "object",
    "properties": {"label": _STRING, "value": _NUMBER},
    "required": ["label", "value"],
}

_CHART_SCHEMA = {
    "type": "object",
    "properties": {
        "id": _STRING,
        "title": _STRING,
        "type": {"type": "string", "description": "Bar, Line, Pie, or Radar"},
        "data": {"type": "array", "items": _DATA_POINT_SCHEMA},
    },
    "required": ["id", "title", "type", "data"],
}

_SOURCE_SCHEMA = {
    "type": "object",
    "properties": {"title": _STRING, "url": _STRING, "date": _STRING},
    "required": ["title", "url"],
}

_LISTING_SCHEMA = {
    "type": "object",
    "properties": {
        "title": _STRING,
        "shopName": _STRING,
        "price": _STRING,
        "url": _STRING,
        "shopUrl": _STRING,
    },
    "required": ["title", "shopName", "url", "shopUrl"],
}

_STORE_SCHEMA = {
    "type": "object",
    "properties": {
        "name": _STRING,
        "specialization": _STRING,
        "rating": _NUMBER,
        "url": _STRING,
    },
    "required": ["name", "specialization"],
}

_KEYWORD_SCHEMA = {
    "type": "object",
    "properties": {
        "keyword": _STRING,
        "volume": {"type": "string", "description": "High, Medium, or Low"},
        "competition": {"type": "string", "description": "High, Medium, or Low"},
        "category": _STRING,
    },
    "required": ["keyword", "volume", "competition"],
}

# Top-level property schemas, keyed by wire name.
FIELD_SCHEMAS: Dict[str, Dict[str, Any]] = {
    "title": _STRING,
    "summary": _STRING,
    "methodology": _STRING,
    "limitations": _STRING,
    "charts": {"type": "array", "items": _CHART_SCHEMA},
    "tableData": {"type": "array", "items": {"type": "object"}},
    "sources": {"type": "array", "items": _SOURCE_SCHEMA},
    STORES_KEY: {"type": "array", "items": _STORE_SCHEMA},
    LISTINGS_KEY: {"type": "array", "items": _LISTING_SCHEMA},
    KEYWORDS_KEY: {"type": "array", "items": _KEYWORD_SCHEMA},
}


# =============================================================================
# REQUEST
# =============================================================================
@dataclass(frozen=True)
class ReportRequest:
    """Everything the LLM call needs for one report."""

    instruction: str
    system_instruction: str
    response_schema: Dict[str, Any]
    profile: ReportProfile


def build_response_schema(profile: ReportProfile) -> Dict[str, Any]:
    """
    Builds the response schema for a profile.

    Every declared top-level key gets a property; only the profile's required
    keys are listed under `required`. The returned dict is a fresh copy that
    callers may mutate freely.
    """
    properties = {key: FIELD_SCHEMAS[key] for key in declared_fields(profile)}
    return copy.deepcopy(
        {
            "type": "object",
            "properties": properties,
            "required": list(required_fields(profile)),
        }
    )


def _prompt_variables(config: ReportConfig, profile: ReportProfile) -> Dict[str, str]:
    """Flattens the config into template variables, keeping every value verbatim."""
    return {
        "topic": config.topic,
        "goal": config.goal,
        "target_audience": config.target_audience,
        "region": config.region,
        "time_range": config.time_range,
        "metrics": ", ".join(config.metrics),
        "chart_types": ", ".join(config.chart_types),
        "data_type": config.data_type.value,
        "raw_data": config.raw_data or EMPTY_DATA_DIRECTIVE,
        "language": config.language,
        "profile_directive": get_profile_spec(profile).directive,
    }


def build_request(
    config: ReportConfig,
    profile: ReportProfile = ReportProfile.GENERIC,
    prompt_template: str = DEFAULT_PROMPT_TEMPLATE,
    system_template: str = DEFAULT_SYSTEM_TEMPLATE,
) -> ReportRequest:
    """
    Assembles the instruction, system instruction, and schema for a report.

    Args:
        config: The user's report configuration. Fields are not validated;
            they are interpolated as-is.
        profile: Which schema variant the model must fill.
        prompt_template: A LangChain `PromptTemplate` string for the instruction.
        system_template: A template string for the system instruction.

    Returns:
        A `ReportRequest` ready to be sent to the LLM.
    """
    profile = ReportProfile(profile)
    variables = _prompt_variables(config, profile)

    instruction = PromptTemplate.from_template(prompt_template).format(**variables)
    system_instruction = PromptTemplate.from_template(system_template).format(
        **variables
    )
    logger.debug(
        f"Built '{profile.value}' request for topic '{config.topic}' "
        f"({len(instruction)} characters)."
    )
    return ReportRequest(
        instruction=instruction,
        system_instruction=system_instruction,
        response_schema=build_response_schema(profile),
        profile=profile,
    )
