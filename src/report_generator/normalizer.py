"""
Turns the LLM's raw JSON answer into a validated `ReportData`.

The normalizer parses the text, checks that the active profile's required keys
are present, appends the web citations surfaced by Google Search grounding to
the declared `sources`, and validates the result. Any failure is fatal for the
request and raises `MalformedResponseError`; nothing is partially recovered.

Grounding-derived sources are appended after the model's own sources in the
order the citations were received. They are not deduplicated against the
model's sources, so the same URL may appear twice.
"""

import datetime
import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import ValidationError

from .. import constants
from .errors import MalformedResponseError
from .models import ReportData, ReportProfile
from .profiles import required_fields
from .utils.localization import format_display_date, get_label

logger = logging.getLogger(__name__)


def _lookup(mapping: Mapping[str, Any], *keys: str) -> Any:
    """Returns the first present key, tolerating snake_case and camelCase."""
    for key in keys:
        if key in mapping and mapping[key] is not None:
            return mapping[key]
    return None


def extract_grounding_chunks(response_metadata: Optional[Mapping]) -> List[Dict]:
    """
    Pulls the grounding citation chunks out of a LangChain response.

    `langchain-google-genai` exposes the provider's grounding metadata under
    `response_metadata["grounding_metadata"]`; older releases and raw API
    payloads use camelCase keys instead.

    Returns:
        The list of chunk dictionaries, empty when the answer was not grounded.
    """
    if not response_metadata:
        return []
    grounding = _lookup(response_metadata, "grounding_metadata", "groundingMetadata")
    if not isinstance(grounding, Mapping):
        return []
    chunks = _lookup(grounding, "grounding_chunks", "groundingChunks")
    return [chunk for chunk in chunks or [] if isinstance(chunk, Mapping)]


def grounding_sources(
    chunks: Sequence[Mapping],
    language: Optional[str],
    today: Optional[datetime.date] = None,
) -> List[Dict[str, str]]:
    """Builds one source record per chunk that carries a web reference."""
    stamp = format_display_date(today or datetime.date.today(), language)
    sources = []
    for chunk in chunks:
        web = chunk.get("web")
        if web is None:
            continue
        if not isinstance(web, Mapping):
            web = {}
        sources.append(
            {
                "title": web.get("title") or get_label(language, "external_source"),
                "url": web.get("uri") or constants.PLACEHOLDER_SOURCE_URL,
                "date": stamp,
            }
        )
    return sources


def parse_payload(raw_text: Optional[str], profile: ReportProfile) -> Dict[str, Any]:
    """
    Parses the raw response text and checks the profile's required keys.

    Raises:
        MalformedResponseError: If the text is empty, not JSON, not an object,
            or missing any required key.
    """
    if not raw_text or not raw_text.strip():
        raise MalformedResponseError("The model returned an empty response.")
    try:
        document = json.loads(raw_text)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"The model response is not valid JSON: {e}") from e

    if not isinstance(document, dict) or not document:
        raise MalformedResponseError("The model response is not a JSON object.")

    missing = [key for key in required_fields(profile) if key not in document]
    if missing:
        raise MalformedResponseError(
            f"The model response is missing required fields: {', '.join(missing)}"
        )
    return document


def normalize_response(
    raw_text: Optional[str],
    grounding_chunks: Optional[Sequence[Mapping]] = None,
    profile: ReportProfile = ReportProfile.GENERIC,
    language: Optional[str] = None,
    today: Optional[datetime.date] = None,
) -> ReportData:
    """
    Converts the model's raw output into a typed report.

    Args:
        raw_text: The JSON document returned by the model.
        grounding_chunks: Citation chunks from the grounding metadata, each an
            optional `{"web": {"title": ..., "uri": ...}}` mapping.
        profile: The profile the request was built with.
        language: The report language, used for placeholder titles and dates.
        today: The date stamped on grounding sources (defaults to today).

    Returns:
        A freshly built `ReportData`.

    Raises:
        MalformedResponseError: If the output cannot be turned into a report.
    """
    document = parse_payload(raw_text, profile)

    extra_sources = grounding_sources(grounding_chunks or [], language, today)
    if extra_sources:
        if not isinstance(document["sources"], list):
            raise MalformedResponseError("The model response `sources` is not a list.")
        document["sources"] = document["sources"] + extra_sources
        logger.info(f"Appended {len(extra_sources)} grounding source(s) to the report.")

    try:
        return ReportData.model_validate(document)
    except ValidationError as e:
        logger.error(f"Model response failed validation:\n{e}")
        raise MalformedResponseError(
            f"The model response does not match the report schema: "
            f"{e.error_count()} error(s)."
        ) from e
