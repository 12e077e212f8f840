import pytest

from src.report_generator.models import DataSourceMode, ReportConfig, ReportProfile
from src.report_generator.profiles import declared_fields, required_fields
from src.report_generator.prompts import EMPTY_DATA_DIRECTIVE
from src.report_generator.request_builder import build_request, build_response_schema


@pytest.mark.parametrize("profile", list(ReportProfile))
def test_required_fields_are_declared(profile):
    """Tests that every required key of a profile is also declared."""
    assert set(required_fields(profile)) <= set(declared_fields(profile))


@pytest.mark.parametrize("profile", list(ReportProfile))
def test_schema_marks_exactly_the_required_fields(profile):
    """Tests that the schema declares all profile keys and requires only the required ones."""
    schema = build_response_schema(profile)
    assert list(schema["properties"]) == list(declared_fields(profile))
    assert schema["required"] == list(required_fields(profile))


def test_generic_profile_has_no_extensions():
    """Tests that the generic schema only describes the common report keys."""
    schema = build_response_schema(ReportProfile.GENERIC)
    assert "topStores" not in schema["properties"]
    assert "topEtsyListings" not in schema["properties"]
    assert "topKeywords" not in schema["properties"]
    assert schema["required"] == [
        "title",
        "summary",
        "methodology",
        "limitations",
        "charts",
        "tableData",
        "sources",
    ]


def test_marketplace_profile_requires_stores_and_listings():
    """Tests the marketplace profile's required extension collections."""
    schema = build_response_schema(ReportProfile.MARKETPLACE_LISTINGS)
    assert "topStores" in schema["required"]
    assert "topEtsyListings" in schema["required"]
    assert "topKeywords" not in schema["properties"]


def test_keywords_profile_keeps_stores_optional():
    """Tests that topStores is declared but optional for the keywords profile."""
    schema = build_response_schema(ReportProfile.KEYWORDS_AND_LISTINGS)
    assert "topStores" in schema["properties"]
    assert "topStores" not in schema["required"]
    assert "topKeywords" in schema["required"]
    assert "topEtsyListings" in schema["required"]


def test_nested_records_declare_their_required_keys():
    """Tests the required keys of charts, points, and listings."""
    schema = build_response_schema(ReportProfile.KEYWORDS_AND_LISTINGS)
    chart = schema["properties"]["charts"]["items"]
    assert chart["required"] == ["id", "title", "type", "data"]
    assert chart["properties"]["data"]["items"]["required"] == ["label", "value"]
    listing = schema["properties"]["topEtsyListings"]["items"]
    assert listing["required"] == ["title", "shopName", "url", "shopUrl"]
    assert schema["properties"]["tableData"]["items"] == {"type": "object"}


def test_schema_is_a_fresh_copy():
    """Tests that mutating one schema does not leak into the next call."""
    first = build_response_schema(ReportProfile.GENERIC)
    first["required"].append("bogus")
    first["properties"]["charts"]["items"]["required"].clear()
    second = build_response_schema(ReportProfile.GENERIC)
    assert "bogus" not in second["required"]
    assert second["properties"]["charts"]["items"]["required"] == [
        "id",
        "title",
        "type",
        "data",
    ]


def test_build_request_is_idempotent(report_config):
    """Tests that identical inputs give identical instructions and schemas."""
    first = build_request(report_config, ReportProfile.MARKETPLACE_LISTINGS)
    second = build_request(report_config, ReportProfile.MARKETPLACE_LISTINGS)
    assert first.instruction == second.instruction
    assert first.system_instruction == second.system_instruction
    assert first.response_schema == second.response_schema


def test_instruction_embeds_every_field(report_config):
    """Tests that each configuration field appears verbatim in the instruction."""
    request = build_request(report_config)
    for text in (
        report_config.topic,
        report_config.goal,
        report_config.target_audience,
        report_config.region,
        report_config.time_range,
        "Annual growth, Investment volume",
        "Bar, Line",
        "web",
        "English",
    ):
        assert text in request.instruction
    assert EMPTY_DATA_DIRECTIVE in request.instruction
    assert "English" in request.system_instruction


def test_manual_data_is_embedded():
    """Tests that manual input data replaces the web research directive."""
    config = ReportConfig(
        topic="Coffee exports",
        goal="Compare exporters",
        targetAudience="Traders",
        dataType="manual",
        rawData="Brazil: 2.6Mt {2024}",
        timeRange="2024",
        region="Global",
        metrics=["Volume"],
        chartTypes=["Pie"],
        language="Arabic",
    )
    request = build_request(config)
    assert config.data_type is DataSourceMode.MANUAL
    assert "Brazil: 2.6Mt {2024}" in request.instruction
    assert EMPTY_DATA_DIRECTIVE not in request.instruction
    assert "manual" in request.instruction


def test_profile_directive_only_for_extension_profiles(report_config):
    """Tests that only the marketplace profiles ask for extension collections."""
    generic = build_request(report_config, ReportProfile.GENERIC)
    keywords = build_request(report_config, "keywords_and_listings")
    assert "topKeywords" not in generic.instruction
    assert "topKeywords" in keywords.instruction
    assert keywords.profile is ReportProfile.KEYWORDS_AND_LISTINGS


def test_custom_template(report_config):
    """Tests that a configured prompt template is used."""
    request = build_request(
        report_config,
        prompt_template="Report on {topic} for {region}.",
        system_template="Answer in {language}.",
    )
    assert request.instruction == (
        "Report on Digital economy in Saudi Arabia 2025 for Saudi Arabia."
    )
    assert request.system_instruction == "Answer in English."
