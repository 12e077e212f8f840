import copy

import pytest

from src.report_generator.models import DataSourceMode, ReportConfig

GENERIC_PAYLOAD = {
    "title": "Digital Economy Outlook",
    "summary": "The digital economy grew **steadily** between 2020 and 2025.",
    "methodology": "Desk research combined with public statistics.",
    "limitations": "Figures for 2025 are estimates.",
    "charts": [
        {
            "id": "growth",
            "title": "Annual growth",
            "type": "Bar",
            "data": [
                {"label": "2023", "value": 12.5},
                {"label": "2024", "value": 14},
            ],
        },
        {
            "id": "share",
            "title": "Sector share",
            "type": "Pie",
            "data": [
                {"label": "Fintech", "value": 40},
                {"label": "E-commerce", "value": 60},
            ],
        },
    ],
    "tableData": [
        {"Sector": "fintech", "Startups": 120, "Growth": 8.5},
        {"Sector": "E-commerce", "Startups": 340, "Growth": 11.0},
        {"Sector": "Cloud", "Startups": 75, "Growth": 15.25},
    ],
    "sources": [
        {"title": "Report A", "url": "https://example.com/a", "date": "2025-01-01"},
        {"title": "Report B", "url": "https://example.com/b", "date": "2025-02-01"},
    ],
}

MARKETPLACE_PAYLOAD = {
    **GENERIC_PAYLOAD,
    "topStores": [
        {
            "name": "Desert Crafts",
            "specialization": "Handmade pottery",
            "rating": 4.9,
            "url": "https://shop.example.com/desert",
        }
    ],
    "topEtsyListings": [
        {
            "title": "Blue glazed mug",
            "shopName": "Desert Crafts",
            "price": "$24.00",
            "url": "https://shop.example.com/listing/1",
            "shopUrl": "https://shop.example.com/desert",
        }
    ],
}

KEYWORDS_PAYLOAD = {
    **MARKETPLACE_PAYLOAD,
    "topKeywords": [
        {
            "keyword": "handmade mug",
            "volume": "High",
            "competition": "Medium",
            "category": "Kitchen",
        }
    ],
}


@pytest.fixture
def report_config():
    return ReportConfig(
        topic="Digital economy in Saudi Arabia 2025",
        goal="Measure the impact of Vision 2030",
        target_audience="Investors",
        data_type=DataSourceMode.WEB,
        raw_data="",
        time_range="2020-2025",
        region="Saudi Arabia",
        metrics=["Annual growth", "Investment volume"],
        chart_types=["Bar", "Line"],
        language="English",
    )


@pytest.fixture
def generic_payload():
    return copy.deepcopy(GENERIC_PAYLOAD)


@pytest.fixture
def marketplace_payload():
    return copy.deepcopy(MARKETPLACE_PAYLOAD)


@pytest.fixture
def keywords_payload():
    return copy.deepcopy(KEYWORDS_PAYLOAD)
