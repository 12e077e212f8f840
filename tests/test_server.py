import asyncio
import json
import os

import pytest
from fastapi.testclient import TestClient
from langchain_core.messages import AIMessage
from langchain_core.runnables import RunnableLambda

from src.report_generator import main as main_module
from src.report_generator.main import (
    ReportGenerator,
    ReportGeneratorConfig,
    create_fastapi_app,
    restore_latest_report,
)
from src.report_generator.utils.rendering import (
    find_latest_run_dir,
    load_run_metadata,
)
from src.report_generator.utils.theme import MemoryThemeStore, ThemePreference

REQUEST_BODY = {
    "config": {
        "topic": "Handmade pottery market",
        "goal": "Find the best-selling items",
        "targetAudience": "Shop owners",
        "dataType": "web",
        "timeRange": "2025",
        "region": "United States",
        "metrics": ["Sales"],
        "chartTypes": ["Bar"],
        "language": "English",
    },
    "profile": "marketplace_listings",
}


class _FakeCredentials:
    def __init__(self):
        self.prompts = 0

    def has_usable_credential(self):
        return True

    async def prompt_credential_selection(self):
        self.prompts += 1


def _make_client(tmp_path, reply):
    def _answer(messages):
        if isinstance(reply, Exception):
            raise reply
        return reply

    config = ReportGeneratorConfig(output={"base_output_dir": str(tmp_path)})
    state = {
        "generator": ReportGenerator(config, llm_factory=lambda request: RunnableLambda(_answer)),
        "credentials": _FakeCredentials(),
        "theme_preference": ThemePreference(MemoryThemeStore()),
    }
    return TestClient(create_fastapi_app(state)), state


@pytest.fixture
def marketplace_reply(marketplace_payload):
    return AIMessage(content=json.dumps(marketplace_payload))


def test_index_without_report(tmp_path, marketplace_reply):
    """Tests the 404 page before any report exists."""
    client, _ = _make_client(tmp_path, marketplace_reply)
    response = client.get("/")
    assert response.status_code == 404
    assert "Report Not Found" in response.text
    assert client.get("/api/reports/latest").status_code == 404


def test_generate_and_serve_report(tmp_path, marketplace_reply, marketplace_payload):
    """Tests generating a report through the API and serving it."""
    client, state = _make_client(tmp_path, marketplace_reply)

    response = client.post("/api/reports", json=REQUEST_BODY)
    assert response.status_code == 200
    assert response.json() == marketplace_payload
    assert state["latest_language"] == "English"

    page = client.get("/", params={"sort": "Startups", "direction": "desc"})
    assert page.status_code == 200
    assert marketplace_payload["title"] in page.text
    assert page.text.index("E-commerce</td>") < page.text.index("Cloud</td>")

    assert client.get("/api/reports/latest").json() == marketplace_payload
    saved = [d for d in os.listdir(tmp_path) if "_run_handmade_pottery_market" in d]
    assert len(saved) == 1


def test_download_is_an_attachment(tmp_path, marketplace_reply):
    """Tests the downloadable HTML export."""
    client, _ = _make_client(tmp_path, marketplace_reply)
    client.post("/api/reports", json=REQUEST_BODY)
    response = client.get("/report/download")
    assert response.status_code == 200
    assert "attachment" in response.headers["content-disposition"]
    assert "?sort=" not in response.text


def test_credential_failure_returns_401_and_prompts(tmp_path):
    """Tests that a missing credential is reported and selection is nudged."""
    client, state = _make_client(tmp_path, RuntimeError("Requested entity was not found."))
    response = client.post("/api/reports", json=REQUEST_BODY)
    assert response.status_code == 401
    assert response.json()["kind"] == "CREDENTIAL_MISSING"
    assert state["credentials"].prompts == 1


def test_malformed_output_returns_502(tmp_path):
    """Tests that a malformed model answer is surfaced to the caller."""
    client, state = _make_client(tmp_path, AIMessage(content="not json"))
    response = client.post("/api/reports", json=REQUEST_BODY)
    assert response.status_code == 502
    assert response.json()["kind"] == "MALFORMED_RESPONSE"
    assert state.get("latest_report") is None


def test_generation_failure_keeps_message(tmp_path):
    """Tests that provider errors are passed through with their message."""
    client, _ = _make_client(tmp_path, RuntimeError("quota exceeded"))
    response = client.post("/api/reports", json=REQUEST_BODY)
    assert response.status_code == 502
    assert response.json() == {"kind": "GENERATION_FAILED", "message": "quota exceeded"}


def test_theme_toggle_and_credential_status(tmp_path, marketplace_reply):
    """Tests the theme toggle and credential status endpoints."""
    client, state = _make_client(tmp_path, marketplace_reply)
    assert client.post("/api/theme/toggle").json() == {"theme": "dark"}
    assert state["theme_preference"].store.get() == "dark"
    assert client.get("/api/credential").json() == {"available": True}
    assert client.get("/favicon.ico").status_code == 204


def test_saved_report_records_language_off_the_event_loop(
    tmp_path, marketplace_reply, monkeypatch
):
    """Tests that saving runs in a worker thread and records the language."""
    loops = []
    original_save = main_module.save_report

    def _recording_save(*args, **kwargs):
        try:
            loops.append(asyncio.get_running_loop())
        except RuntimeError:
            loops.append(None)
        return original_save(*args, **kwargs)

    monkeypatch.setattr(main_module, "save_report", _recording_save)
    client, _ = _make_client(tmp_path, marketplace_reply)
    body = {**REQUEST_BODY, "config": {**REQUEST_BODY["config"], "language": "Arabic"}}
    assert client.post("/api/reports", json=body).status_code == 200

    assert loops == [None]
    latest = find_latest_run_dir(str(tmp_path))
    assert load_run_metadata(latest)["language"] == "Arabic"


def test_reloaded_arabic_report_is_served_rtl(tmp_path, marketplace_reply):
    """Tests serving a saved Arabic run with its own language restored."""
    client, _ = _make_client(tmp_path, marketplace_reply)
    body = {**REQUEST_BODY, "config": {**REQUEST_BODY["config"], "language": "Arabic"}}
    client.post("/api/reports", json=body)

    latest = find_latest_run_dir(str(tmp_path))
    served, state = _make_client(tmp_path, marketplace_reply)
    assert restore_latest_report(state, str(tmp_path)) == latest
    assert state["latest_language"] == "Arabic"

    page = served.get("/")
    assert 'dir="rtl"' in page.text
    assert 'dir="rtl"' in served.get("/report/download").text
