"""Tests for settings loading, logging setup and the shared HTTP client."""

import json

import httpx
import pydantic
import pytest

from artfeed.config import Settings, get_settings
from artfeed.http import build_http_client
from artfeed.logging import configure_logging, get_logger


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults():
    settings = Settings()

    assert settings.history_cap == 20
    assert settings.prefetch_buffer_size == 3
    assert settings.image_cache_capacity == 20
    assert settings.per_source_cap == 350
    assert settings.max_auto_retries == 1


def test_env_override(monkeypatch):
    monkeypatch.setenv("ARTFEED_HISTORY_CAP", "5")
    monkeypatch.setenv("ARTFEED_RETRY_DELAY_SECONDS", "0")

    settings = get_settings()

    assert settings.history_cap == 5
    assert settings.retry_delay_seconds == 0.0
    assert get_settings() is settings


@pytest.mark.asyncio
async def test_http_client_headers():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(request.headers)
        return httpx.Response(200, json={})

    settings = Settings(user_agent="artfeed-tests")
    client = build_http_client(settings, transport=httpx.MockTransport(handler))
    try:
        response = await client.get("https://met.test/v1/search")
    finally:
        await client.aclose()

    assert response.status_code == 200
    assert seen["user-agent"] == "artfeed-tests"
    assert seen["accept"] == "application/json"


@pytest.mark.parametrize(
    "name,value",
    [
        ("ARTFEED_HISTORY_CAP", "0"),
        ("ARTFEED_PER_SOURCE_CAP", "0"),
        ("ARTFEED_PREFETCH_BUFFER_SIZE", "-1"),
        ("ARTFEED_HTTP_TIMEOUT", "0"),
    ],
)
def test_out_of_range_values_rejected(monkeypatch, name, value):
    monkeypatch.setenv(name, value)

    with pytest.raises(pydantic.ValidationError):
        get_settings()


def test_zero_buffer_and_retries_allowed():
    settings = Settings(prefetch_buffer_size=0, max_auto_retries=0, retry_delay_seconds=0)

    assert settings.prefetch_buffer_size == 0
    assert settings.max_auto_retries == 0


class TestLogging:

    @pytest.fixture(autouse=True)
    def _restore_logging(self):
        yield
        configure_logging(force=True)

    def test_log_file_receives_json_lines(self, tmp_path):
        log_file = tmp_path / "logs" / "artfeed.jsonl"
        configure_logging("DEBUG", log_file=str(log_file), force=True)

        get_logger("artfeed.test.file").info("Record buffered", identifier="met:1")
        get_logger("artfeed.test.file").debug("Cache hit", url="https://img.test/1")

        lines = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
        assert [line["event"] for line in lines] == ["Record buffered", "Cache hit"]
        assert lines[0]["logger"] == "artfeed.test.file"
        assert lines[0]["level"] == "info"
        assert lines[0]["identifier"] == "met:1"
        assert "timestamp" in lines[0]

    def test_level_filters_file_output(self, tmp_path):
        log_file = tmp_path / "artfeed.jsonl"
        configure_logging("WARNING", log_file=str(log_file), force=True)

        get_logger("artfeed.test.level").info("Ignored")
        get_logger("artfeed.test.level").warning("Kept")

        lines = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
        assert [line["event"] for line in lines] == ["Kept"]
