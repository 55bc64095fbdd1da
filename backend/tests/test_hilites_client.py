from __future__ import annotations

import asyncio

import pytest
import requests

from backend.services.discovery import DiscoveryOrchestrator
from backend.services.discovery_errors import DiscoveryErrorKind, HilitesAPIError, classify
from backend.services.highlights_cache import HighlightsCache
from backend.services.hilites_client import HilitesClient
from backend.services.models import BoundaryFailure, DiscoveryTriggered, HighlightsFound, NoHighlights


class FakeResponse:
    def __init__(self, payload, status_code: int = 200) -> None:  # noqa: ANN001
        self._payload = payload
        self.status_code = status_code

    def json(self):  # noqa: ANN201
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


@pytest.fixture
def client(monkeypatch) -> HilitesClient:  # noqa: ANN001
    monkeypatch.setenv("REQUEST_TIMEOUT_SECONDS", "5")
    return HilitesClient(base_url="http://hilites.test/api/", api_token="secret")


def _install(monkeypatch, client: HilitesClient, response: FakeResponse, calls: list | None = None) -> None:  # noqa: ANN001
    def fake_request(method, url, timeout):  # noqa: ANN001
        if calls is not None:
            calls.append((method, url, timeout))
        return response

    monkeypatch.setattr(client.session, "request", fake_request)


def test_fetch_highlights_returns_found_in_order(monkeypatch, client: HilitesClient) -> None:  # noqa: ANN001
    calls: list = []
    payload = {
        "success": True,
        "data": [
            {"id": 2, "title": "Extended", "youtube_url": "https://youtu.be/b", "channel_name": "Club TV"},
            {"id": 1, "title": "Goals", "youtube_url": "https://youtu.be/a", "quality": "hd"},
        ],
    }
    _install(monkeypatch, client, FakeResponse(payload), calls)

    result = client.fetch_highlights(42)

    assert isinstance(result, HighlightsFound)
    assert [item.id for item in result.highlights] == [2, 1]
    assert result.highlights[1].model_extra == {"quality": "hd"}
    assert calls == [("GET", "http://hilites.test/api/ai-discovery/highlights/42", 5.0)]
    assert client.session.headers["Authorization"] == "Bearer secret"


def test_fetch_highlights_empty_is_not_a_failure(monkeypatch, client: HilitesClient) -> None:  # noqa: ANN001
    _install(monkeypatch, client, FakeResponse({"success": True, "data": []}))
    assert isinstance(client.fetch_highlights(42), NoHighlights)


def test_unsuccessful_payload_is_a_failure(monkeypatch, client: HilitesClient) -> None:  # noqa: ANN001
    _install(monkeypatch, client, FakeResponse({"success": False, "message": "Match not found"}))

    result = client.fetch_highlights(42)

    assert isinstance(result, BoundaryFailure)
    assert str(result.error) == "Match not found"


def test_rate_limited_response_keeps_body_message(monkeypatch, client: HilitesClient) -> None:  # noqa: ANN001
    _install(
        monkeypatch,
        client,
        FakeResponse({"message": "YouTube API quota exceeded"}, status_code=429),
    )

    result = client.trigger_discovery(7)

    assert isinstance(result, BoundaryFailure)
    assert isinstance(result.error, HilitesAPIError)
    assert result.error.status_code == 429
    assert result.error.message == "429: YouTube API quota exceeded"
    assert classify(result.error) is DiscoveryErrorKind.RATE_LIMITED


def test_rate_limited_response_without_body(monkeypatch, client: HilitesClient) -> None:  # noqa: ANN001
    _install(monkeypatch, client, FakeResponse(ValueError("no json"), status_code=429))

    result = client.fetch_highlights(7)

    assert isinstance(result, BoundaryFailure)
    assert str(result.error) == "429: Too many requests"


def test_transport_error_is_captured(monkeypatch, client: HilitesClient) -> None:  # noqa: ANN001
    def broken_request(method, url, timeout):  # noqa: ANN001, ARG001
        raise requests.exceptions.ConnectionError("network failure")

    monkeypatch.setattr(client.session, "request", broken_request)

    result = client.fetch_highlights(3)

    assert isinstance(result, BoundaryFailure)
    assert classify(result.error) is DiscoveryErrorKind.GENERIC


def test_trigger_discovery_parses_report(monkeypatch, client: HilitesClient) -> None:  # noqa: ANN001
    calls: list = []
    payload = {
        "success": True,
        "data": {
            "videosFound": 3,
            "highlightsStored": 2,
            "bestVideos": [{"title": "Goals"}],
            "match": {"id": 42},
        },
    }
    _install(monkeypatch, client, FakeResponse(payload), calls)

    result = client.trigger_discovery(42)

    assert isinstance(result, DiscoveryTriggered)
    assert result.report.videos_found == 3
    assert result.report.highlights_stored == 2
    assert result.report.best_videos == [{"title": "Goals"}]
    assert calls[0][:2] == ("POST", "http://hilites.test/api/ai-discovery/discover/42")


def test_async_wrappers_delegate_to_blocking_calls(monkeypatch, client: HilitesClient) -> None:  # noqa: ANN001
    _install(monkeypatch, client, FakeResponse({"success": True, "data": []}))
    assert isinstance(asyncio.run(client.fetch_existing(1)), NoHighlights)


def test_discovery_status_raises_on_failure(monkeypatch, client: HilitesClient) -> None:  # noqa: ANN001
    _install(monkeypatch, client, FakeResponse({}, status_code=500))

    with pytest.raises(HilitesAPIError) as exc_info:
        client.discovery_status()
    assert exc_info.value.status_code == 500


@pytest.mark.parametrize("match_id", [14290, 1404])
def test_connection_failure_for_numeric_ids_is_generic(monkeypatch, client: HilitesClient, match_id: int) -> None:  # noqa: ANN001
    def refused(method, url, timeout):  # noqa: ANN001, ARG001
        raise requests.exceptions.ConnectionError(
            f"HTTPConnectionPool(host='127.0.0.1', port=1): Max retries exceeded with url: {url}"
        )

    monkeypatch.setattr(client.session, "request", refused)
    orchestrator = DiscoveryOrchestrator(HighlightsCache(), client)

    assert asyncio.run(orchestrator.orchestrate(match_id)) is False

    failure = orchestrator.get_discovery_failure(match_id)
    assert failure is not None
    assert failure.kind is DiscoveryErrorKind.GENERIC
    assert orchestrator.cache.get(match_id) is None
