from __future__ import annotations

import pytest

from backend.services.discovery_errors import (
    DiscoveryErrorKind,
    HilitesAPIError,
    classify,
    describe,
    to_failure,
)


@pytest.mark.parametrize("message", [
    "429: Too many requests",
    "Too Many Requests",
    "YouTube quota exceeded for today",
    "Rate limit hit, slow down",
    "You have reached the request limit",
])
def test_rate_limit_language_is_rate_limited(message: str) -> None:
    assert classify(RuntimeError(message)) is DiscoveryErrorKind.RATE_LIMITED


def test_status_code_429_wins_over_message() -> None:
    error = HilitesAPIError("upstream refused", status_code=429)
    assert classify(error) is DiscoveryErrorKind.RATE_LIMITED


def test_not_found() -> None:
    assert classify(HilitesAPIError("404: Match not found", status_code=404)) is DiscoveryErrorKind.NOT_FOUND
    assert classify(RuntimeError("Match not found")) is DiscoveryErrorKind.NOT_FOUND


@pytest.mark.parametrize("error", [
    RuntimeError("network failure"),
    HilitesAPIError("500: HTTP error! status: 500", status_code=500),
    ValueError(""),
    None,
])
def test_everything_else_is_generic(error) -> None:  # noqa: ANN001
    assert classify(error) is DiscoveryErrorKind.GENERIC


def test_rate_limited_copy_suggests_sequential_expansion() -> None:
    failure = to_failure(RuntimeError("429: Too many requests"))
    assert failure.kind is DiscoveryErrorKind.RATE_LIMITED
    assert "one at a time" in failure.message


def test_generic_copy_includes_detail() -> None:
    assert describe(DiscoveryErrorKind.GENERIC, "network failure") == (
        "Failed to discover highlights: network failure"
    )
    assert describe(DiscoveryErrorKind.GENERIC) == "Failed to discover highlights."


@pytest.mark.parametrize("match_id", [14290, 1404, 4290, 404])
def test_match_id_inside_transport_error_is_generic(match_id: int) -> None:
    error = HilitesAPIError(
        "HTTPConnectionPool(host='127.0.0.1', port=1): Max retries exceeded with url: "
        f"/api/ai-discovery/highlights/{match_id} (Caused by NewConnectionError: Connection refused)"
    )
    assert classify(error) is DiscoveryErrorKind.GENERIC


def test_malformed_payload_message_with_match_id_is_generic() -> None:
    error = HilitesAPIError("Malformed highlights payload for match 14290")
    assert classify(error) is DiscoveryErrorKind.GENERIC


def test_leading_status_prefix_without_status_code() -> None:
    assert classify(RuntimeError("404: missing")) is DiscoveryErrorKind.NOT_FOUND
    assert classify(RuntimeError("429: slow down")) is DiscoveryErrorKind.RATE_LIMITED
    assert classify(RuntimeError("4290: unknown")) is DiscoveryErrorKind.GENERIC
