from __future__ import annotations

import asyncio
import os
from typing import Any

import requests
from dotenv import load_dotenv
from loguru import logger

try:
    from backend.services.discovery_errors import HilitesAPIError
    from backend.services.models import (
        BoundaryFailure,
        DiscoveryReport,
        DiscoveryTriggered,
        FetchResult,
        Highlight,
        HighlightsFound,
        MatchId,
        NoHighlights,
        TriggerResult,
    )
except ModuleNotFoundError:
    from services.discovery_errors import HilitesAPIError
    from services.models import (
        BoundaryFailure,
        DiscoveryReport,
        DiscoveryTriggered,
        FetchResult,
        Highlight,
        HighlightsFound,
        MatchId,
        NoHighlights,
        TriggerResult,
    )

env_path = os.path.join(os.path.dirname(__file__), "..", ".env")
load_dotenv(env_path)


def _env_float(name: str, default: float, minimum: float, maximum: float) -> float:
    raw = os.getenv(name, str(default)).strip()
    try:
        value = float(raw)
    except ValueError:
        value = default
    return max(minimum, min(maximum, value))


def _error_message_from_body(response: Any) -> str:
    try:
        body = response.json()
    except ValueError:
        return ""
    if isinstance(body, dict):
        return str(body.get("message") or "").strip()
    return ""


def _status_error(status_code: int, body_message: str) -> HilitesAPIError:
    if status_code == 429:
        reason = body_message or "Too many requests"
    else:
        reason = body_message or f"HTTP error! status: {status_code}"
    return HilitesAPIError(f"{status_code}: {reason}", status_code=status_code)


class HilitesClient:
    """Blocking client for the highlights discovery service.

    The ``fetch_existing`` / ``trigger_discovery`` coroutines run the blocking
    calls in a worker thread so callers on the event loop only suspend there.
    """

    def __init__(self, base_url: str | None = None, api_token: str | None = None) -> None:
        self.base_url = (
            base_url or os.getenv("HILITES_API_URL", "http://localhost:3000/api")
        ).strip().rstrip("/")
        self.api_token = (api_token if api_token is not None else os.getenv("HILITES_API_TOKEN", "")).strip()
        self.timeout_seconds = _env_float("REQUEST_TIMEOUT_SECONDS", default=15.0, minimum=1.0, maximum=120.0)

        self.session = requests.Session()
        session_headers = {"Content-Type": "application/json"}
        if self.api_token:
            session_headers["Authorization"] = f"Bearer {self.api_token}"
        self.session.headers.update(session_headers)

    def _request_json_once(
        self, method: str, path: str
    ) -> tuple[dict[str, Any] | None, HilitesAPIError | None]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self.session.request(method, url, timeout=self.timeout_seconds)
        except requests.exceptions.RequestException as exc:
            return None, HilitesAPIError(str(exc))

        if response.status_code >= 400:
            return None, _status_error(response.status_code, _error_message_from_body(response))

        try:
            payload = response.json()
        except ValueError as exc:
            return None, HilitesAPIError(f"Malformed response from {path}: {exc}")

        if not isinstance(payload, dict):
            return None, HilitesAPIError(f"Malformed response from {path}: expected an object")

        if not payload.get("success"):
            message = str(payload.get("message") or "").strip()
            return None, HilitesAPIError(message or f"Request to {path} was not successful")

        return payload, None

    def fetch_highlights(self, match_id: MatchId) -> FetchResult:
        payload, error = self._request_json_once("GET", f"/ai-discovery/highlights/{match_id}")
        if error is not None:
            logger.warning(f"Fetching highlights for match {match_id} failed: {error}")
            return BoundaryFailure(error=error)

        rows = payload.get("data") or []
        if not isinstance(rows, list):
            error = HilitesAPIError(f"Malformed highlights payload for match {match_id}")
            logger.warning(str(error))
            return BoundaryFailure(error=error)

        highlights = [Highlight.model_validate(row) for row in rows if isinstance(row, dict)]
        if not highlights:
            return NoHighlights()
        return HighlightsFound(highlights=highlights)

    def trigger_discovery(self, match_id: MatchId) -> TriggerResult:
        logger.info(f"Triggering highlight discovery for match {match_id}.")
        payload, error = self._request_json_once("POST", f"/ai-discovery/discover/{match_id}")
        if error is not None:
            logger.warning(f"Highlight discovery for match {match_id} failed: {error}")
            return BoundaryFailure(error=error)

        data = payload.get("data")
        report = DiscoveryReport.model_validate(data) if isinstance(data, dict) else DiscoveryReport()
        logger.info(
            f"Discovery for match {match_id} found {report.videos_found} video(s), "
            f"stored {report.highlights_stored}."
        )
        return DiscoveryTriggered(report=report)

    def discovery_status(self) -> dict[str, Any]:
        payload, error = self._request_json_once("GET", "/ai-discovery/status")
        if error is not None:
            raise error
        data = payload.get("data")
        return data if isinstance(data, dict) else {}

    async def fetch_existing(self, match_id: MatchId) -> FetchResult:
        return await asyncio.to_thread(self.fetch_highlights, match_id)

    async def discover(self, match_id: MatchId) -> TriggerResult:
        return await asyncio.to_thread(self.trigger_discovery, match_id)
