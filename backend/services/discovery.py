from __future__ import annotations

from enum import Enum
from typing import Protocol

from loguru import logger

try:
    from backend.services.discovery_errors import DiscoveryFailure, to_failure
    from backend.services.highlights_cache import HighlightsCache
    from backend.services.models import (
        BoundaryFailure,
        DiscoveryReport,
        FetchResult,
        Highlight,
        HighlightsFound,
        MatchId,
        TriggerResult,
    )
except ModuleNotFoundError:
    from services.discovery_errors import DiscoveryFailure, to_failure
    from services.highlights_cache import HighlightsCache
    from services.models import (
        BoundaryFailure,
        DiscoveryReport,
        FetchResult,
        Highlight,
        HighlightsFound,
        MatchId,
        TriggerResult,
    )


class DiscoveryState(str, Enum):
    IDLE = "idle"
    CHECKING = "checking"
    DISCOVERING = "discovering"
    DISPLAYING = "displaying"
    FAILED = "failed"


class HighlightsBoundary(Protocol):
    async def fetch_existing(self, match_id: MatchId) -> FetchResult: ...

    async def discover(self, match_id: MatchId) -> TriggerResult: ...


class DiscoveryOrchestrator:
    """Resolves highlight availability for one match at a time per match id.

    Runs on a single event loop. The only suspension points are the two
    boundary calls, so every mutation between them is atomic with respect to
    other orchestrations.

    Each orchestration owns a flight-guard token for its match. ``release``
    (called on collapse) drops the token without cancelling the remote call:
    the stale run still writes the cache and the discovery report when it
    finishes but no longer touches the state or error shown for the match.
    """

    def __init__(self, cache: HighlightsCache, boundary: HighlightsBoundary) -> None:
        self.cache = cache
        self.boundary = boundary
        self._in_flight: dict[MatchId, object] = {}
        self._states: dict[MatchId, DiscoveryState] = {}
        self._errors: dict[MatchId, DiscoveryFailure] = {}
        self._reports: dict[MatchId, DiscoveryReport] = {}

    async def orchestrate(self, match_id: MatchId) -> bool:
        if match_id in self._in_flight:
            logger.debug(f"Discovery already in flight for match {match_id}; ignoring duplicate.")
            return False

        token = object()
        self._in_flight[match_id] = token
        self._errors.pop(match_id, None)
        self._states[match_id] = DiscoveryState.CHECKING
        try:
            return await self._resolve(match_id, token)
        finally:
            if self._in_flight.get(match_id) is token:
                del self._in_flight[match_id]

    async def _resolve(self, match_id: MatchId, token: object) -> bool:
        cached = self.cache.get(match_id)
        if cached is not None:
            logger.debug(f"Highlights cache hit for match {match_id} (has_highlights={cached.has_highlights}).")
            self._transition(match_id, token, DiscoveryState.DISPLAYING)
            return cached.has_highlights

        existing = await self._fetch_existing(match_id)
        if isinstance(existing, BoundaryFailure):
            return self._fail(match_id, token, existing.error)
        if isinstance(existing, HighlightsFound):
            return self._store(match_id, token, existing.highlights)

        self._transition(match_id, token, DiscoveryState.DISCOVERING)
        triggered = await self._discover(match_id)
        if isinstance(triggered, BoundaryFailure):
            return self._fail(match_id, token, triggered.error)
        self._reports[match_id] = triggered.report

        refetched = await self._fetch_existing(match_id)
        if isinstance(refetched, BoundaryFailure):
            return self._fail(match_id, token, refetched.error)
        if isinstance(refetched, HighlightsFound):
            return self._store(match_id, token, refetched.highlights)
        return self._store(match_id, token, [])

    async def _fetch_existing(self, match_id: MatchId) -> FetchResult:
        try:
            return await self.boundary.fetch_existing(match_id)
        except Exception as exc:
            logger.warning(f"Fetching highlights for match {match_id} raised: {exc}")
            return BoundaryFailure(error=exc)

    async def _discover(self, match_id: MatchId) -> TriggerResult:
        try:
            result = await self.boundary.discover(match_id)
        except Exception as exc:
            logger.warning(f"Highlight discovery for match {match_id} raised: {exc}")
            return BoundaryFailure(error=exc)
        return result

    def _owns(self, match_id: MatchId, token: object) -> bool:
        return self._in_flight.get(match_id) is token

    def _transition(self, match_id: MatchId, token: object, state: DiscoveryState) -> None:
        if self._owns(match_id, token):
            self._states[match_id] = state

    def _store(self, match_id: MatchId, token: object, highlights: list[Highlight]) -> bool:
        has_highlights = len(highlights) > 0
        self.cache.set(match_id, highlights, has_highlights)
        logger.info(f"Cached {len(highlights)} highlight(s) for match {match_id}.")
        self._transition(match_id, token, DiscoveryState.DISPLAYING)
        return has_highlights

    def _fail(self, match_id: MatchId, token: object, error: BaseException) -> bool:
        failure = to_failure(error)
        logger.warning(f"Highlight discovery for match {match_id} failed ({failure.kind.value}): {error}")
        if self._owns(match_id, token):
            self._errors[match_id] = failure
            self._states[match_id] = DiscoveryState.FAILED
        return False

    def release(self, match_id: MatchId) -> None:
        self._in_flight.pop(match_id, None)
        self._errors.pop(match_id, None)
        self._states.pop(match_id, None)

    def is_in_flight(self, match_id: MatchId) -> bool:
        return match_id in self._in_flight

    def get_state(self, match_id: MatchId) -> DiscoveryState:
        return self._states.get(match_id, DiscoveryState.IDLE)

    def get_discovery_failure(self, match_id: MatchId) -> DiscoveryFailure | None:
        return self._errors.get(match_id)

    def get_discovery_error(self, match_id: MatchId) -> str | None:
        failure = self._errors.get(match_id)
        return failure.message if failure else None

    def clear_discovery_error(self, match_id: MatchId) -> None:
        if self._errors.pop(match_id, None) is None:
            return
        if self.get_state(match_id) is DiscoveryState.FAILED:
            self._states[match_id] = DiscoveryState.IDLE

    def get_discovery_report(self, match_id: MatchId) -> DiscoveryReport | None:
        return self._reports.get(match_id)

    def get_highlights(self, match_id: MatchId) -> list[Highlight]:
        entry = self.cache.get(match_id)
        return list(entry.highlights) if entry else []
