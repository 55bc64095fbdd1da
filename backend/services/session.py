from __future__ import annotations

from typing import Any

try:
    from backend.services.discovery import DiscoveryOrchestrator, HighlightsBoundary
    from backend.services.expansion import ExpansionTracker
    from backend.services.highlights_cache import DEFAULT_TTL_SECONDS, HighlightsCache
    from backend.services.models import MatchId
except ModuleNotFoundError:
    from services.discovery import DiscoveryOrchestrator, HighlightsBoundary
    from services.expansion import ExpansionTracker
    from services.highlights_cache import DEFAULT_TTL_SECONDS, HighlightsCache
    from services.models import MatchId


class MatchBrowserSession:
    """Wires expansion events to highlight discovery for one browsing session."""

    def __init__(
        self,
        boundary: HighlightsBoundary,
        cache: HighlightsCache | None = None,
        tracker: ExpansionTracker | None = None,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
    ) -> None:
        self.cache = cache if cache is not None else HighlightsCache(ttl_seconds=ttl_seconds)
        self.tracker = tracker if tracker is not None else ExpansionTracker()
        self.orchestrator = DiscoveryOrchestrator(self.cache, boundary)

    async def toggle(self, match_id: MatchId) -> dict[str, Any]:
        previous = self.tracker.expanded_match_id
        expanded = self.tracker.toggle(match_id)

        if previous is not None and previous != match_id:
            self.orchestrator.release(previous)

        if expanded:
            await self.orchestrator.orchestrate(match_id)
        else:
            self.orchestrator.release(match_id)

        return self.match_view(match_id)

    def collapse_all(self) -> None:
        previous = self.tracker.expanded_match_id
        self.tracker.collapse_all()
        if previous is not None:
            self.orchestrator.release(previous)

    def match_view(self, match_id: MatchId) -> dict[str, Any]:
        entry = self.cache.get(match_id)
        highlights = list(entry.highlights) if entry else []
        failure = self.orchestrator.get_discovery_failure(match_id)
        report = self.orchestrator.get_discovery_report(match_id)

        return {
            "match_id": match_id,
            "expanded": self.tracker.is_expanded(match_id),
            "state": self.orchestrator.get_state(match_id).value,
            "checked": entry is not None,
            "has_highlights": bool(entry and entry.has_highlights),
            "highlights": highlights,
            "featured": highlights[0] if highlights else None,
            "error": failure.message if failure else None,
            "error_kind": failure.kind.value if failure else None,
            "report": report,
        }
