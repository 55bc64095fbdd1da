from __future__ import annotations

try:
    from backend.services.models import MatchId
except ModuleNotFoundError:
    from services.models import MatchId


class ExpansionTracker:
    """Holds the single expanded match, system-wide."""

    def __init__(self) -> None:
        self._expanded: MatchId | None = None

    @property
    def expanded_match_id(self) -> MatchId | None:
        return self._expanded

    def toggle(self, match_id: MatchId) -> bool:
        # Expanding another match replaces the previous one in a single step.
        if self._expanded == match_id:
            self._expanded = None
            return False
        self._expanded = match_id
        return True

    def collapse_all(self) -> None:
        self._expanded = None

    def is_expanded(self, match_id: MatchId) -> bool:
        return self._expanded is not None and self._expanded == match_id
