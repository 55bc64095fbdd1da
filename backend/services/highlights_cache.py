from __future__ import annotations

import time
from typing import Callable, Sequence

from loguru import logger

try:
    from backend.services.models import CacheEntry, Highlight, MatchId
except ModuleNotFoundError:
    from services.models import CacheEntry, Highlight, MatchId

DEFAULT_TTL_SECONDS = 10 * 60


class HighlightsCache:
    """In-memory, session-scoped highlight results keyed by match id.

    Expiry is lazy: an entry older than the TTL is dropped by the read that
    notices it, there is no background sweep. ``size`` can therefore still
    count stale entries that nobody has read yet.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = float(ttl_seconds)
        self._clock = clock
        self._entries: dict[MatchId, CacheEntry] = {}

    def get(self, match_id: MatchId) -> CacheEntry | None:
        entry = self._entries.get(match_id)
        if entry is None:
            return None

        age = self._clock() - entry.stored_at
        if age > self.ttl_seconds:
            del self._entries[match_id]
            logger.debug(f"Highlights cache entry expired for match {match_id} (age={age:.0f}s).")
            return None

        return entry

    def set(
        self,
        match_id: MatchId,
        highlights: Sequence[Highlight],
        has_highlights: bool,
    ) -> CacheEntry:
        entry = CacheEntry(
            match_id=match_id,
            highlights=list(highlights),
            has_highlights=bool(has_highlights),
            stored_at=self._clock(),
        )
        self._entries[match_id] = entry
        return entry

    def clear(self) -> None:
        self._entries.clear()

    def clear_one(self, match_id: MatchId) -> None:
        self._entries.pop(match_id, None)

    @property
    def size(self) -> int:
        return len(self._entries)

    def __contains__(self, match_id: object) -> bool:
        return self.get(match_id) is not None  # type: ignore[arg-type]
