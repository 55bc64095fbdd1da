from __future__ import annotations

import re
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field

MatchId = Union[int, str]

_YOUTUBE_ID_RE = re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/)([^&\n?#]+)")


class Highlight(BaseModel):
    """A discovered highlight video. Extra upstream fields are kept as-is."""

    model_config = ConfigDict(extra="allow")

    id: int | str | None = None
    title: str = ""
    youtube_url: str = ""
    channel_name: str | None = None
    view_count: int | None = None
    duration_seconds: int | None = None
    thumbnail_url: str | None = None

    @property
    def embed_url(self) -> str:
        match = _YOUTUBE_ID_RE.search(self.youtube_url or "")
        if not match:
            return self.youtube_url
        return f"https://www.youtube.com/embed/{match.group(1)}?autoplay=1&rel=0&modestbranding=1"


class DiscoveryReport(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    videos_found: int = Field(default=0, alias="videosFound")
    highlights_stored: int = Field(default=0, alias="highlightsStored")
    best_videos: list[dict[str, Any]] = Field(default_factory=list, alias="bestVideos")


class CacheEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    match_id: MatchId
    highlights: list[Highlight] = Field(default_factory=list)
    has_highlights: bool = False
    stored_at: float


# Remote boundary results. Empty is a valid outcome, not a failure.


class HighlightsFound(BaseModel):
    highlights: list[Highlight]


class NoHighlights(BaseModel):
    pass


class DiscoveryTriggered(BaseModel):
    report: DiscoveryReport = Field(default_factory=DiscoveryReport)


class BoundaryFailure(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    error: Exception


FetchResult = Union[HighlightsFound, NoHighlights, BoundaryFailure]
TriggerResult = Union[DiscoveryTriggered, BoundaryFailure]
