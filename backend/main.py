from __future__ import annotations

import os
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

try:
    from backend.services.discovery_errors import HilitesAPIError
    from backend.services.hilites_client import HilitesClient
    from backend.services.models import DiscoveryReport, Highlight
    from backend.services.session import MatchBrowserSession
except ModuleNotFoundError:
    from services.discovery_errors import HilitesAPIError
    from services.hilites_client import HilitesClient
    from services.models import DiscoveryReport, Highlight
    from services.session import MatchBrowserSession


def _parse_csv_env(name: str, default: str) -> list[str]:
    raw = os.getenv(name, default)
    values = [item.strip() for item in raw.split(",") if item.strip()]
    return values or [default]


def _env_int(name: str, default: int, minimum: int, maximum: int) -> int:
    raw = os.getenv(name, str(default)).strip()
    try:
        value = int(raw)
    except ValueError:
        value = default
    return max(minimum, min(maximum, value))


CACHE_TTL_MINUTES = _env_int("HIGHLIGHTS_CACHE_TTL_MINUTES", default=10, minimum=1, maximum=1440)


class HighlightResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int | str | None = None
    title: str = ""
    youtube_url: str = ""
    embed_url: str = ""
    channel_name: str | None = None
    view_count: int | None = None
    duration_seconds: int | None = None
    thumbnail_url: str | None = None


class DiscoveryReportResponse(BaseModel):
    videos_found: int = 0
    highlights_stored: int = 0
    best_videos: list[dict[str, Any]] = Field(default_factory=list)


class MatchHighlightsResponse(BaseModel):
    match_id: int
    expanded: bool
    state: str
    checked: bool
    has_highlights: bool
    highlights: list[HighlightResponse] = Field(default_factory=list)
    featured: HighlightResponse | None = None
    error: str | None = None
    error_kind: str | None = None
    report: DiscoveryReportResponse | None = None


def _highlight_response(highlight: Highlight) -> HighlightResponse:
    payload = highlight.model_dump()
    payload["embed_url"] = highlight.embed_url
    return HighlightResponse(**payload)


def _report_response(report: DiscoveryReport | None) -> DiscoveryReportResponse | None:
    if report is None:
        return None
    return DiscoveryReportResponse(
        videos_found=report.videos_found,
        highlights_stored=report.highlights_stored,
        best_videos=report.best_videos,
    )


def _match_response(view: dict[str, Any]) -> MatchHighlightsResponse:
    featured = view.get("featured")
    return MatchHighlightsResponse(
        match_id=view["match_id"],
        expanded=view["expanded"],
        state=view["state"],
        checked=view["checked"],
        has_highlights=view["has_highlights"],
        highlights=[_highlight_response(item) for item in view["highlights"]],
        featured=_highlight_response(featured) if featured is not None else None,
        error=view.get("error"),
        error_kind=view.get("error_kind"),
        report=_report_response(view.get("report")),
    )


def create_app(client: HilitesClient | None = None) -> FastAPI:
    app = FastAPI(
        title="Match Highlights API",
        version="1.0.0",
        description="On-demand highlight discovery for football matches.",
    )

    cors_origins = _parse_csv_env("CORS_ORIGINS", "http://localhost:3000")
    allow_credentials = "*" not in cors_origins

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=allow_credentials,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    hilites = client if client is not None else HilitesClient()
    app.state.client = hilites
    app.state.session = MatchBrowserSession(hilites, ttl_seconds=CACHE_TTL_MINUTES * 60)

    def _session(request: Request) -> MatchBrowserSession:
        return request.app.state.session

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/readyz")
    async def readyz(request: Request) -> dict[str, Any]:
        session = _session(request)
        return {
            "status": "ready",
            "hilites_api_url": request.app.state.client.base_url,
            "cache_entries": session.cache.size,
            "cache_ttl_seconds": session.cache.ttl_seconds,
            "expanded_match_id": session.tracker.expanded_match_id,
        }

    @app.post("/api/matches/collapse")
    async def collapse_all(request: Request) -> dict[str, str]:
        _session(request).collapse_all()
        return {"status": "collapsed"}

    @app.post("/api/matches/{match_id}/toggle", response_model=MatchHighlightsResponse)
    async def toggle_match(match_id: int, request: Request) -> MatchHighlightsResponse:
        view = await _session(request).toggle(match_id)
        return _match_response(view)

    @app.get("/api/matches/{match_id}/highlights", response_model=MatchHighlightsResponse)
    async def match_highlights(match_id: int, request: Request) -> MatchHighlightsResponse:
        return _match_response(_session(request).match_view(match_id))

    @app.delete("/api/matches/{match_id}/discovery-error", response_model=MatchHighlightsResponse)
    async def clear_discovery_error(match_id: int, request: Request) -> MatchHighlightsResponse:
        session = _session(request)
        session.orchestrator.clear_discovery_error(match_id)
        return _match_response(session.match_view(match_id))

    @app.delete("/api/highlights/cache")
    async def clear_cache(request: Request) -> dict[str, Any]:
        session = _session(request)
        session.cache.clear()
        return {"status": "cleared", "cache_entries": session.cache.size}

    @app.delete("/api/highlights/cache/{match_id}")
    async def clear_cached_match(match_id: int, request: Request) -> dict[str, Any]:
        session = _session(request)
        session.cache.clear_one(match_id)
        return {"status": "cleared", "match_id": match_id, "cache_entries": session.cache.size}

    @app.get("/api/discovery/status")
    def discovery_status(request: Request) -> dict[str, Any]:
        try:
            data = request.app.state.client.discovery_status()
        except HilitesAPIError as exc:
            status_code = 429 if exc.status_code == 429 else 502
            raise HTTPException(status_code=status_code, detail=exc.message) from exc
        return {"status": "success", "data": data}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("backend.main:app", host="0.0.0.0", port=8000, reload=True)
