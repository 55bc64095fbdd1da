from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel


class DiscoveryErrorKind(str, Enum):
    RATE_LIMITED = "RateLimited"
    NOT_FOUND = "NotFound"
    GENERIC = "Generic"


class HilitesAPIError(Exception):
    """Failure reported by the highlights discovery service or its transport."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class DiscoveryFailure(BaseModel):
    kind: DiscoveryErrorKind
    message: str


_RATE_LIMIT_MARKERS = (
    "too many requests",
    "rate limit",
    "rate-limit",
    "ratelimit",
    "quota",
    "request limit",
)

_NOT_FOUND_MARKERS = (
    "not found",
)

# Only a leading "NNN" is a status; ids inside URLs or messages are not.
_STATUS_PREFIX_RE = re.compile(r"\s*(\d{3})\b")


def _error_text(error: BaseException | str | None) -> str:
    if error is None:
        return ""
    if isinstance(error, HilitesAPIError):
        return str(error.message or "")
    return str(error)


def classify(error: BaseException | str | None) -> DiscoveryErrorKind:
    text = _error_text(error)
    status_code = getattr(error, "status_code", None)
    if status_code is None:
        prefix = _STATUS_PREFIX_RE.match(text)
        if prefix:
            status_code = int(prefix.group(1))

    if status_code == 429:
        return DiscoveryErrorKind.RATE_LIMITED
    if status_code == 404:
        return DiscoveryErrorKind.NOT_FOUND

    lowered = text.strip().lower()
    if any(marker in lowered for marker in _RATE_LIMIT_MARKERS):
        return DiscoveryErrorKind.RATE_LIMITED
    if any(marker in lowered for marker in _NOT_FOUND_MARKERS):
        return DiscoveryErrorKind.NOT_FOUND
    return DiscoveryErrorKind.GENERIC


def describe(kind: DiscoveryErrorKind, detail: str = "") -> str:
    if kind is DiscoveryErrorKind.RATE_LIMITED:
        return (
            "Highlight discovery is rate limited right now. "
            "Please wait a moment and expand matches one at a time."
        )
    if kind is DiscoveryErrorKind.NOT_FOUND:
        return "This match is not known to the highlight discovery service."

    detail = str(detail or "").strip()
    if not detail:
        return "Failed to discover highlights."
    return f"Failed to discover highlights: {detail}"


def to_failure(error: BaseException | str | None) -> DiscoveryFailure:
    kind = classify(error)
    return DiscoveryFailure(kind=kind, message=describe(kind, _error_text(error)))
