"""Errors raised while talking to the geocoding service."""
from __future__ import annotations

from typing import Optional


class RemoteLookupError(Exception):
    """The geocoder answered with a non-success status or could not be reached."""

    def __init__(self, query: str, *, status_code: Optional[int] = None, reason: str = "") -> None:
        self.query = query
        self.status_code = status_code
        self.reason = reason
        detail = f"HTTP {status_code}" if status_code is not None else (reason or "transport failure")
        super().__init__(f"Lookup for {query!r} failed: {detail}")


class MalformedResultItem(ValueError):
    """A geocoder match lacks usable coordinates."""
