"""Gate deciding which queries are worth sending to the geocoder."""
from __future__ import annotations

MIN_QUERY_LENGTH = 3


def normalise_query(query: str | None) -> str:
    return (query or "").strip()


def is_searchable(query: str | None, min_length: int = MIN_QUERY_LENGTH) -> bool:
    """Return True when the trimmed query has at least ``min_length`` characters.

    Single and double character lookups rarely help and count against the
    public geocoder's rate limit.
    """
    return len(normalise_query(query)) >= min_length
