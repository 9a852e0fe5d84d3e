"""Utility helpers for the Anime Explorer service."""

from __future__ import annotations

from typing import Iterable


def normalize_query(value: str | None) -> str:
    """Collapse surrounding and repeated whitespace in a search query."""

    if not value:
        return ""
    return " ".join(value.split())


def matches_query(query: str, candidates: Iterable[str | None]) -> bool:
    """Return ``True`` when ``query`` is a case-insensitive substring of any candidate."""

    needle = query.casefold()
    if not needle:
        return False
    return any(needle in candidate.casefold() for candidate in candidates if candidate)
