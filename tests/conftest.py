"""Pytest configuration and test helpers."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable, Iterable

import pytest


# Ensure the application package is importable when running tests without an
# editable install. This mirrors the expected runtime layout where ``app`` sits
# at the project root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def build_anime_payload(
    mal_id: int,
    title: str = "Cowboy Bebop",
    *,
    title_english: str | None = None,
    title_japanese: str | None = None,
    genres: Iterable[tuple[int, str]] = ((1, "Action"),),
    score: float | None = 8.75,
    episodes: int | None = 26,
    youtube_id: str | None = "qig4KOK2R2g",
) -> dict[str, Any]:
    """Return a Jikan-shaped anime object."""

    return {
        "mal_id": mal_id,
        "title": title,
        "title_english": title_english,
        "title_japanese": title_japanese,
        "images": {
            "jpg": {
                "image_url": f"https://cdn.example.com/images/{mal_id}.jpg",
                "small_image_url": None,
                "large_image_url": None,
            }
        },
        "synopsis": f"Synopsis for {title}",
        "score": score,
        "episodes": episodes,
        "status": "Finished Airing",
        "aired": {"string": "Apr 3, 1998 to Apr 24, 1999"},
        "genres": [{"mal_id": genre_id, "name": name} for genre_id, name in genres],
        "trailer": {
            "youtube_id": youtube_id,
            "url": f"https://www.youtube.com/watch?v={youtube_id}" if youtube_id else None,
            "embed_url": f"https://www.youtube.com/embed/{youtube_id}" if youtube_id else None,
            "images": {"image_url": "https://img.youtube.com/vi/default.jpg"},
        },
    }


def build_list_payload(items: list[dict[str, Any]], page: int = 1) -> dict[str, Any]:
    """Wrap anime objects in Jikan's paginated ``data`` envelope."""

    return {
        "data": items,
        "pagination": {
            "last_visible_page": 10,
            "has_next_page": True,
            "current_page": page,
            "items": {"count": len(items), "total": 250, "per_page": 25},
        },
    }


def build_character_payload(
    mal_id: int, name: str, role: str = "Main"
) -> dict[str, Any]:
    return {
        "character": {
            "mal_id": mal_id,
            "name": name,
            "images": {"jpg": {"image_url": f"https://cdn.example.com/c/{mal_id}.jpg"}},
        },
        "role": role,
    }


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO tests to run on asyncio without requiring trio."""

    return "asyncio"


@pytest.fixture
def anime_payload() -> Callable[..., dict[str, Any]]:
    return build_anime_payload


@pytest.fixture
def list_payload() -> Callable[..., dict[str, Any]]:
    return build_list_payload


@pytest.fixture
def character_payload() -> Callable[..., dict[str, Any]]:
    return build_character_payload
