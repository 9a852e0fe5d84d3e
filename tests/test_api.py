from __future__ import annotations

import json
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.main import register_routes
from app.models import Anime, Genre
from app.services.anime_repository import AnimeRepository


def _anime(mal_id: int, title: str, **extra) -> Anime:
    return Anime(mal_id=mal_id, title=title, image_url=f"https://example.com/{mal_id}.jpg", **extra)


class DummyAnimeRepository(AnimeRepository):
    """Minimal repository stub for route testing."""

    def __init__(self) -> None:  # pragma: no cover - nothing to initialise
        # Deliberately skip super().__init__ to avoid touching external systems.
        self.favorites: dict[int, bool] = {1: False}
        self.top_calls: list[tuple[int, int | None, bool]] = []
        self.search_queries: list[str] = []
        self.closed_streams = 0

    async def top_anime(  # type: ignore[override]
        self, page: int = 1, limit: int | None = None, *, follow: bool = True
    ) -> AsyncIterator[list[Anime]]:
        self.top_calls.append((page, limit, follow))
        yield [_anime(1, "Cached")]
        yield [_anime(1, "Cached"), _anime(2, "Fresh", genres=[Genre(mal_id=8, name="Drama")])]

    async def anime_detail(  # type: ignore[override]
        self, mal_id: int, *, follow: bool = True
    ) -> AsyncIterator[Anime]:
        if mal_id == 1:
            yield _anime(1, "Cached", score=7.0)
            yield _anime(1, "Cached", score=9.0)

    async def search_anime(  # type: ignore[override]
        self, query: str, page: int = 1, limit: int | None = None
    ) -> AsyncIterator[list[Anime]]:
        self.search_queries.append(query)
        yield [_anime(3, "Match")] if query.strip() else []

    async def cached_anime(self) -> AsyncIterator[list[Anime]]:  # type: ignore[override]
        try:
            yield [_anime(1, "Cached")]
            yield [_anime(1, "Never seen")]
        finally:
            self.closed_streams += 1

    async def favorite_anime(self) -> AsyncIterator[list[Anime]]:  # type: ignore[override]
        yield []

    async def toggle_favorite(self, mal_id: int) -> bool | None:
        if mal_id not in self.favorites:
            return None
        self.favorites[mal_id] = not self.favorites[mal_id]
        return self.favorites[mal_id]

    async def clear_cache(self) -> int:
        return 4


def _client(repository: DummyAnimeRepository) -> TestClient:
    app = FastAPI()
    register_routes(app)
    app.state.anime_repository = repository
    return TestClient(app)


def test_top_anime_returns_last_emission() -> None:
    repository = DummyAnimeRepository()

    with _client(repository) as client:
        response = client.get("/anime/top", params={"page": 2, "limit": 10})

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "success"
    assert [entry["title"] for entry in payload["data"]] == ["Cached", "Fresh"]
    assert payload["data"][1]["genres"] == [{"malId": 8, "name": "Drama"}]
    assert repository.top_calls == [(2, 10, False)]


def test_top_anime_rejects_oversized_pages() -> None:
    with _client(DummyAnimeRepository()) as client:
        response = client.get("/anime/top", params={"limit": 50})

    assert response.status_code == 422


def test_top_anime_stream_emits_ndjson_lines() -> None:
    repository = DummyAnimeRepository()

    with _client(repository) as client:
        response = client.get("/anime/top/stream")

    lines = [json.loads(line) for line in response.text.splitlines() if line]
    assert response.headers["content-type"].startswith("application/x-ndjson")
    assert [line["status"] for line in lines] == ["loading", "success", "success"]
    assert [entry["malId"] for entry in lines[-1]["data"]] == [1, 2]
    assert repository.top_calls == [(1, None, True)]


def test_search_and_empty_state() -> None:
    repository = DummyAnimeRepository()

    with _client(repository) as client:
        found = client.get("/anime/search", params={"q": "match"}).json()
        blank = client.get("/anime/search").json()

    assert found["status"] == "success"
    assert found["data"][0]["malId"] == 3
    assert blank == {"status": "empty"}
    assert repository.search_queries == ["match", ""]


def test_cached_anime_takes_first_emission_and_closes_stream() -> None:
    repository = DummyAnimeRepository()

    with _client(repository) as client:
        payload = client.get("/anime/cached").json()
        favorites = client.get("/anime/favorites").json()

    assert [entry["title"] for entry in payload["data"]] == ["Cached"]
    assert repository.closed_streams == 1
    assert favorites == {"status": "empty"}


def test_detail_returns_latest_and_404_for_unknown() -> None:
    with _client(DummyAnimeRepository()) as client:
        found = client.get("/anime/1")
        missing = client.get("/anime/999")

    assert found.status_code == 200
    assert found.json()["data"]["score"] == 9.0
    assert missing.status_code == 404
    assert missing.json() == {"status": "error", "message": "Anime 999 not found"}


def test_toggle_favorite_and_clear_cache() -> None:
    with _client(DummyAnimeRepository()) as client:
        toggled = client.post("/anime/1/favorite")
        missing = client.post("/anime/2/favorite")
        cleared = client.delete("/cache")

    assert toggled.json() == {"malId": 1, "isFavorite": True}
    assert missing.status_code == 404
    assert cleared.json() == {"removed": 4}


def test_missing_repository_raises() -> None:
    app = FastAPI()
    register_routes(app)

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/healthz")
        failure = client.get("/anime/top")

    assert response.json() == {"status": "ok"}
    assert failure.status_code == 500
