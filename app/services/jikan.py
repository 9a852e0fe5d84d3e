"""Client and wire models for the Jikan (MyAnimeList) REST API."""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, Field, ValidationError

from ..config import JIKAN_MAX_PAGE_SIZE, Settings

logger = logging.getLogger(__name__)


class ImageUrlDto(BaseModel):
    image_url: str | None = None
    small_image_url: str | None = None
    large_image_url: str | None = None


class ImagesDto(BaseModel):
    jpg: ImageUrlDto | None = None
    webp: ImageUrlDto | None = None


class AiredDto(BaseModel):
    string: str | None = None


class GenreDto(BaseModel):
    mal_id: int
    name: str


class TrailerImagesDto(BaseModel):
    image_url: str | None = None
    small_image_url: str | None = None
    medium_image_url: str | None = None
    large_image_url: str | None = None
    maximum_image_url: str | None = None


class TrailerDto(BaseModel):
    youtube_id: str | None = None
    url: str | None = None
    embed_url: str | None = None
    images: TrailerImagesDto | None = None


class AnimeDto(BaseModel):
    """A single anime entry as returned by list and search endpoints."""

    mal_id: int
    title: str
    title_english: str | None = None
    title_japanese: str | None = None
    images: ImagesDto | None = None
    synopsis: str | None = None
    score: float | None = None
    episodes: int | None = None
    status: str | None = None
    aired: AiredDto | None = None
    genres: list[GenreDto] | None = None
    trailer: TrailerDto | None = None


class CharacterInfoDto(BaseModel):
    mal_id: int
    name: str
    images: ImagesDto | None = None


class CharacterDto(BaseModel):
    character: CharacterInfoDto
    role: str | None = None


class AnimeDetailDto(AnimeDto):
    """Full anime payload; ``characters`` is only present on some mirrors."""

    characters: list[CharacterDto] | None = None


class PaginationItemsDto(BaseModel):
    count: int = 0
    total: int = 0
    per_page: int = 0


class PaginationDto(BaseModel):
    last_visible_page: int = 1
    has_next_page: bool = False
    current_page: int = 1
    items: PaginationItemsDto = Field(default_factory=PaginationItemsDto)


class AnimeListResponse(BaseModel):
    data: list[AnimeDto] = Field(default_factory=list)
    pagination: PaginationDto = Field(default_factory=PaginationDto)


class AnimeDetailResponse(BaseModel):
    data: AnimeDetailDto


class CharacterListResponse(BaseModel):
    data: list[CharacterDto] = Field(default_factory=list)


ResponseT = TypeVar("ResponseT", bound=BaseModel)


class JikanClient:
    """Thin wrapper around the Jikan HTTP API.

    Every method returns ``None`` when the request fails, the server answers
    with an error status or the body does not match the expected shape.
    Failures are logged rather than raised.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    async def get_top_anime(
        self, page: int = 1, limit: int | None = None
    ) -> AnimeListResponse | None:
        params = {"page": max(page, 1), "limit": self._page_size(limit)}
        return await self._get("/top/anime", AnimeListResponse, params=params)

    async def get_anime_detail(self, mal_id: int) -> AnimeDetailResponse | None:
        return await self._get(f"/anime/{mal_id}/full", AnimeDetailResponse)

    async def search_anime(
        self, query: str, page: int = 1, limit: int | None = None
    ) -> AnimeListResponse | None:
        params = {"q": query, "page": max(page, 1), "limit": self._page_size(limit)}
        return await self._get("/anime", AnimeListResponse, params=params)

    async def get_anime_characters(self, mal_id: int) -> CharacterListResponse | None:
        return await self._get(f"/anime/{mal_id}/characters", CharacterListResponse)

    def _page_size(self, limit: int | None) -> int:
        if limit is None:
            return self._settings.default_page_size
        return min(max(int(limit), 1), JIKAN_MAX_PAGE_SIZE)

    async def _get(
        self,
        path: str,
        model: type[ResponseT],
        *,
        params: dict[str, Any] | None = None,
    ) -> ResponseT | None:
        try:
            response = await self._client.get(path, params=params)
        except httpx.HTTPError as exc:
            logger.warning("Jikan request to %s failed: %s", path, exc)
            return None

        if response.status_code >= 400:
            logger.warning(
                "Jikan request to %s returned %s: %s",
                path,
                response.status_code,
                response.text[:200],
            )
            return None

        try:
            payload = response.json()
        except ValueError:
            logger.warning("Unexpected non-JSON Jikan response for %s", path)
            return None

        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            logger.warning("Unexpected Jikan response structure for %s: %s", path, exc)
            return None
