"""Offline-first anime repository combining the local cache with Jikan."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError

from ..db_models import AnimeRecord
from ..mapper import (
    anime_record_from_dto,
    anime_to_domain,
    character_records_from_dtos,
    genre_record_from_dto,
    genre_records_from_dtos,
)
from ..models import Anime
from ..utils import normalize_query
from .anime_store import AnimeStore
from .connectivity import ConnectivityChecker
from .jikan import AnimeDto, CharacterDto, JikanClient

logger = logging.getLogger(__name__)


class AnimeRepository:
    """Serve cached anime first, then refresh from the network when possible.

    Read operations are async iterators. The first element is always the
    locally cached view. When the network is reachable the repository fetches
    fresh data and writes it to the store; the store's live read then yields
    the merged result as a further element. Remote failures are logged and
    never raised, so callers keep the best cached answer.
    """

    def __init__(
        self,
        api: JikanClient,
        store: AnimeStore,
        connectivity: ConnectivityChecker,
    ):
        self._api = api
        self._store = store
        self._connectivity = connectivity

    async def top_anime(
        self, page: int = 1, limit: int | None = None, *, follow: bool = True
    ) -> AsyncIterator[list[Anime]]:
        """Yield the cached anime list, then the list after a network refresh.

        With ``follow`` the iterator keeps yielding on every later change to
        the cache until the caller closes it. Without it the iterator ends
        after the refreshed list, or after the cached one if no refresh
        happened.
        """

        updates = self._store.observe_anime_list()
        try:
            yield await anext(updates)
            refreshed = await self._refresh_top_anime(page, limit)
            if follow:
                async for anime in updates:
                    yield anime
            elif refreshed:
                yield await anext(updates)
        except SQLAlchemyError:
            logger.exception("Failed to read cached top anime")
            yield []
        finally:
            await updates.aclose()

    async def anime_detail(
        self, mal_id: int, *, follow: bool = True
    ) -> AsyncIterator[Anime]:
        """Yield the cached detail when present, then the refreshed detail."""

        updates = self._store.observe_anime_detail(mal_id)
        try:
            cached = await anext(updates)
            if cached is not None:
                yield cached
            refreshed = await self._refresh_anime_detail(mal_id)
            if follow:
                async for anime in updates:
                    if anime is not None:
                        yield anime
            elif refreshed:
                anime = await anext(updates)
                if anime is not None:
                    yield anime
        except SQLAlchemyError:
            logger.exception("Failed to read cached detail for anime %s", mal_id)
        finally:
            await updates.aclose()

    async def search_anime(
        self, query: str, page: int = 1, limit: int | None = None
    ) -> AsyncIterator[list[Anime]]:
        """Yield one list of matches, from Jikan when online, else from the cache."""

        normalized = normalize_query(query)
        if not normalized:
            yield []
            return

        try:
            results = await self._search_remote(normalized, page, limit)
            if results is None:
                results = await self._store.search_anime(normalized)
        except SQLAlchemyError:
            logger.exception("Search for %r failed against the local cache", normalized)
            results = []
        yield results

    def cached_anime(self) -> AsyncIterator[list[Anime]]:
        return self._store.observe_anime_list()

    def favorite_anime(self) -> AsyncIterator[list[Anime]]:
        return self._store.observe_favorite_anime()

    async def toggle_favorite(self, mal_id: int) -> bool | None:
        """Flip the favorite flag for ``mal_id``; ``None`` when it is not cached."""

        try:
            new_value = await self._store.toggle_favorite(mal_id)
        except SQLAlchemyError:
            logger.exception("Error toggling favorite status for anime %s", mal_id)
            return None
        if new_value is None:
            logger.info("Cannot toggle favorite for unknown anime %s", mal_id)
        else:
            logger.debug("Toggled favorite for anime %s to %s", mal_id, new_value)
        return new_value

    async def clear_cache(self) -> int:
        """Remove every non-favorite anime from the cache."""

        removed = await self._store.clear_non_favorites()
        logger.info("Cleared %s cached anime", removed)
        return removed

    async def _refresh_top_anime(self, page: int, limit: int | None) -> bool:
        if not await self._connectivity.is_network_available():
            logger.debug("Network unavailable, serving cached top anime")
            return False
        response = await self._api.get_top_anime(page, limit)
        if response is None:
            return False
        try:
            await self._store_anime_page(response.data)
        except SQLAlchemyError:
            logger.exception("Failed to cache top anime page %s", page)
            return False
        logger.info("Fetched %s top anime (page %s)", len(response.data), page)
        # An empty page writes nothing, so there is no fresh emission to wait for.
        return bool(response.data)

    async def _refresh_anime_detail(self, mal_id: int) -> bool:
        if not await self._connectivity.is_network_available():
            logger.debug("Network unavailable, serving cached detail for %s", mal_id)
            return False
        response = await self._api.get_anime_detail(mal_id)
        if response is None:
            return False

        detail = response.data
        characters = await self._fetch_characters(mal_id, detail.characters)
        try:
            await self._store.upsert_anime([anime_record_from_dto(detail)])
            if detail.genres:
                await self._store.upsert_genres(
                    [genre_record_from_dto(genre) for genre in detail.genres]
                )
            if characters is not None:
                await self._store.replace_characters(
                    mal_id, character_records_from_dtos(characters, mal_id)
                )
        except SQLAlchemyError:
            logger.exception("Failed to cache anime detail for %s", mal_id)
            return False
        logger.info("Fetched anime detail for %s", mal_id)
        return True

    async def _fetch_characters(
        self, mal_id: int, embedded: list[CharacterDto] | None
    ) -> list[CharacterDto] | None:
        if embedded is not None:
            return embedded
        response = await self._api.get_anime_characters(mal_id)
        if response is None:
            logger.info("Keeping cached characters for anime %s", mal_id)
            return None
        return response.data

    async def _search_remote(
        self, query: str, page: int, limit: int | None
    ) -> list[Anime] | None:
        if not await self._connectivity.is_network_available():
            logger.debug("Network unavailable, searching cached anime for %r", query)
            return None
        response = await self._api.search_anime(query, page, limit)
        if response is None:
            return None

        stored = await self._store_anime_page(response.data)
        favorites = {record.mal_id: record.is_favorite for record in stored}
        results: list[Anime] = []
        for dto in response.data:
            record = anime_record_from_dto(dto)
            record.is_favorite = favorites.get(dto.mal_id, False)
            genres = [genre_record_from_dto(genre) for genre in dto.genres or []]
            results.append(anime_to_domain(record, genres))
        logger.info("Search returned %s results for %r", len(results), query)
        return results

    async def _store_anime_page(self, dtos: list[AnimeDto]) -> list[AnimeRecord]:
        fetched_at = datetime.utcnow()
        await self._store.upsert_genres(genre_records_from_dtos(dtos))
        return await self._store.upsert_anime(
            [
                anime_record_from_dto(dto, fetched_at=fetched_at, position=position)
                for position, dto in enumerate(dtos)
            ]
        )
