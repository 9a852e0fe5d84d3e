"""Local anime cache backed by SQLAlchemy with live, re-emitting reads."""

from __future__ import annotations

import logging
from typing import AsyncIterator, Awaitable, Callable, Sequence, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import Database
from ..db_models import (
    ANIME_TABLE,
    CHARACTERS_TABLE,
    GENRES_TABLE,
    AnimeRecord,
    CharacterRecord,
    GenreRecord,
)
from ..mapper import anime_list_to_domain, anime_to_domain, genres_for
from ..models import Anime
from ..utils import matches_query

logger = logging.getLogger(__name__)

T = TypeVar("T")

LIST_TABLES = (ANIME_TABLE, GENRES_TABLE)
DETAIL_TABLES = (ANIME_TABLE, GENRES_TABLE, CHARACTERS_TABLE)


class AnimeStore:
    """Reads and writes the ``anime``, ``genres`` and ``characters`` tables.

    Writes commit and then notify the database's invalidation tracker so that
    any ``observe_*`` iterator re-runs its query and yields the new result.
    """

    def __init__(self, database: Database):
        self._database = database
        self._tracker = database.tracker

    # Live reads

    def observe_anime_list(self) -> AsyncIterator[list[Anime]]:
        return self._observe(LIST_TABLES, self.list_anime)

    def observe_favorite_anime(self) -> AsyncIterator[list[Anime]]:
        return self._observe(LIST_TABLES, self.list_favorite_anime)

    def observe_anime_detail(self, mal_id: int) -> AsyncIterator[Anime | None]:
        return self._observe(DETAIL_TABLES, lambda: self.get_anime_detail(mal_id))

    async def _observe(
        self, tables: tuple[str, ...], load: Callable[[], Awaitable[T]]
    ) -> AsyncIterator[T]:
        while True:
            # Snapshot before loading so writes racing the query are not missed.
            version = self._tracker.snapshot(tables)
            yield await load()
            await self._tracker.wait_for_change(tables, version)

    # One-shot reads

    async def list_anime(self) -> list[Anime]:
        return await self._load_list(favorites_only=False)

    async def list_favorite_anime(self) -> list[Anime]:
        return await self._load_list(favorites_only=True)

    async def _load_list(self, *, favorites_only: bool) -> list[Anime]:
        statement = select(AnimeRecord).order_by(
            AnimeRecord.last_updated.desc(), AnimeRecord.position, AnimeRecord.mal_id
        )
        if favorites_only:
            statement = statement.where(AnimeRecord.is_favorite.is_(True))
        async with self._database.session() as session:
            records = (await session.scalars(statement)).all()
            genres_by_id = await self._load_genres(session, records)
        return anime_list_to_domain(records, genres_by_id)

    async def get_anime_detail(self, mal_id: int) -> Anime | None:
        async with self._database.session() as session:
            record = await session.get(AnimeRecord, mal_id)
            if record is None:
                return None
            genres_by_id = await self._load_genres(session, [record])
            characters = (
                await session.scalars(
                    select(CharacterRecord)
                    .where(CharacterRecord.anime_id == mal_id)
                    .order_by(CharacterRecord.position, CharacterRecord.mal_id)
                )
            ).all()
        return anime_to_domain(record, genres_for(record, genres_by_id), characters)

    async def search_anime(self, query: str) -> list[Anime]:
        """Case-insensitive substring match against the three title fields."""

        statement = select(AnimeRecord).order_by(
            AnimeRecord.last_updated.desc(), AnimeRecord.position, AnimeRecord.mal_id
        )
        async with self._database.session() as session:
            records = [
                record
                for record in (await session.scalars(statement)).all()
                if matches_query(
                    query,
                    (record.title, record.title_english, record.title_japanese),
                )
            ]
            genres_by_id = await self._load_genres(session, records)
        return anime_list_to_domain(records, genres_by_id)

    @staticmethod
    async def _load_genres(
        session: AsyncSession, records: Sequence[AnimeRecord]
    ) -> dict[int, GenreRecord]:
        genre_ids = {
            genre_id for record in records for genre_id in record.genre_ids or []
        }
        if not genre_ids:
            return {}
        genres = await session.scalars(
            select(GenreRecord).where(GenreRecord.mal_id.in_(genre_ids))
        )
        return {genre.mal_id: genre for genre in genres}

    # Writes

    async def upsert_genres(self, genres: Sequence[GenreRecord]) -> None:
        if not genres:
            return
        async with self._database.session() as session:
            for genre in genres:
                await session.merge(genre)
            await session.commit()
        self._tracker.notify(GENRES_TABLE)

    async def upsert_anime(self, records: Sequence[AnimeRecord]) -> list[AnimeRecord]:
        """Insert or replace ``records``, carrying stored favorite flags forward.

        Returns the persisted records, whose ``is_favorite`` reflects the
        value that was already stored for each identifier.
        """

        if not records:
            return []
        mal_ids = {record.mal_id for record in records}
        async with self._database.session() as session:
            rows = await session.execute(
                select(AnimeRecord.mal_id, AnimeRecord.is_favorite).where(
                    AnimeRecord.mal_id.in_(mal_ids)
                )
            )
            favorites = {mal_id: bool(is_favorite) for mal_id, is_favorite in rows.all()}
            merged: dict[int, AnimeRecord] = {}
            for record in records:
                record.is_favorite = favorites.get(record.mal_id, False)
                merged[record.mal_id] = await session.merge(record)
            await session.commit()
        self._tracker.notify(ANIME_TABLE)
        logger.debug("Upserted %s anime records", len(merged))
        return [merged[record.mal_id] for record in records]

    async def replace_characters(
        self, anime_id: int, characters: Sequence[CharacterRecord]
    ) -> None:
        """Delete every character stored for ``anime_id`` and insert ``characters``."""

        async with self._database.session() as session:
            await session.execute(
                delete(CharacterRecord).where(CharacterRecord.anime_id == anime_id)
            )
            for character in characters:
                character.anime_id = anime_id
                session.add(character)
            await session.commit()
        self._tracker.notify(CHARACTERS_TABLE)

    async def toggle_favorite(self, mal_id: int) -> bool | None:
        """Flip the stored favorite flag and return the new value."""

        async with self._database.session() as session:
            record = await session.get(AnimeRecord, mal_id)
            if record is None:
                return None
            record.is_favorite = not record.is_favorite
            new_value = record.is_favorite
            await session.commit()
        self._tracker.notify(ANIME_TABLE)
        return new_value

    async def clear_non_favorites(self) -> int:
        """Purge every non-favorite anime and its characters."""

        non_favorite_ids = select(AnimeRecord.mal_id).where(
            AnimeRecord.is_favorite.is_(False)
        )
        async with self._database.session() as session:
            await session.execute(
                delete(CharacterRecord).where(
                    CharacterRecord.anime_id.in_(non_favorite_ids)
                )
            )
            result = await session.execute(
                delete(AnimeRecord).where(AnimeRecord.is_favorite.is_(False))
            )
            await session.commit()
        removed = result.rowcount or 0
        if removed:
            self._tracker.notify(ANIME_TABLE, CHARACTERS_TABLE)
        return removed
