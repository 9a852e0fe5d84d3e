"""Pure translations between Jikan DTOs, cache records and domain models."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Mapping, Sequence

from .db_models import AnimeRecord, CharacterRecord, GenreRecord
from .models import Anime, Character, Genre, Trailer
from .services.jikan import AnimeDto, CharacterDto, GenreDto, ImagesDto


def _jpg_url(images: ImagesDto | None) -> str | None:
    if images is None or images.jpg is None:
        return None
    return images.jpg.image_url


def anime_record_from_dto(
    dto: AnimeDto, *, fetched_at: datetime | None = None, position: int = 0
) -> AnimeRecord:
    """Build a cache record; the favorite flag is decided by the store.

    ``position`` is the index of ``dto`` in the response it came from, which
    keeps a fetched page in the order the API ranked it.
    """

    trailer = dto.trailer
    return AnimeRecord(
        mal_id=dto.mal_id,
        title=dto.title,
        title_english=dto.title_english,
        title_japanese=dto.title_japanese,
        image_url=_jpg_url(dto.images) or "",
        synopsis=dto.synopsis,
        score=dto.score,
        episodes=dto.episodes,
        status=dto.status,
        aired=dto.aired.string if dto.aired else None,
        genre_ids=[genre.mal_id for genre in dto.genres or []],
        trailer_youtube_id=trailer.youtube_id if trailer else None,
        trailer_url=trailer.url if trailer else None,
        trailer_embed_url=trailer.embed_url if trailer else None,
        trailer_image_url=(
            trailer.images.image_url if trailer and trailer.images else None
        ),
        is_favorite=False,
        last_updated=fetched_at or datetime.utcnow(),
        position=position,
    )


def genre_record_from_dto(dto: GenreDto) -> GenreRecord:
    return GenreRecord(mal_id=dto.mal_id, name=dto.name)


def genre_records_from_dtos(dtos: Iterable[AnimeDto]) -> list[GenreRecord]:
    """Collect the distinct genres referenced by ``dtos``."""

    seen: dict[int, GenreRecord] = {}
    for dto in dtos:
        for genre in dto.genres or []:
            seen[genre.mal_id] = genre_record_from_dto(genre)
    return list(seen.values())


def character_record_from_dto(
    dto: CharacterDto, anime_id: int, position: int = 0
) -> CharacterRecord:
    return CharacterRecord(
        anime_id=anime_id,
        mal_id=dto.character.mal_id,
        name=dto.character.name,
        image_url=_jpg_url(dto.character.images),
        role=dto.role,
        position=position,
    )


def character_records_from_dtos(
    dtos: Sequence[CharacterDto], anime_id: int
) -> list[CharacterRecord]:
    # Jikan occasionally repeats a character; the last entry wins.
    unique: dict[int, CharacterDto] = {}
    for dto in dtos:
        unique[dto.character.mal_id] = dto
    return [
        character_record_from_dto(dto, anime_id, position)
        for position, dto in enumerate(unique.values())
    ]


def genre_to_domain(record: GenreRecord) -> Genre:
    return Genre(mal_id=record.mal_id, name=record.name)


def character_to_domain(record: CharacterRecord) -> Character:
    return Character(
        mal_id=record.mal_id,
        name=record.name,
        image_url=record.image_url,
        role=record.role,
    )


def anime_to_domain(
    record: AnimeRecord,
    genres: Sequence[GenreRecord] = (),
    characters: Sequence[CharacterRecord] = (),
) -> Anime:
    trailer = None
    if record.trailer_youtube_id:
        trailer = Trailer(
            youtube_id=record.trailer_youtube_id,
            url=record.trailer_url or "",
            embed_url=record.trailer_embed_url or "",
            image_url=record.trailer_image_url,
        )
    return Anime(
        mal_id=record.mal_id,
        title=record.title,
        title_english=record.title_english,
        title_japanese=record.title_japanese,
        image_url=record.image_url or "",
        synopsis=record.synopsis,
        score=record.score,
        episodes=record.episodes,
        status=record.status,
        aired=record.aired,
        genres=[genre_to_domain(genre) for genre in genres],
        characters=[character_to_domain(character) for character in characters],
        trailer=trailer,
        is_favorite=bool(record.is_favorite),
    )


def genres_for(record: AnimeRecord, genres_by_id: Mapping[int, GenreRecord]) -> list[GenreRecord]:
    """Resolve a record's genre ids in their stored order, skipping unknown ids."""

    return [genres_by_id[genre_id] for genre_id in record.genre_ids or [] if genre_id in genres_by_id]


def anime_list_to_domain(
    records: Iterable[AnimeRecord], genres_by_id: Mapping[int, GenreRecord]
) -> list[Anime]:
    return [anime_to_domain(record, genres_for(record, genres_by_id)) for record in records]
