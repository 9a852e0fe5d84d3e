"""SQLAlchemy ORM models backing the local anime cache."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base

ANIME_TABLE = "anime"
GENRES_TABLE = "genres"
CHARACTERS_TABLE = "characters"


class AnimeRecord(Base):
    """A cached anime entry, overwritten on every successful fetch."""

    __tablename__ = ANIME_TABLE

    mal_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    title: Mapped[str] = mapped_column(String(512))
    title_english: Mapped[str | None] = mapped_column(String(512), nullable=True)
    title_japanese: Mapped[str | None] = mapped_column(String(512), nullable=True)
    image_url: Mapped[str] = mapped_column(String(512), default="")
    synopsis: Mapped[str | None] = mapped_column(Text, nullable=True)
    score: Mapped[float | None] = mapped_column(Float, nullable=True)
    episodes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str | None] = mapped_column(String(64), nullable=True)
    aired: Mapped[str | None] = mapped_column(String(255), nullable=True)
    genre_ids: Mapped[list[int]] = mapped_column(JSON, default=list)
    trailer_youtube_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    trailer_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    trailer_embed_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    trailer_image_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    is_favorite: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class GenreRecord(Base):
    """Genre shared between anime through their ``genre_ids`` list."""

    __tablename__ = GENRES_TABLE

    mal_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(120))


class CharacterRecord(Base):
    """Character appearing in one anime, replaced wholesale on refresh."""

    __tablename__ = CHARACTERS_TABLE

    anime_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey(f"{ANIME_TABLE}.mal_id", ondelete="CASCADE"),
        primary_key=True,
    )
    mal_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(255))
    image_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    role: Mapped[str | None] = mapped_column(String(64), nullable=True)
    position: Mapped[int] = mapped_column(Integer, default=0)
