"""Pydantic models describing anime payloads returned to callers."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ViewStatus = Literal["loading", "success", "error", "empty"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Genre(_CamelModel):
    mal_id: int
    name: str


class Character(_CamelModel):
    mal_id: int
    name: str
    image_url: str | None = None
    role: str | None = None


class Trailer(_CamelModel):
    """Trailer reference; only built when a YouTube id is known."""

    youtube_id: str
    url: str = ""
    embed_url: str = ""
    image_url: str | None = None


class Anime(_CamelModel):
    """Represents a single anime entry as shown to callers."""

    mal_id: int
    title: str
    title_english: str | None = None
    title_japanese: str | None = None
    image_url: str = ""
    synopsis: str | None = None
    score: float | None = None
    episodes: int | None = None
    status: str | None = None
    aired: str | None = None
    genres: list[Genre] = Field(default_factory=list)
    characters: list[Character] = Field(default_factory=list)
    trailer: Trailer | None = None
    is_favorite: bool = False

    @property
    def display_title(self) -> str:
        """Prefer the English title when one is available."""

        return self.title_english or self.title

    @property
    def display_score(self) -> str:
        if self.score is None:
            return "N/A"
        return f"★ {self.score:.1f}"

    @property
    def display_episodes(self) -> str:
        if self.episodes is None:
            return "Unknown"
        return f"{self.episodes} episodes"

    def to_payload(self) -> dict[str, Any]:
        """Return the camelCase JSON payload including display helpers."""

        payload = self.model_dump(mode="json", by_alias=True)
        payload["displayTitle"] = self.display_title
        payload["displayScore"] = self.display_score
        payload["displayEpisodes"] = self.display_episodes
        return payload


class ViewState(BaseModel):
    """Loading/success/error/empty union handed to presentation layers."""

    status: ViewStatus
    data: Any = None
    message: str | None = None

    @classmethod
    def loading(cls) -> "ViewState":
        return cls(status="loading")

    @classmethod
    def success(cls, data: Any) -> "ViewState":
        return cls(status="success", data=data)

    @classmethod
    def error(cls, message: str) -> "ViewState":
        return cls(status="error", message=message)

    @classmethod
    def empty(cls) -> "ViewState":
        return cls(status="empty")

    @classmethod
    def from_result(cls, data: Any) -> "ViewState":
        """Return ``empty`` for missing or empty results, ``success`` otherwise."""

        if data is None:
            return cls.empty()
        if isinstance(data, (list, tuple)) and not data:
            return cls.empty()
        return cls.success(data)

    @property
    def is_success(self) -> bool:
        return self.status == "success"

    def to_payload(self) -> dict[str, Any]:
        """Serialise the state, expanding anime models into JSON payloads."""

        payload: dict[str, Any] = {"status": self.status}
        if self.is_success:
            payload["data"] = _serialise(self.data)
        if self.message is not None:
            payload["message"] = self.message
        return payload


def _serialise(value: Any) -> Any:
    if isinstance(value, Anime):
        return value.to_payload()
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, (list, tuple)):
        return [_serialise(entry) for entry in value]
    return value
