"""Entry point for the FastAPI-powered anime catalog service."""

from __future__ import annotations

import json
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, AsyncIterator, TypeVar

import httpx
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from . import __version__
from .config import JIKAN_MAX_PAGE_SIZE, settings
from .database import Database
from .models import ViewState
from .services.anime_repository import AnimeRepository
from .services.anime_store import AnimeStore
from .services.connectivity import (
    ConnectivityChecker,
    SocketConnectivityChecker,
    StaticConnectivity,
)
from .services.jikan import JikanClient

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

T = TypeVar("T")

app: FastAPI


def build_connectivity_checker() -> ConnectivityChecker:
    if settings.offline_mode:
        logger.info("Offline mode enabled, serving cached data only")
        return StaticConnectivity(online=False)
    return SocketConnectivityChecker(
        settings.jikan_base_url, timeout=settings.connectivity_timeout_seconds
    )


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    timeout = settings.network_timeout_seconds
    jikan_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=settings.jikan_base_url,
            timeout=httpx.Timeout(timeout, connect=timeout),
            headers={"User-Agent": f"{settings.app_name} (anime-explorer)"},
        )
    )
    database = Database(settings.database_url)
    await database.create_all()

    repository = AnimeRepository(
        JikanClient(settings, jikan_http_client),
        AnimeStore(database),
        build_connectivity_checker(),
    )
    fastapi_app.state.anime_repository = repository
    fastapi_app.state.database = database

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await database.dispose()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Offline-first anime catalog backed by the Jikan API",
        version=__version__,
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_anime_repository(app: FastAPI) -> AnimeRepository:
    repository = getattr(app.state, "anime_repository", None)
    if not isinstance(repository, AnimeRepository):
        raise RuntimeError("Anime repository not initialised")
    return repository


async def _collect(stream: AsyncIterator[T]) -> list[T]:
    return [item async for item in stream]


async def _first(stream: AsyncIterator[T]) -> T:
    try:
        return await anext(stream)
    finally:
        await stream.aclose()  # type: ignore[attr-defined]


def _final_state(emissions: list[Any]) -> ViewState:
    if not emissions:
        return ViewState.empty()
    return ViewState.from_result(emissions[-1])


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/anime/top")
    async def top_anime(
        page: int = Query(default=1, ge=1),
        limit: int | None = Query(default=None, ge=1, le=JIKAN_MAX_PAGE_SIZE),
    ) -> JSONResponse:
        repository = get_anime_repository(fastapi_app)
        emissions = await _collect(repository.top_anime(page, limit, follow=False))
        return JSONResponse(_final_state(emissions).to_payload())

    @fastapi_app.get("/anime/top/stream")
    async def top_anime_stream(
        page: int = Query(default=1, ge=1),
        limit: int | None = Query(default=None, ge=1, le=JIKAN_MAX_PAGE_SIZE),
    ) -> StreamingResponse:
        repository = get_anime_repository(fastapi_app)
        stream = repository.top_anime(page, limit, follow=True)

        async def _lines() -> AsyncIterator[str]:
            yield json.dumps(ViewState.loading().to_payload()) + "\n"
            try:
                async for anime in stream:
                    yield json.dumps(ViewState.from_result(anime).to_payload()) + "\n"
            finally:
                await stream.aclose()  # type: ignore[attr-defined]

        return StreamingResponse(_lines(), media_type="application/x-ndjson")

    @fastapi_app.get("/anime/search")
    async def search_anime(
        q: str = Query(default=""),
        page: int = Query(default=1, ge=1),
        limit: int | None = Query(default=None, ge=1, le=JIKAN_MAX_PAGE_SIZE),
    ) -> JSONResponse:
        repository = get_anime_repository(fastapi_app)
        emissions = await _collect(repository.search_anime(q, page, limit))
        return JSONResponse(_final_state(emissions).to_payload())

    @fastapi_app.get("/anime/cached")
    async def cached_anime() -> JSONResponse:
        repository = get_anime_repository(fastapi_app)
        anime = await _first(repository.cached_anime())
        return JSONResponse(ViewState.from_result(anime).to_payload())

    @fastapi_app.get("/anime/favorites")
    async def favorite_anime() -> JSONResponse:
        repository = get_anime_repository(fastapi_app)
        anime = await _first(repository.favorite_anime())
        return JSONResponse(ViewState.from_result(anime).to_payload())

    @fastapi_app.get("/anime/{mal_id}")
    async def anime_detail(mal_id: int) -> JSONResponse:
        repository = get_anime_repository(fastapi_app)
        emissions = await _collect(repository.anime_detail(mal_id, follow=False))
        if not emissions:
            return JSONResponse(
                ViewState.error(f"Anime {mal_id} not found").to_payload(),
                status_code=404,
            )
        return JSONResponse(ViewState.success(emissions[-1]).to_payload())

    @fastapi_app.post("/anime/{mal_id}/favorite")
    async def toggle_favorite(mal_id: int) -> dict[str, Any]:
        repository = get_anime_repository(fastapi_app)
        is_favorite = await repository.toggle_favorite(mal_id)
        if is_favorite is None:
            raise HTTPException(status_code=404, detail=f"Anime {mal_id} not found")
        return {"malId": mal_id, "isFavorite": is_favorite}

    @fastapi_app.delete("/cache")
    async def clear_cache() -> dict[str, int]:
        repository = get_anime_repository(fastapi_app)
        removed = await repository.clear_cache()
        return {"removed": removed}


app = create_app()
