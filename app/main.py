"""Entry point for the FastAPI-powered discovery service."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager

import httpx
from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, settings
from .discovery import DiscoveryService
from .errors import InvalidCategoryError, ProviderError
from .models import DiscoveryRequest, parse_category
from .services.genres import GenreResolver
from .services.google_books import GoogleBooksClient
from .services.jikan import JikanClient
from .services.rate_limiter import TokenBucket
from .services.rawg import RAWGClient
from .services.tmdb import TMDBClient

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app: FastAPI


async def build_discovery_service(
    exit_stack: AsyncExitStack, config: Settings
) -> DiscoveryService:
    """Open one HTTP client per provider and wire the discovery service."""

    timeout = httpx.Timeout(config.provider_timeout_seconds, connect=5.0)

    async def _client(base_url: object) -> httpx.AsyncClient:
        return await exit_stack.enter_async_context(
            httpx.AsyncClient(base_url=str(base_url), timeout=timeout)
        )

    tmdb = TMDBClient(
        config,
        await _client(config.tmdb_api_url),
        TokenBucket(config.tmdb_rate_limit, name="tmdb"),
    )
    jikan = JikanClient(
        await _client(config.jikan_api_url),
        TokenBucket(config.jikan_rate_limit, name="jikan"),
    )
    rawg = RAWGClient(
        config,
        await _client(config.rawg_api_url),
        TokenBucket(config.rawg_rate_limit, name="rawg"),
    )
    books = GoogleBooksClient(
        config,
        await _client(config.google_books_api_url),
        TokenBucket(config.google_books_rate_limit, name="google_books"),
    )
    resolver = GenreResolver(config.genre_cache_ttl_seconds)
    return DiscoveryService(config, tmdb, jikan, rawg, books, resolver)


@asynccontextmanager
async def lifespan(_: FastAPI):
    exit_stack = AsyncExitStack()
    app.state.discovery_service = await build_discovery_service(exit_stack, settings)
    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Unified discovery across movie, series, anime, manga, game and book catalogs",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_discovery_service(app: FastAPI) -> DiscoveryService:
    service = getattr(app.state, "discovery_service", None)
    if not isinstance(service, DiscoveryService):
        raise RuntimeError("Discovery service not initialised")
    return service


def _invalid_category() -> JSONResponse:
    return JSONResponse({"error": "Invalid media type"}, status_code=400)


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/api/discover/{category}")
    async def discover(
        category: str,
        genre: str | None = None,
        sort_by: str | None = Query(default=None, alias="sortBy"),
        page: str | None = None,
        query: str | None = None,
    ) -> JSONResponse:
        try:
            request = DiscoveryRequest.from_route(
                category,
                genre=genre,
                sort_by=sort_by,
                page=page if page is not None else 1,
                query=query,
            )
        except InvalidCategoryError:
            return _invalid_category()

        service = get_discovery_service(fastapi_app)
        try:
            result = await service.discover(request)
        except InvalidCategoryError:
            return _invalid_category()
        except Exception:
            logger.exception("Discovery failed for %s", category)
            return JSONResponse(
                {"error": "Failed to fetch discovery data"}, status_code=500
            )
        return JSONResponse(result.to_payload())

    @fastapi_app.get("/api/genres/{category}")
    async def list_genres(category: str) -> JSONResponse:
        return await _genres_response(category, refresh=False)

    @fastapi_app.post("/api/genres/{category}/refresh")
    async def refresh_genres(category: str) -> JSONResponse:
        return await _genres_response(category, refresh=True)

    async def _genres_response(category: str, *, refresh: bool) -> JSONResponse:
        try:
            media_category = parse_category(category)
        except InvalidCategoryError:
            return _invalid_category()

        service = get_discovery_service(fastapi_app)
        try:
            if refresh:
                genres = await service.refresh_genres(media_category)
            else:
                genres = await service.list_genres(media_category)
        except ProviderError as exc:
            logger.warning("Genre lookup for %s failed: %s", media_category, exc)
            return JSONResponse({"error": "Failed to fetch genres"}, status_code=502)
        return JSONResponse([genre.model_dump() for genre in genres])


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
