"""Client for The Movie Database (TMDB) discover, search and genre endpoints."""

from __future__ import annotations

import logging
from typing import Any, Literal

import httpx

from ..config import Settings
from ..models import Genre
from ..provider_models import ProviderPage, TMDBTitle
from .provider import ProviderClient
from .rate_limiter import TokenBucket

logger = logging.getLogger(__name__)

TMDBKind = Literal["movie", "tv"]

POSTER_SIZE = "w500"


class TMDBClient(ProviderClient):
    """Client responsible for browsing and searching TMDB listings."""

    name = "tmdb"
    label = "TMDB"

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        limiter: TokenBucket | None = None,
    ):
        super().__init__(http_client, limiter)
        self._settings = settings
        self._image_base_url = str(settings.tmdb_image_url).rstrip("/")

    @property
    def image_base_url(self) -> str:
        return self._image_base_url

    def _ensure_configured(self) -> None:
        if not self._settings.tmdb_api_key:
            raise self._fail("TMDB API key is not configured")

    def _default_params(self) -> dict[str, Any]:
        return {
            "api_key": self._settings.tmdb_api_key,
            "language": self._settings.content_language,
        }

    async def search(self, kind: TMDBKind, query: str, page: int = 1) -> ProviderPage:
        """Return one page of title matches for ``query``."""

        data = await self._get_json(
            f"/search/{kind}",
            {"query": query, "page": page, "include_adult": "false"},
        )
        return self._to_page(data)

    async def discover(
        self,
        kind: TMDBKind,
        *,
        sort_by: str,
        genre: str | None = None,
        page: int = 1,
        min_votes: int = 10,
    ) -> ProviderPage:
        """Return one page of the filtered catalog."""

        params: dict[str, Any] = {
            "sort_by": sort_by,
            "page": page,
            "vote_count.gte": min_votes,
            "include_adult": "false",
        }
        if genre:
            params["with_genres"] = genre
        data = await self._get_json(f"/discover/{kind}", params)
        return self._to_page(data)

    async def genres(self, kind: TMDBKind) -> list[Genre]:
        """Return the full genre taxonomy for movies or TV."""

        data = await self._get_json(f"/genre/{kind}/list")
        raw = data.get("genres") or []
        if not isinstance(raw, list):
            raise self._fail("Unexpected TMDB genre list")
        return [
            Genre(id=entry["id"], name=entry.get("name") or str(entry["id"]))
            for entry in raw
            if isinstance(entry, dict) and entry.get("id") is not None
        ]

    def _to_page(self, data: dict[str, Any]) -> ProviderPage:
        return self._build_page(
            TMDBTitle,
            data.get("results"),
            total=data.get("total_results"),
            last_page=data.get("total_pages"),
        )


def build_image_url(path: str | None, base_url: str, size: str = POSTER_SIZE) -> str | None:
    """Return an absolute TMDB image URL for a poster or backdrop path."""

    if not path:
        return None
    if path.startswith("http"):
        return path
    return f"{base_url.rstrip('/')}/{size}{path}"
