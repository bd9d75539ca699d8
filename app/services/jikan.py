"""Client for the Jikan (unofficial MyAnimeList) REST API."""

from __future__ import annotations

import logging
from typing import Any, Literal

import httpx

from ..models import Genre
from ..provider_models import JikanEntry, JikanImages, ProviderPage
from .provider import ProviderClient
from .rate_limiter import TokenBucket

logger = logging.getLogger(__name__)

JikanKind = Literal["anime", "manga"]

# Jikan rejects list requests asking for more than 25 entries.
MAX_PAGE_SIZE = 25


class JikanClient(ProviderClient):
    """Wrapper around Jikan's anime and manga list endpoints."""

    name = "jikan"
    label = "Jikan"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        limiter: TokenBucket | None = None,
    ) -> None:
        super().__init__(http_client, limiter)

    async def search(
        self, kind: JikanKind, query: str, *, page: int = 1, limit: int = 20
    ) -> ProviderPage:
        """Return entries whose titles match ``query``."""

        data = await self._get_json(
            f"/{kind}",
            {"q": query, "page": page, "limit": min(limit, MAX_PAGE_SIZE)},
        )
        return self._to_page(data)

    async def browse(
        self,
        kind: JikanKind,
        *,
        order_by: str,
        sort: str,
        genre: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> ProviderPage:
        """Return entries ordered by ``order_by`` and optionally filtered by genre."""

        data = await self._get_json(
            f"/{kind}",
            {
                "order_by": order_by,
                "sort": sort,
                "genres": genre,
                "page": page,
                "limit": min(limit, MAX_PAGE_SIZE),
            },
        )
        return self._to_page(data)

    async def genres(self, kind: JikanKind) -> list[Genre]:
        """Return the genre list, deduplicated by id and sorted by name."""

        data = await self._get_json(f"/genres/{kind}")
        raw = data.get("data")
        if not isinstance(raw, list):
            raise self._fail("Unexpected Jikan genre list")

        seen: set[str] = set()
        genres: list[Genre] = []
        for entry in raw:
            if not isinstance(entry, dict) or entry.get("mal_id") is None:
                continue
            genre = Genre(id=entry["mal_id"], name=entry.get("name") or entry["mal_id"])
            if genre.id in seen:
                logger.debug("Duplicate Jikan %s genre id %s ignored", kind, genre.id)
                continue
            seen.add(genre.id)
            genres.append(genre)
        genres.sort(key=lambda genre: genre.name.casefold())
        return genres

    @staticmethod
    def image_url(images: JikanImages | None) -> str | None:
        if images is None:
            return None
        for variant in (images.jpg, images.webp):
            if variant is None:
                continue
            url = variant.large_image_url or variant.image_url
            if url:
                return url
        return None

    def _to_page(self, data: dict[str, Any]) -> ProviderPage:
        pagination = data.get("pagination") or {}
        items_meta = pagination.get("items") or {}
        total = items_meta.get("total")
        if total is None:
            total = len(data.get("data") or [])
        return self._build_page(
            JikanEntry,
            data.get("data"),
            total=total,
            last_page=pagination.get("last_visible_page"),
        )
