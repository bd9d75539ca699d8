"""Client for the RAWG video game database."""

from __future__ import annotations

from typing import Any

import httpx

from ..config import Settings
from ..errors import ProviderError
from ..models import Genre
from ..provider_models import ProviderPage, RAWGGame
from .provider import ProviderClient
from .rate_limiter import TokenBucket

DEFAULT_IMAGE_CROP = "crop/600/400"


class RAWGClient(ProviderClient):
    name = "rawg"
    label = "RAWG"

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        limiter: TokenBucket | None = None,
    ):
        super().__init__(http_client, limiter)
        self._settings = settings

    def _ensure_configured(self) -> None:
        if not self._settings.rawg_api_key:
            raise self._fail("RAWG API key is not configured")

    def _default_params(self) -> dict[str, Any]:
        return {"key": self._settings.rawg_api_key}

    async def search(
        self, query: str, *, page: int = 1, page_size: int = 20
    ) -> ProviderPage:
        return await self._games(
            {"search": query, "page": page, "page_size": page_size}
        )

    async def browse(
        self,
        *,
        ordering: str,
        genre: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> ProviderPage:
        return await self._games(
            {
                "ordering": ordering,
                "genres": genre,
                "page": page,
                "page_size": page_size,
            }
        )

    async def genres(self) -> list[Genre]:
        data = await self._get_json("/genres", {"page_size": 40})
        raw = data.get("results")
        if not isinstance(raw, list):
            raise self._fail("Unexpected RAWG genre list")
        return [
            Genre(id=entry["id"], name=entry.get("name") or entry["id"])
            for entry in raw
            if isinstance(entry, dict) and entry.get("id") is not None
        ]

    @staticmethod
    def image_url(path: str | None, size: str = DEFAULT_IMAGE_CROP) -> str | None:
        """Return the cropped variant of a RAWG media URL."""

        if not path:
            return None
        return path.replace("/media/games/", f"/media/{size}/games/")

    async def _games(self, params: dict[str, Any]) -> ProviderPage:
        try:
            data = await self._get_json("/games", params)
        except ProviderError as exc:
            # RAWG answers 404 "Invalid page" instead of an empty page.
            if exc.status_code == 404 and params.get("page", 1) > 1:
                return ProviderPage(out_of_range=True)
            raise
        return self._to_page(data)

    def _to_page(self, data: dict[str, Any]) -> ProviderPage:
        return self._build_page(RAWGGame, data.get("results"), total=data.get("count"))
