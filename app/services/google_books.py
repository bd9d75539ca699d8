"""Client for the Google Books volumes API."""

from __future__ import annotations

from typing import Any

import httpx

from ..config import Settings
from ..models import Genre
from ..provider_models import GoogleImageLinks, GoogleVolume, ProviderPage
from .provider import ProviderClient
from .rate_limiter import TokenBucket

# Google Books caps maxResults at 40 per request.
MAX_PAGE_SIZE = 40

# The API has no genre endpoint; these subjects drive the genre picker.
BOOK_SUBJECTS: tuple[Genre, ...] = (
    Genre(id="fiction", name="Fiction"),
    Genre(id="fantasy", name="Fantasy"),
    Genre(id="romance", name="Romance"),
    Genre(id="mystery", name="Mystery"),
    Genre(id="science", name="Science"),
    Genre(id="history", name="History"),
    Genre(id="biography", name="Biography"),
    Genre(id="business", name="Business"),
    Genre(id="young-adult", name="Young Adult"),
    Genre(id="juvenile-fiction", name="Juvenile Fiction"),
    Genre(id="thriller", name="Thriller"),
    Genre(id="horror", name="Horror"),
    Genre(id="science-fiction", name="Science Fiction"),
    Genre(id="self-help", name="Self-Help"),
)


class GoogleBooksClient(ProviderClient):
    """Thin wrapper over ``/volumes`` search."""

    name = "google_books"
    label = "Google Books"

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        limiter: TokenBucket | None = None,
    ):
        super().__init__(http_client, limiter)
        self._settings = settings

    def _default_params(self) -> dict[str, Any]:
        return {
            "key": self._settings.google_books_api_key,
            "langRestrict": self._settings.books_language,
            "printType": "books",
        }

    async def volumes(
        self,
        query: str,
        *,
        order_by: str = "relevance",
        page: int = 1,
        page_size: int = 20,
    ) -> ProviderPage:
        """Run a volumes query and return the requested page."""

        size = max(1, min(page_size, MAX_PAGE_SIZE))
        data = await self._get_json(
            "/volumes",
            {
                "q": query,
                "orderBy": order_by,
                "maxResults": size,
                "startIndex": (max(page, 1) - 1) * size,
            },
        )
        return self._build_page(
            GoogleVolume, data.get("items"), total=data.get("totalItems")
        )

    async def genres(self) -> list[Genre]:
        return list(BOOK_SUBJECTS)

    @staticmethod
    def image_url(links: GoogleImageLinks | None) -> str | None:
        """Return the first available cover, upgraded to https."""

        if links is None:
            return None
        for candidate in (
            links.thumbnail,
            links.small,
            links.medium,
            links.large,
            links.small_thumbnail,
        ):
            if candidate:
                return candidate.replace("http://", "https://", 1)
        return None
