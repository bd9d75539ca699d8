"""Category routing and per-provider discovery functions."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Awaitable, Callable, Mapping, TypeVar

from .config import Settings
from .errors import InvalidCategoryError, ProviderError
from .models import DiscoveryItem, DiscoveryRequest, DiscoveryResultSet, Genre, MediaCategory
from .normalizers import (
    normalize_google_volume,
    normalize_jikan,
    normalize_rawg,
    normalize_tmdb,
)
from .pagination import (
    CATALOG_TOTAL_CAP,
    SEARCH_TOTAL_CAP,
    TMDB_PAGE_CAP,
    PageWindow,
    dedupe_items,
    fetch_corrected,
)
from .provider_models import GoogleVolume, JikanEntry, ProviderPage, RAWGGame, TMDBTitle
from .services.genres import GenreResolver
from .services.google_books import GoogleBooksClient
from .services.jikan import JikanClient, JikanKind
from .services.rawg import RAWGClient
from .services.tmdb import TMDBClient, TMDBKind
from .utils import clean_subject

logger = logging.getLogger(__name__)

T = TypeVar("T")

TMDB_MOVIE_SORTS: Mapping[str, str] = {
    "popularity": "popularity.desc",
    "newest": "primary_release_date.desc",
    "rating": "vote_average.desc",
    "most_rated": "vote_count.desc",
}
TMDB_SERIES_SORTS: Mapping[str, str] = {
    "popularity": "popularity.desc",
    "newest": "first_air_date.desc",
    "rating": "vote_average.desc",
    "most_rated": "vote_count.desc",
}
JIKAN_SORTS: Mapping[str, tuple[str, str]] = {
    "popularity": ("popularity", "asc"),
    "newest": ("start_date", "desc"),
    "rating": ("score", "desc"),
    "most_rated": ("scored_by", "desc"),
}
RAWG_SORTS: Mapping[str, str] = {
    "popularity": "-added",
    "newest": "-released",
    "rating": "-rating",
    "most_rated": "-metacritic",
}
BOOK_SORTS: Mapping[str, str] = {
    "popularity": "relevance",
    "newest": "newest",
    "rating": "relevance",
    "most_rated": "relevance",
}

BOOKS_SUBJECT_TOTAL_CAP = 1_000
DEFAULT_BOOK_SUBJECT = "fiction"


def translate_sort(table: Mapping[str, T], sort_by: str) -> T:
    """Return the provider token for ``sort_by``, defaulting to popularity."""

    return table.get(sort_by, table["popularity"])


def book_query(request: DiscoveryRequest) -> str:
    """Build the Google Books ``q`` parameter for a request."""

    if request.query:
        return request.query
    if request.genre:
        subject = clean_subject(request.genre)
        if subject:
            return f'subject:"{subject}"'
    return f"subject:{DEFAULT_BOOK_SUBJECT}"


class DiscoveryService:
    """Dispatches discovery requests to the provider serving each category."""

    def __init__(
        self,
        settings: Settings,
        tmdb: TMDBClient,
        jikan: JikanClient,
        rawg: RAWGClient,
        books: GoogleBooksClient,
        genre_resolver: GenreResolver,
    ) -> None:
        self._settings = settings
        self._tmdb = tmdb
        self._jikan = jikan
        self._rawg = rawg
        self._books = books
        self._genres = genre_resolver
        self.duplicates_dropped: Counter[str] = Counter()

        self._handlers: dict[
            MediaCategory, Callable[[DiscoveryRequest], Awaitable[DiscoveryResultSet]]
        ] = {
            "movie": self.discover_movies,
            "series": self.discover_series,
            "anime": self.discover_animes,
            "manga": self.discover_mangas,
            "game": self.discover_games,
            "book": self.discover_books,
        }
        self._genre_sources: dict[MediaCategory, str] = {
            "movie": "tmdb",
            "series": "tmdb",
            "anime": "jikan",
            "manga": "jikan",
            "game": "rawg",
            "book": "google_books",
        }
        genre_resolver.register("tmdb", "movie", lambda: tmdb.genres("movie"))
        genre_resolver.register("tmdb", "series", lambda: tmdb.genres("tv"))
        genre_resolver.register("jikan", "anime", lambda: jikan.genres("anime"))
        genre_resolver.register("jikan", "manga", lambda: jikan.genres("manga"))
        genre_resolver.register("rawg", "game", rawg.genres)
        genre_resolver.register("google_books", "book", books.genres)

    @property
    def placeholder(self) -> str:
        return self._settings.description_placeholder

    async def discover(self, request: DiscoveryRequest) -> DiscoveryResultSet:
        """Serve ``request`` with the discover function for its category."""

        handler = self._handlers.get(request.category)
        if handler is None:
            raise InvalidCategoryError(request.category)
        return await handler(request)

    async def list_genres(self, category: MediaCategory) -> list[Genre]:
        provider = self._genre_source(category)
        return await self._genres.genres(provider, category)

    async def refresh_genres(self, category: MediaCategory) -> list[Genre]:
        provider = self._genre_source(category)
        return await self._genres.refresh(provider, category)

    def _genre_source(self, category: MediaCategory) -> str:
        provider = self._genre_sources.get(category)
        if provider is None:
            raise InvalidCategoryError(category)
        return provider

    # Movies and series -------------------------------------------------

    async def discover_movies(self, request: DiscoveryRequest) -> DiscoveryResultSet:
        return await self._discover_tmdb(request, "movie", TMDB_MOVIE_SORTS)

    async def discover_series(self, request: DiscoveryRequest) -> DiscoveryResultSet:
        return await self._discover_tmdb(request, "tv", TMDB_SERIES_SORTS)

    async def _discover_tmdb(
        self,
        request: DiscoveryRequest,
        kind: TMDBKind,
        sorts: Mapping[str, str],
    ) -> DiscoveryResultSet:
        sort_token = translate_sort(sorts, request.sort_by)
        min_votes = 50 if request.sort_by == "rating" else 10

        async def browse(page: int) -> ProviderPage:
            return await self._tmdb.discover(
                kind,
                sort_by=sort_token,
                genre=request.genre,
                page=page,
                min_votes=min_votes,
            )

        async def search(page: int) -> ProviderPage:
            return await self._tmdb.search(kind, request.query or "", page)

        search_degraded = False
        try:
            if request.is_search:
                try:
                    raw, window = await self._fetch(request, search, page_cap=TMDB_PAGE_CAP)
                except ProviderError as exc:
                    logger.info(
                        "TMDB %s search for %r failed (%s); falling back to discover",
                        kind,
                        request.query,
                        exc,
                    )
                    search_degraded = True
                    raw, window = await self._fetch(request, browse, page_cap=TMDB_PAGE_CAP)
            else:
                raw, window = await self._fetch(request, browse, page_cap=TMDB_PAGE_CAP)

            titles = [item for item in raw.items if isinstance(item, TMDBTitle)]
            genre_lists = await self._genres.resolve_many(
                "tmdb", request.category, [title.genre_ids for title in titles]
            )
        except ProviderError as exc:
            return self._failed(request, exc)

        results = [
            normalize_tmdb(
                title,
                category=request.category,
                genres=genres,
                image_base_url=self._tmdb.image_base_url,
                placeholder=self.placeholder,
            )
            for title, genres in zip(titles, genre_lists)
        ]
        result = self._result_set(request, results, window)
        result.search_degraded = search_degraded
        return result

    # Anime and manga ---------------------------------------------------

    async def discover_animes(self, request: DiscoveryRequest) -> DiscoveryResultSet:
        return await self._discover_jikan(request, "anime")

    async def discover_mangas(self, request: DiscoveryRequest) -> DiscoveryResultSet:
        return await self._discover_jikan(request, "manga")

    async def _discover_jikan(
        self, request: DiscoveryRequest, kind: JikanKind
    ) -> DiscoveryResultSet:
        order_by, sort = translate_sort(JIKAN_SORTS, request.sort_by)

        async def fetch(page: int) -> ProviderPage:
            if request.query is not None:
                return await self._jikan.search(
                    kind, request.query, page=page, limit=request.page_size
                )
            return await self._jikan.browse(
                kind,
                order_by=order_by,
                sort=sort,
                genre=request.genre,
                page=page,
                limit=request.page_size,
            )

        try:
            raw, window = await self._fetch(request, fetch)
        except ProviderError as exc:
            return self._failed(request, exc)

        mapped = [
            normalize_jikan(entry, category=request.category, placeholder=self.placeholder)
            for entry in raw.items
            if isinstance(entry, JikanEntry)
        ]
        results, dropped = dedupe_items(mapped)
        if dropped:
            self.duplicates_dropped[request.category] += dropped
            logger.debug(
                "Dropped %d duplicate %s entries on page %d",
                dropped,
                kind,
                window.current_page,
            )
        return self._result_set(request, results, window)

    # Games -------------------------------------------------------------

    async def discover_games(self, request: DiscoveryRequest) -> DiscoveryResultSet:
        ordering = translate_sort(RAWG_SORTS, request.sort_by)

        async def fetch(page: int) -> ProviderPage:
            if request.query is not None:
                return await self._rawg.search(
                    request.query, page=page, page_size=request.page_size
                )
            return await self._rawg.browse(
                ordering=ordering,
                genre=request.genre,
                page=page,
                page_size=request.page_size,
            )

        try:
            raw, window = await self._fetch(request, fetch)
        except ProviderError as exc:
            return self._failed(request, exc)

        results = [
            normalize_rawg(game, placeholder=self.placeholder)
            for game in raw.items
            if isinstance(game, RAWGGame)
        ]
        return self._result_set(request, results, window)

    # Books -------------------------------------------------------------

    async def discover_books(self, request: DiscoveryRequest) -> DiscoveryResultSet:
        query = book_query(request)
        order_by = translate_sort(BOOK_SORTS, request.sort_by)
        total_cap = SEARCH_TOTAL_CAP if request.is_search else BOOKS_SUBJECT_TOTAL_CAP

        async def fetch(page: int) -> ProviderPage:
            return await self._books.volumes(
                query, order_by=order_by, page=page, page_size=request.page_size
            )

        try:
            raw, window = await self._fetch(request, fetch, total_cap=total_cap)
        except ProviderError as exc:
            return self._failed(request, exc)

        results = [
            normalize_google_volume(volume, placeholder=self.placeholder)
            for volume in raw.items
            if isinstance(volume, GoogleVolume)
        ]
        return self._result_set(request, results, window)

    # Shared ------------------------------------------------------------

    async def _fetch(
        self,
        request: DiscoveryRequest,
        fetch: Callable[[int], Awaitable[ProviderPage]],
        *,
        total_cap: int = CATALOG_TOTAL_CAP,
        page_cap: int | None = None,
    ) -> tuple[ProviderPage, PageWindow]:
        return await fetch_corrected(
            fetch,
            request.page,
            request.page_size,
            total_cap=total_cap,
            page_cap=page_cap,
        )

    @staticmethod
    def _result_set(
        request: DiscoveryRequest,
        results: list[DiscoveryItem],
        window: PageWindow,
    ) -> DiscoveryResultSet:
        return DiscoveryResultSet(
            results=results[: request.page_size],
            total=window.total,
            total_pages=window.total_pages,
            current_page=window.current_page,
            items_per_page=request.page_size,
        )

    @staticmethod
    def _failed(request: DiscoveryRequest, exc: ProviderError) -> DiscoveryResultSet:
        logger.warning(
            "%s discovery failed via %s: %s", request.category, exc.provider, exc
        )
        return DiscoveryResultSet.failed(request, str(exc))
