"""Tests for category routing and per-provider discovery behaviour."""

from __future__ import annotations

from typing import Any

import pytest

from app.config import Settings
from app.discovery import RAWG_SORTS, DiscoveryService, book_query, translate_sort
from app.errors import InvalidCategoryError, ProviderError
from app.models import DiscoveryRequest, Genre
from app.provider_models import GoogleVolume, JikanEntry, ProviderPage, RAWGGame, TMDBTitle
from app.services.genres import GenreResolver


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO tests to run on asyncio without requiring trio."""

    return "asyncio"


class StubTMDB:
    image_base_url = "https://image.tmdb.org/t/p"

    def __init__(
        self,
        *,
        search_error: ProviderError | None = None,
        discover_error: ProviderError | None = None,
        genre_error: ProviderError | None = None,
        titles: list[TMDBTitle] | None = None,
    ) -> None:
        self.search_error = search_error
        self.discover_error = discover_error
        self.genre_error = genre_error
        self.titles = titles or [
            TMDBTitle(id=949, title="Heat", genre_ids=[28, 80]),
            TMDBTitle(id=807, title="Se7en", genre_ids=[80]),
        ]
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.genre_calls = 0

    async def search(self, kind: str, query: str, page: int = 1) -> ProviderPage:
        self.calls.append(("search", {"kind": kind, "query": query, "page": page}))
        if self.search_error is not None:
            raise self.search_error
        return self._page()

    async def discover(self, kind: str, **params: Any) -> ProviderPage:
        self.calls.append(("discover", {"kind": kind, **params}))
        if self.discover_error is not None:
            raise self.discover_error
        return self._page()

    async def genres(self, kind: str) -> list[Genre]:
        self.genre_calls += 1
        if self.genre_error is not None:
            raise self.genre_error
        return [Genre(id=28, name="Action"), Genre(id=80, name="Crime")]

    def _page(self) -> ProviderPage:
        return ProviderPage(items=self.titles, total=len(self.titles), last_page=1)


class StubJikan:
    def __init__(self, entries: list[JikanEntry] | None = None) -> None:
        self.entries = entries or []
        self.calls: list[dict[str, Any]] = []

    async def search(self, kind: str, query: str, **params: Any) -> ProviderPage:
        self.calls.append({"kind": kind, "q": query, **params})
        return ProviderPage(items=self.entries, total=len(self.entries))

    async def browse(self, kind: str, **params: Any) -> ProviderPage:
        self.calls.append({"kind": kind, **params})
        return ProviderPage(items=self.entries, total=len(self.entries))

    async def genres(self, kind: str) -> list[Genre]:
        return [Genre(id=1, name="Action")]


class StubRAWG:
    def __init__(
        self, *, error: ProviderError | None = None, total: int = 1, last_valid_page: int | None = None
    ) -> None:
        self.error = error
        self.total = total
        self.last_valid_page = last_valid_page
        self.calls: list[dict[str, Any]] = []

    async def search(self, query: str, **params: Any) -> ProviderPage:
        self.calls.append({"search": query, **params})
        return self._page(params.get("page", 1))

    async def browse(self, **params: Any) -> ProviderPage:
        self.calls.append(params)
        return self._page(params.get("page", 1))

    def _page(self, page: int) -> ProviderPage:
        if self.error is not None:
            raise self.error
        if self.last_valid_page is not None and page > self.last_valid_page:
            return ProviderPage(out_of_range=True)
        return ProviderPage(items=[RAWGGame(id=1, name="Doom")], total=self.total)

    async def genres(self) -> list[Genre]:
        return [Genre(id=4, name="Action")]


class StubBooks:
    def __init__(self, total: int = 5_000) -> None:
        self.total = total
        self.calls: list[dict[str, Any]] = []

    async def volumes(self, query: str, **params: Any) -> ProviderPage:
        self.calls.append({"q": query, **params})
        return ProviderPage(items=[GoogleVolume(id="v1")], total=self.total)

    async def genres(self) -> list[Genre]:
        return [Genre(id="fiction", name="Fiction")]


def build_service(**stubs: Any) -> DiscoveryService:
    return DiscoveryService(
        Settings(_env_file=None),  # type: ignore[call-arg]
        stubs.get("tmdb", StubTMDB()),
        stubs.get("jikan", StubJikan()),
        stubs.get("rawg", StubRAWG()),
        stubs.get("books", StubBooks()),
        GenreResolver(3_600),
    )


def test_translate_sort_falls_back_to_popularity() -> None:
    assert translate_sort(RAWG_SORTS, "most_rated") == "-metacritic"
    assert translate_sort(RAWG_SORTS, "alphabetical") == "-added"


def test_book_query_prefers_search_then_genre() -> None:
    assert book_query(DiscoveryRequest.from_route("books", query="dune")) == "dune"
    assert (
        book_query(DiscoveryRequest.from_route("books", genre="science-fiction"))
        == 'subject:"science fiction"'
    )
    assert book_query(DiscoveryRequest.from_route("books")) == "subject:fiction"


@pytest.mark.anyio("asyncio")
async def test_movies_resolve_genre_names_with_one_lookup() -> None:
    tmdb = StubTMDB()
    service = build_service(tmdb=tmdb)

    result = await service.discover(DiscoveryRequest.from_route("movies"))

    assert [item.title for item in result.results] == ["Heat", "Se7en"]
    assert [genre.name for genre in result.results[0].genres] == ["Action", "Crime"]
    assert tmdb.genre_calls == 1
    assert tmdb.calls[0][1]["sort_by"] == "popularity.desc"
    assert tmdb.calls[0][1]["min_votes"] == 10


@pytest.mark.anyio("asyncio")
async def test_series_newest_sort_uses_air_date() -> None:
    tmdb = StubTMDB()
    service = build_service(tmdb=tmdb)

    await service.discover(DiscoveryRequest.from_route("series", sort_by="newest"))

    assert tmdb.calls[0][1]["kind"] == "tv"
    assert tmdb.calls[0][1]["sort_by"] == "first_air_date.desc"


@pytest.mark.anyio("asyncio")
async def test_failed_tmdb_search_falls_back_to_discover() -> None:
    tmdb = StubTMDB(search_error=ProviderError("tmdb", "TMDB API error: 500"))
    service = build_service(tmdb=tmdb)

    result = await service.discover(DiscoveryRequest.from_route("movies", query="heat"))
    payload = result.to_payload()

    assert [call[0] for call in tmdb.calls] == ["search", "discover"]
    assert payload["searchDegraded"] is True
    assert "error" not in payload
    assert payload["total"] == 2


@pytest.mark.anyio("asyncio")
async def test_failed_search_and_fallback_return_degraded_envelope() -> None:
    tmdb = StubTMDB(
        search_error=ProviderError("tmdb", "TMDB API error: 500"),
        discover_error=ProviderError("tmdb", "TMDB API error: 503 Service Unavailable"),
    )
    service = build_service(tmdb=tmdb)

    result = await service.discover(DiscoveryRequest.from_route("series", query="lost"))
    payload = result.to_payload()

    assert [call[0] for call in tmdb.calls] == ["search", "discover"]
    assert payload["results"] == []
    assert payload["total"] == 0
    assert payload["searchDegraded"] is False
    assert payload["error"] == "TMDB API error: 503 Service Unavailable"


@pytest.mark.anyio("asyncio")
async def test_failing_genre_load_is_attempted_once_per_page() -> None:
    tmdb = StubTMDB(
        genre_error=ProviderError("tmdb", "TMDB API error: 503 Service Unavailable"),
        titles=[
            TMDBTitle(id=index, title=f"Title {index}", genre_ids=[28])
            for index in range(1, 21)
        ],
    )
    service = build_service(tmdb=tmdb)

    result = await service.discover(DiscoveryRequest.from_route("movies"))

    assert tmdb.genre_calls == 1
    assert result.results == []
    assert result.error == "TMDB API error: 503 Service Unavailable"


@pytest.mark.anyio("asyncio")
async def test_rejected_deep_game_page_serves_first_page() -> None:
    rawg = StubRAWG(total=45, last_valid_page=3)
    service = build_service(rawg=rawg)

    result = await service.discover(DiscoveryRequest.from_route("games", page=99))

    assert [call["page"] for call in rawg.calls] == [99, 1]
    assert result.current_page == 1
    assert result.total_pages == 3
    assert result.error is None


@pytest.mark.anyio("asyncio")
async def test_provider_failure_returns_degraded_envelope() -> None:
    rawg = StubRAWG(error=ProviderError("rawg", "RAWG API error: 500 Internal Server Error"))
    service = build_service(rawg=rawg)

    result = await service.discover(DiscoveryRequest.from_route("games", page=3))

    assert result.to_payload() == {
        "results": [],
        "total": 0,
        "totalPages": 0,
        "currentPage": 3,
        "itemsPerPage": 20,
        "searchDegraded": False,
        "error": "RAWG API error: 500 Internal Server Error",
    }


@pytest.mark.anyio("asyncio")
async def test_unknown_sort_uses_popularity_ordering() -> None:
    rawg = StubRAWG()
    service = build_service(rawg=rawg)

    await service.discover(
        DiscoveryRequest.from_route("games", sort_by="alphabetical", genre="action")
    )

    assert rawg.calls[0]["ordering"] == "-added"
    assert rawg.calls[0]["genre"] == "action"


@pytest.mark.anyio("asyncio")
async def test_book_search_totals_are_capped() -> None:
    books = StubBooks(total=5_000)
    service = build_service(books=books)

    result = await service.discover(DiscoveryRequest.from_route("books", query="dune"))

    assert result.total == 20
    assert result.total_pages == 1
    assert books.calls[0]["q"] == "dune"


@pytest.mark.anyio("asyncio")
async def test_book_search_beyond_capped_total_refetches_first_page() -> None:
    books = StubBooks(total=5_000)
    service = build_service(books=books)

    result = await service.discover(
        DiscoveryRequest.from_route("books", query="dune", page=4)
    )

    assert [call["page"] for call in books.calls] == [4, 1]
    assert result.current_page == 1


@pytest.mark.anyio("asyncio")
async def test_book_subject_browsing_uses_genre_and_newest_order() -> None:
    books = StubBooks(total=5_000)
    service = build_service(books=books)

    result = await service.discover(
        DiscoveryRequest.from_route("books", genre="fantasy", sort_by="newest")
    )

    assert books.calls[0]["q"] == 'subject:"fantasy"'
    assert books.calls[0]["order_by"] == "newest"
    assert result.total == 1_000
    assert result.total_pages == 50


@pytest.mark.anyio("asyncio")
async def test_anime_duplicates_are_dropped_and_counted() -> None:
    entries = [
        JikanEntry(mal_id=1, title="Cowboy Bebop"),
        JikanEntry(mal_id=5, title="Cowboy Bebop: The Movie"),
        JikanEntry(mal_id=1, title="Cowboy Bebop"),
    ]
    jikan = StubJikan(entries)
    service = build_service(jikan=jikan)

    result = await service.discover(
        DiscoveryRequest.from_route("animes", sort_by="rating")
    )

    assert [item.id for item in result.results] == ["1", "5"]
    assert service.duplicates_dropped["anime"] == 1
    assert jikan.calls[0]["order_by"] == "score"
    assert jikan.calls[0]["sort"] == "desc"


@pytest.mark.anyio("asyncio")
async def test_manga_search_passes_query() -> None:
    jikan = StubJikan([JikanEntry(mal_id=2, title="Berserk")])
    service = build_service(jikan=jikan)

    result = await service.discover(DiscoveryRequest.from_route("mangas", query="berserk"))

    assert jikan.calls[0] == {"kind": "manga", "q": "berserk", "page": 1, "limit": 20}
    assert result.results[0].title == "Berserk"


@pytest.mark.anyio("asyncio")
async def test_unroutable_category_raises() -> None:
    service = build_service()
    request = DiscoveryRequest.model_construct(
        category="podcast", sort_by="popularity", page=1, page_size=20
    )

    with pytest.raises(InvalidCategoryError):
        await service.discover(request)


@pytest.mark.anyio("asyncio")
async def test_genre_lists_are_cached_per_category() -> None:
    tmdb = StubTMDB()
    service = build_service(tmdb=tmdb)

    first = await service.list_genres("movie")
    await service.list_genres("movie")
    await service.refresh_genres("movie")

    assert [genre.name for genre in first] == ["Action", "Crime"]
    assert tmdb.genre_calls == 2
