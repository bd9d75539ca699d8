"""Pydantic models describing discovery requests and payloads."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .errors import InvalidCategoryError

MediaCategory = Literal["movie", "series", "anime", "manga", "game", "book"]
SortKey = Literal["popularity", "newest", "rating", "most_rated"]

DEFAULT_SORT: SortKey = "popularity"
DEFAULT_PAGE_SIZE = 20

CATEGORY_SLUGS: dict[str, MediaCategory] = {
    "movies": "movie",
    "movie": "movie",
    "series": "series",
    "animes": "anime",
    "anime": "anime",
    "mangas": "manga",
    "manga": "manga",
    "games": "game",
    "game": "game",
    "books": "book",
    "book": "book",
}

PAGE_SIZES: dict[MediaCategory, int] = {
    "movie": 20,
    "series": 20,
    "anime": 20,
    "manga": 20,
    "game": 20,
    "book": 20,
}


def parse_category(slug: str | None) -> MediaCategory:
    """Return the media category addressed by a route slug."""

    key = (slug or "").strip().lower()
    category = CATEGORY_SLUGS.get(key)
    if category is None:
        raise InvalidCategoryError(slug)
    return category


def _coerce_page(value: object) -> int:
    try:
        page = int(str(value).strip())
    except (TypeError, ValueError):
        return 1
    return page if page >= 1 else 1


class DiscoveryRequest(BaseModel):
    """Inputs for a single discovery call."""

    category: MediaCategory
    genre: str | None = None
    sort_by: str = DEFAULT_SORT
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)
    query: str | None = None

    @field_validator("genre", "query", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("sort_by", mode="before")
    @classmethod
    def _normalise_sort(cls, value: object) -> str:
        text = str(value or "").strip().lower()
        return text or DEFAULT_SORT

    @field_validator("page", mode="before")
    @classmethod
    def _normalise_page(cls, value: object) -> int:
        return _coerce_page(value)

    @classmethod
    def from_route(
        cls,
        slug: str,
        *,
        genre: str | None = None,
        sort_by: str | None = None,
        page: object = 1,
        query: str | None = None,
    ) -> "DiscoveryRequest":
        """Build a request from raw route parameters."""

        category = parse_category(slug)
        return cls(
            category=category,
            genre=genre,
            sort_by=sort_by or DEFAULT_SORT,
            page=page,
            page_size=PAGE_SIZES[category],
            query=query,
        )

    @property
    def is_search(self) -> bool:
        return self.query is not None


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Genre(_CamelModel):
    """A provider genre in its uniform shape."""

    id: str
    name: str

    @field_validator("id", "name", mode="before")
    @classmethod
    def _stringify(cls, value: object) -> str:
        return "" if value is None else str(value)


_CORE_FIELDS = frozenset(
    {
        "id",
        "title",
        "description",
        "imageUrl",
        "releaseYear",
        "releaseDate",
        "rating",
        "ratingsCount",
        "genres",
    }
)


class DiscoveryItem(_CamelModel):
    """Canonical representation of one catalog entry."""

    id: str
    title: str
    description: str
    image_url: str | None = None
    release_year: int | None = None
    release_date: str | None = None
    rating: float | None = None
    ratings_count: int | None = None
    genres: list[Genre] = Field(default_factory=list)

    episodes: int | None = None
    volumes: int | None = None
    chapters: int | None = None
    authors: list[str] | None = None
    platforms: list[str] | None = None
    metacritic: int | None = None
    playtime: int | None = None
    members: int | None = None
    popularity: float | None = None
    rank: int | None = None
    status: str | None = None
    media_type: str | None = None
    publisher: str | None = None
    page_count: int | None = None

    def to_payload(self) -> dict[str, Any]:
        """Return the wire payload, omitting unset category fields."""

        payload = self.model_dump(mode="json", by_alias=True)
        return {
            key: value
            for key, value in payload.items()
            if key in _CORE_FIELDS or value is not None
        }


class DiscoveryResultSet(_CamelModel):
    """Caller-visible page of discovery results."""

    results: list[DiscoveryItem] = Field(default_factory=list)
    total: int = 0
    total_pages: int = 0
    current_page: int = 1
    items_per_page: int = DEFAULT_PAGE_SIZE
    error: str | None = None
    search_degraded: bool = False

    @classmethod
    def failed(cls, request: DiscoveryRequest, message: str) -> "DiscoveryResultSet":
        """Return the degraded envelope served when a provider fails."""

        return cls(
            results=[],
            total=0,
            total_pages=0,
            current_page=request.page,
            items_per_page=request.page_size,
            error=message or "Provider request failed",
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "results": [item.to_payload() for item in self.results],
            "total": self.total,
            "totalPages": self.total_pages,
            "currentPage": self.current_page,
            "itemsPerPage": self.items_per_page,
            "searchDegraded": self.search_degraded,
        }
        if self.error:
            payload["error"] = self.error
        return payload
