"""Typed views over the raw payloads returned by each catalog provider.

Every model ignores unknown fields and defaults everything optional, so a
provider dropping a field never breaks a page. Lists that providers send as
``null`` are normalised to empty lists.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator


class _RawModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


def _none_as_list(value: Any) -> Any:
    return [] if value is None else value


_EMPTY_IF_NULL = BeforeValidator(_none_as_list)


class TMDBTitle(_RawModel):
    """Movie or TV entry from TMDB discover/search listings."""

    provider: Literal["tmdb"] = "tmdb"
    id: int
    title: str | None = None
    name: str | None = None
    overview: str | None = None
    poster_path: str | None = None
    release_date: str | None = None
    first_air_date: str | None = None
    vote_average: float | None = None
    vote_count: int | None = None
    genre_ids: Annotated[list[int], _EMPTY_IF_NULL] = Field(default_factory=list)
    popularity: float | None = None

    @property
    def display_title(self) -> str | None:
        return self.title or self.name

    @property
    def date(self) -> str | None:
        return self.release_date or self.first_air_date


class JikanNamed(_RawModel):
    mal_id: int | None = None
    name: str | None = None


class JikanImageSet(_RawModel):
    image_url: str | None = None
    large_image_url: str | None = None


class JikanImages(_RawModel):
    jpg: JikanImageSet | None = None
    webp: JikanImageSet | None = None


class JikanDateRange(_RawModel):
    start: str | None = Field(default=None, alias="from")
    end: str | None = Field(default=None, alias="to")


class JikanEntry(_RawModel):
    """Anime or manga entry from Jikan list endpoints."""

    provider: Literal["jikan"] = "jikan"
    mal_id: int
    title: str | None = None
    title_english: str | None = None
    synopsis: str | None = None
    images: JikanImages | None = None
    aired: JikanDateRange | None = None
    published: JikanDateRange | None = None
    year: int | None = None
    score: float | None = None
    scored_by: int | None = None
    episodes: int | None = None
    volumes: int | None = None
    chapters: int | None = None
    members: int | None = None
    popularity: int | None = None
    rank: int | None = None
    status: str | None = None
    type: str | None = None
    genres: Annotated[list[JikanNamed], _EMPTY_IF_NULL] = Field(default_factory=list)
    authors: Annotated[list[JikanNamed], _EMPTY_IF_NULL] = Field(default_factory=list)

    @property
    def start_date(self) -> str | None:
        window = self.aired or self.published
        return window.start if window else None


class RAWGNamed(_RawModel):
    id: int | None = None
    name: str | None = None
    slug: str | None = None


class RAWGPlatformEntry(_RawModel):
    platform: RAWGNamed | None = None


class RAWGGame(_RawModel):
    """Game entry from RAWG listings."""

    provider: Literal["rawg"] = "rawg"
    id: int
    name: str | None = None
    description_raw: str | None = None
    description: str | None = None
    background_image: str | None = None
    released: str | None = None
    rating: float | None = None
    ratings_count: int | None = None
    metacritic: int | None = None
    playtime: int | None = None
    platforms: Annotated[list[RAWGPlatformEntry], _EMPTY_IF_NULL] = Field(
        default_factory=list
    )
    genres: Annotated[list[RAWGNamed], _EMPTY_IF_NULL] = Field(default_factory=list)


class GoogleImageLinks(_RawModel):
    small_thumbnail: str | None = Field(default=None, alias="smallThumbnail")
    thumbnail: str | None = None
    small: str | None = None
    medium: str | None = None
    large: str | None = None


class GoogleVolumeInfo(_RawModel):
    title: str | None = None
    description: str | None = None
    image_links: GoogleImageLinks | None = Field(default=None, alias="imageLinks")
    published_date: str | None = Field(default=None, alias="publishedDate")
    average_rating: float | None = Field(default=None, alias="averageRating")
    ratings_count: int | None = Field(default=None, alias="ratingsCount")
    authors: Annotated[list[str], _EMPTY_IF_NULL] = Field(default_factory=list)
    page_count: int | None = Field(default=None, alias="pageCount")
    publisher: str | None = None
    categories: Annotated[list[str], _EMPTY_IF_NULL] = Field(default_factory=list)


class GoogleVolume(_RawModel):
    """Volume entry from the Google Books ``/volumes`` endpoint."""

    provider: Literal["google_books"] = "google_books"
    id: str
    volume_info: GoogleVolumeInfo = Field(
        default_factory=GoogleVolumeInfo, alias="volumeInfo"
    )

    @field_validator("volume_info", mode="before")
    @classmethod
    def _missing_info(cls, value: Any) -> Any:
        return {} if value is None else value


RawProviderItem = Annotated[
    Union[TMDBTitle, JikanEntry, RAWGGame, GoogleVolume],
    Field(discriminator="provider"),
]


class ProviderPage(_RawModel):
    """One page of raw results plus the provider's own paging claims."""

    items: list[RawProviderItem] = Field(default_factory=list)
    total: int = Field(default=0, ge=0)
    last_page: int | None = None
    out_of_range: bool = False
