"""Mapping functions from raw provider items to :class:`DiscoveryItem`."""

from __future__ import annotations

import re
from typing import Any, Sequence

from .models import DiscoveryItem, Genre, MediaCategory
from .provider_models import GoogleVolume, JikanEntry, RAWGGame, TMDBTitle
from .services.google_books import GoogleBooksClient
from .services.jikan import JikanClient
from .services.rawg import RAWGClient
from .services.tmdb import build_image_url
from .utils import slugify

YEAR_RE = re.compile(r"(?<!\d)(1[89]\d{2}|20\d{2}|2100)(?!\d)")

UNTITLED = "Untitled"
UNKNOWN_AUTHOR = "Unknown author"


def parse_year(date_value: Any, explicit_year: Any = None) -> int | None:
    """Return a release year, preferring an explicit year over a date string."""

    if isinstance(explicit_year, int) and 1800 <= explicit_year <= 2100:
        return explicit_year
    if not date_value:
        return None
    match = YEAR_RE.search(str(date_value))
    if not match:
        return None
    return int(match.group(0))


def or_placeholder(text: str | None, placeholder: str) -> str:
    if text is None:
        return placeholder
    stripped = text.strip()
    return stripped or placeholder


def _trim_date(value: str | None) -> str | None:
    """Drop the time part of ISO timestamps such as ``2009-04-05T00:00:00+00:00``."""

    if not value:
        return None
    return value.split("T", 1)[0]


def _named_genres(names: Sequence[str]) -> list[Genre]:
    seen: set[str] = set()
    genres: list[Genre] = []
    for name in names:
        cleaned = (name or "").strip()
        if not cleaned:
            continue
        genre_id = slugify(cleaned)
        if genre_id in seen:
            continue
        seen.add(genre_id)
        genres.append(Genre(id=genre_id, name=cleaned))
    return genres


def normalize_tmdb(
    item: TMDBTitle,
    *,
    category: MediaCategory,
    genres: Sequence[Genre],
    image_base_url: str,
    placeholder: str,
) -> DiscoveryItem:
    """Map a TMDB movie or TV entry; ``genres`` are resolved by the caller."""

    date = item.release_date if category == "movie" else item.first_air_date
    date = date or item.date
    return DiscoveryItem(
        id=str(item.id),
        title=item.display_title or UNTITLED,
        description=or_placeholder(item.overview, placeholder),
        image_url=build_image_url(item.poster_path, image_base_url),
        release_year=parse_year(date),
        release_date=date or None,
        rating=item.vote_average,
        ratings_count=item.vote_count,
        genres=list(genres),
        popularity=item.popularity,
    )


def normalize_jikan(
    item: JikanEntry, *, category: MediaCategory, placeholder: str
) -> DiscoveryItem:
    """Map a Jikan anime or manga entry."""

    start = _trim_date(item.start_date)
    genres = [
        Genre(id=genre.mal_id, name=genre.name or str(genre.mal_id))
        for genre in item.genres
        if genre.mal_id is not None
    ]
    fields: dict[str, Any] = {}
    if category == "manga":
        fields["volumes"] = item.volumes
        fields["chapters"] = item.chapters
        fields["authors"] = [author.name for author in item.authors if author.name]
    else:
        fields["episodes"] = item.episodes

    return DiscoveryItem(
        id=str(item.mal_id),
        title=item.title or item.title_english or UNTITLED,
        description=or_placeholder(item.synopsis, placeholder),
        image_url=JikanClient.image_url(item.images),
        release_year=parse_year(start, item.year),
        release_date=start,
        rating=item.score,
        ratings_count=item.scored_by,
        genres=genres,
        members=item.members,
        popularity=item.popularity,
        rank=item.rank,
        status=item.status,
        media_type=item.type,
        **fields,
    )


def normalize_rawg(item: RAWGGame, *, placeholder: str) -> DiscoveryItem:
    platforms = [
        entry.platform.name
        for entry in item.platforms
        if entry.platform is not None and entry.platform.name
    ]
    genres = [
        Genre(id=genre.id, name=genre.name or str(genre.id))
        for genre in item.genres
        if genre.id is not None
    ]
    return DiscoveryItem(
        id=str(item.id),
        title=item.name or UNTITLED,
        description=or_placeholder(item.description_raw or item.description, placeholder),
        image_url=RAWGClient.image_url(item.background_image),
        release_year=parse_year(item.released),
        release_date=item.released or None,
        rating=item.rating,
        ratings_count=item.ratings_count,
        genres=genres,
        platforms=platforms,
        metacritic=item.metacritic,
        playtime=item.playtime,
    )


def normalize_google_volume(item: GoogleVolume, *, placeholder: str) -> DiscoveryItem:
    info = item.volume_info
    return DiscoveryItem(
        id=item.id,
        title=(info.title or "").strip() or UNTITLED,
        description=or_placeholder(info.description, placeholder),
        image_url=GoogleBooksClient.image_url(info.image_links),
        release_year=parse_year(info.published_date),
        release_date=info.published_date or None,
        rating=info.average_rating or 0,
        ratings_count=info.ratings_count or 0,
        genres=_named_genres(info.categories),
        authors=list(info.authors) or [UNKNOWN_AUTHOR],
        publisher=info.publisher,
        page_count=info.page_count,
    )
