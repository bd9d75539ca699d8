"""Cache mapping provider genre identifiers to display names."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable

from ..errors import ProviderError
from ..models import Genre

logger = logging.getLogger(__name__)

GenreLoader = Callable[[], Awaitable[list[Genre]]]
GenreKey = tuple[str, str]


@dataclass(slots=True)
class GenreCacheEntry:
    """Cached genre taxonomy for one ``(provider, category)`` pair."""

    genres: list[Genre]
    loaded_at: float
    names: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.names:
            self.names = {genre.id: genre.name for genre in self.genres}


class GenreResolver:
    """Lazily loads and caches genre lists with a bounded lifetime.

    Each ``(provider, category)`` key is bound to a loader with
    :meth:`register`. The first lookup for a key issues one network call;
    later lookups are in-memory until ``ttl_seconds`` elapse. A reload that
    fails keeps serving the previous list.
    """

    def __init__(
        self,
        ttl_seconds: float | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._loaders: dict[GenreKey, GenreLoader] = {}
        self._entries: dict[GenreKey, GenreCacheEntry] = {}
        self._locks: dict[GenreKey, asyncio.Lock] = {}

    def register(self, provider: str, category: str, loader: GenreLoader) -> None:
        self._loaders[(provider, category)] = loader

    def is_cached(self, provider: str, category: str) -> bool:
        entry = self._entries.get((provider, category))
        return entry is not None and not self._is_stale(entry)

    def _is_stale(self, entry: GenreCacheEntry) -> bool:
        if self._ttl is None:
            return False
        return self._clock() - entry.loaded_at >= self._ttl

    async def genres(self, provider: str, category: str) -> list[Genre]:
        """Return the cached genre list, loading it when missing or expired."""

        entry = await self._entry(provider, category)
        return list(entry.genres)

    async def resolve(
        self, provider: str, category: str, ids: Iterable[int | str]
    ) -> list[Genre]:
        """Map genre ids to ``Genre`` objects; unknown ids keep their id as name."""

        (genres,) = await self.resolve_many(provider, category, [ids])
        return genres

    async def resolve_many(
        self, provider: str, category: str, id_lists: Iterable[Iterable[int | str]]
    ) -> list[list[Genre]]:
        """Map one id list per item with at most a single load of the key."""

        wanted = [[str(genre_id) for genre_id in ids] for ids in id_lists]
        if not any(wanted):
            return [[] for _ in wanted]
        entry = await self._entry(provider, category)
        return [
            [Genre(id=genre_id, name=entry.names.get(genre_id, genre_id)) for genre_id in ids]
            for ids in wanted
        ]

    async def refresh(self, provider: str, category: str) -> list[Genre]:
        """Force a reload of one key regardless of its age."""

        entry = await self._entry(provider, category, force=True)
        return list(entry.genres)

    def invalidate(self, provider: str | None = None, category: str | None = None) -> None:
        """Drop cached entries; with no arguments everything is dropped."""

        if provider is None and category is None:
            self._entries.clear()
            return
        for key in list(self._entries):
            if provider is not None and key[0] != provider:
                continue
            if category is not None and key[1] != category:
                continue
            self._entries.pop(key, None)

    async def _entry(
        self, provider: str, category: str, *, force: bool = False
    ) -> GenreCacheEntry:
        key = (provider, category)
        entry = self._entries.get(key)
        if entry is not None and not force and not self._is_stale(entry):
            return entry

        loader = self._loaders.get(key)
        if loader is None:
            raise KeyError(f"No genre loader registered for {provider}/{category}")

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            # Another task may have finished loading while we waited.
            current = self._entries.get(key)
            if current is not None and current is not entry and not self._is_stale(current):
                return current
            try:
                genres = await loader()
            except ProviderError:
                if current is not None:
                    logger.warning(
                        "Genre reload for %s/%s failed; serving cached list", provider, category
                    )
                    return current
                raise
            fresh = GenreCacheEntry(genres=list(genres), loaded_at=self._clock())
            self._entries[key] = fresh
            logger.info("Cached %d %s genres from %s", len(fresh.genres), category, provider)
            return fresh
