"""Page clamping, corrective re-fetching and per-page deduplication."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Sequence, TypeVar

from .models import DiscoveryItem
from .provider_models import ProviderPage

logger = logging.getLogger(__name__)

# Catalog browsing never exposes more than this many results per provider.
CATALOG_TOTAL_CAP = 10_000
# Free-text search against providers that over-report matches.
SEARCH_TOTAL_CAP = 20
# TMDB refuses pages beyond 500.
TMDB_PAGE_CAP = 500

PageFetcher = Callable[[int], Awaitable[ProviderPage]]
ItemT = TypeVar("ItemT", bound=DiscoveryItem)


@dataclass(frozen=True, slots=True)
class PageWindow:
    """Result of validating a requested page against a provider's totals."""

    requested_page: int
    current_page: int
    total: int
    total_pages: int


def page_window(
    requested_page: int,
    reported_total: int,
    page_size: int,
    *,
    total_cap: int = CATALOG_TOTAL_CAP,
    page_cap: int | None = None,
    last_page: int | None = None,
) -> PageWindow:
    """Clamp ``requested_page`` into ``[1, total_pages]``.

    ``total_pages`` is derived from the capped total and never drops below 1.
    ``page_cap`` and the provider-reported ``last_page`` can only shrink it.
    """

    if page_size < 1:
        raise ValueError("page_size must be positive")
    requested = max(1, int(requested_page))
    total = max(0, min(int(reported_total), total_cap))
    total_pages = max(1, math.ceil(total / page_size))
    if page_cap is not None:
        total_pages = min(total_pages, page_cap)
    if last_page is not None and last_page >= 1:
        total_pages = min(total_pages, last_page)
    return PageWindow(
        requested_page=requested,
        current_page=min(requested, total_pages),
        total=total,
        total_pages=total_pages,
    )


async def fetch_corrected(
    fetch: PageFetcher,
    requested_page: int,
    page_size: int,
    *,
    total_cap: int = CATALOG_TOTAL_CAP,
    page_cap: int | None = None,
) -> tuple[ProviderPage, PageWindow]:
    """Fetch ``requested_page``; re-fetch the last valid page when it is out of range.

    At most two provider calls are issued and the corrective page is never
    cached. ``page_cap`` is a hard provider limit, so the first request is
    already clamped to it.

    Providers that reject out-of-range pages outright report ``out_of_range``
    without a total, so the last valid page is unknown. The corrective call
    then goes to page 1 and the window reports ``current_page == 1`` rather
    than the last page; finding the last page would take a third call.
    """

    first_page = max(1, int(requested_page))
    if page_cap is not None:
        first_page = min(first_page, page_cap)

    page = await fetch(first_page)
    if page.out_of_range and first_page > 1:
        logger.info("Page %s rejected by provider; serving page 1 instead", first_page)
        page = await fetch(1)
        window = page_window(
            1,
            page.total,
            page_size,
            total_cap=total_cap,
            page_cap=page_cap,
            last_page=page.last_page,
        )
        return page, replace(window, requested_page=first_page)

    window = page_window(
        requested_page,
        page.total,
        page_size,
        total_cap=total_cap,
        page_cap=page_cap,
        last_page=page.last_page,
    )
    if window.current_page != first_page:
        logger.info(
            "Page %s is beyond the last page (%s); serving page %s instead",
            window.requested_page,
            window.total_pages,
            window.current_page,
        )
        page = await fetch(window.current_page)
    return page, window


def dedupe_items(items: Sequence[ItemT]) -> tuple[list[ItemT], int]:
    """Drop items whose id already appeared earlier in the list."""

    seen: set[str] = set()
    kept: list[ItemT] = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        kept.append(item)
    return kept, len(items) - len(kept)
