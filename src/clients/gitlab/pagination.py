"""Page accumulation for GitLab list endpoints.

GitLab list endpoints take `page` / `per_page` query parameters. A page
shorter than `per_page` (including an empty one) is the last page.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, List, Sequence, TypeVar

from core.errors import PaginationLimitError

logger = logging.getLogger(__name__)

T = TypeVar("T")

FetchPage = Callable[[int], Awaitable[Sequence[T]]]


async def collect_pages(
    fetch_page: FetchPage[T],
    *,
    per_page: int,
    start_page: int = 1,
    max_pages: int = 0,
) -> List[T]:
    """Fetch pages in ascending order and concatenate them until a short page.

    `max_pages` bounds the number of fetches; 0 means unbounded.
    """
    items: List[T] = []
    page = start_page
    fetched = 0

    while True:
        if max_pages and fetched >= max_pages:
            raise PaginationLimitError(
                f"Pagination stopped after {fetched} pages of {per_page} items without reaching the end"
            )

        batch = await fetch_page(page)
        fetched += 1
        items.extend(batch)
        logger.debug("Fetched page %s (%s items)", page, len(batch))

        if len(batch) < per_page:
            return items
        page += 1
