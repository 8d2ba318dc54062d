"""
Cursor pagination over provider list endpoints.
"""

from collections.abc import AsyncIterator, Awaitable, Callable
from typing import TypeVar

from pulse.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

PageFetcher = Callable[[str | None], Awaitable[tuple[list[T], str | None]]]


async def iterate_pages(fetch_page: PageFetcher) -> AsyncIterator[list[T]]:
    """
    Yield the items of each page, starting from no cursor and following
    next-page tokens until the provider stops returning one.

    Errors from fetch_page propagate to the caller.
    """
    page_token = None
    seen_tokens: set[str] = set()

    while True:
        items, next_page_token = await fetch_page(page_token)
        yield items

        if not next_page_token:
            return
        if next_page_token in seen_tokens:
            logger.warning("Pagination cursor repeated, stopping", page_token=next_page_token)
            return
        seen_tokens.add(next_page_token)
        page_token = next_page_token
