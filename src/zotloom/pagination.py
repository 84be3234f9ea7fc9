"""Limit/offset pagination for Zotero listing endpoints.

Zotero pages with ``limit`` and ``start`` query parameters and reports the
size of the full result set in the ``Total-Results`` response header.
"""

from collections.abc import AsyncIterator, Awaitable, Callable
from typing import TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, field_validator

from .constants import (
    DEFAULT_PAGE_SIZE,
    ITERATE_PAGE_SIZE,
    MAX_PAGE_SIZE,
    TOTAL_RESULTS_HEADER,
)
from .log_config import logger
from .models import Page
from .types import Err, Ok

T = TypeVar("T")


class PageRequest(BaseModel):
    """A bounded page window.

    ``limit`` is clamped to ``1..MAX_PAGE_SIZE`` and ``offset`` to ``>= 0``.
    """

    model_config = ConfigDict(frozen=True)

    limit: int = DEFAULT_PAGE_SIZE
    offset: int = 0

    @field_validator("limit", mode="before")
    @classmethod
    def clamp_limit(cls, v: int | None) -> int:
        if v is None:
            return DEFAULT_PAGE_SIZE
        clamped = min(max(int(v), 1), MAX_PAGE_SIZE)
        if clamped != v:
            logger.warning(f"Page limit {v} out of range; using {clamped}.")
        return clamped

    @field_validator("offset", mode="before")
    @classmethod
    def clamp_offset(cls, v: int | None) -> int:
        return max(int(v or 0), 0)

    def to_params(self) -> dict[str, int]:
        return {"limit": self.limit, "start": self.offset}

    def next(self) -> "PageRequest":
        return PageRequest(limit=self.limit, offset=self.offset + self.limit)


def read_total(response: httpx.Response, fallback: int) -> int:
    """Reads ``Total-Results``, falling back to the returned item count."""
    raw = response.headers.get(TOTAL_RESULTS_HEADER)
    if raw is None:
        return fallback
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Unparseable {TOTAL_RESULTS_HEADER} header: {raw!r}")
        return fallback


def build_page(items: list[T], response: httpx.Response, request: PageRequest) -> Page[T]:
    """Wraps one response's items into a :class:`Page`."""
    return Page(
        items=items,
        total_results=read_total(response, len(items)),
        offset=request.offset,
        limit=request.limit,
    )


async def iterate_pages(
    fetch_page: Callable[[PageRequest], Awaitable[Ok[Page[T]] | Err]],
    page_size: int = ITERATE_PAGE_SIZE,
    offset: int = 0,
) -> AsyncIterator[T]:
    """Yields every item of a listing, fetching one page at a time.

    Iteration stops on an empty page or once ``offset`` reaches the reported
    total.

    Args:
        fetch_page: Coroutine function returning the page for a window.
        page_size: Items requested per page.
        offset: Index of the first item to yield.

    Raises:
        APIError: The typed exception of the first page that fails.
    """
    request = PageRequest(limit=page_size, offset=offset)
    while True:
        logger.debug(f"Fetching page: offset={request.offset}, limit={request.limit}")
        result = await fetch_page(request)
        page = result.unwrap()

        for item in page.items:
            yield item

        if not page.items:
            logger.debug("Empty page, stopping iteration.")
            break
        request = request.next()
        if request.offset >= page.total_results:
            logger.debug(f"Reached reported total {page.total_results}, stopping.")
            break
