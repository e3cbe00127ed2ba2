"""Page-by-page iteration over the Alma user list."""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from .. import config
from ..models import Page
from ..source import UserSource

logger = logging.getLogger(__name__)


def iter_pages(
    source: UserSource,
    *,
    from_offset: int = 0,
    to_offset: Optional[int] = None,
    page_size: int = config.PAGE_SIZE,
) -> Iterator[Page]:
    """Yield one page per page index from ``from_offset`` to ``to_offset`` inclusive.

    Offsets are page indices: page ``n`` starts at record ``n * page_size``.
    An empty page always ends iteration. Without ``to_offset`` a short page
    is the last one as well. Fetch errors propagate; the offset they carry
    is the point to resume from.
    """
    if from_offset < 0:
        raise ValueError("from_offset must not be negative")
    if page_size <= 0:
        raise ValueError("page_size must be positive")

    offset = from_offset
    while to_offset is None or offset <= to_offset:
        logger.debug("Fetching page %s (records %s-%s)", offset, offset * page_size, (offset + 1) * page_size - 1)
        page = source.fetch_page(offset, page_size)
        if not page.users:
            logger.info("Page %s is empty; no more users", offset)
            break

        if offset == from_offset and page.total_record_count is not None:
            last_page = max(0, (page.total_record_count - 1) // page_size)
            logger.info("%s users in total, last page index %s", page.total_record_count, last_page)

        yield page

        if to_offset is None and len(page.users) < page_size:
            break
        offset += 1
