"""Fetch, filter and write back each user of a page."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AbstractSet, Iterable, Optional

from . import config
from .errors import SourceError
from .extract.users import iter_pages
from .models import UserSummary
from .source import UserSource
from .transform.statistics import split_statistics

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    pages: int = 0
    users_seen: int = 0
    users_updated: int = 0
    last_offset: Optional[int] = None


def strip_user(
    source: UserSource,
    summary: UserSummary,
    categories: AbstractSet[str],
    *,
    external_groups: AbstractSet[str] = frozenset(),
) -> bool:
    """Remove matching statistics from one user. Returns True if it was written back."""
    record = source.fetch_user(summary.primary_id)
    kept, removed = split_statistics(record, categories, external_groups=external_groups)

    if len(kept) == len(record.statistics):
        logger.debug("user %s did not need updating", record.primary_id)
        return False

    source.update_user(record.with_statistics(kept))
    logger.info(
        "user %s updated: removed %s statistic(s) (%s)",
        record.primary_id,
        len(removed),
        ", ".join(sorted({entry.category or "internal" for entry in removed})),
    )
    return True


def process_users(
    source: UserSource,
    users: Iterable[UserSummary],
    categories: AbstractSet[str],
    *,
    offset: Optional[int] = None,
    external_groups: AbstractSet[str] = frozenset(),
) -> int:
    """Strip every user in order; the first failure aborts with its location attached."""
    updated = 0
    for summary in users:
        try:
            if strip_user(source, summary, categories, external_groups=external_groups):
                updated += 1
        except SourceError as exc:
            if exc.offset is None:
                exc.offset = offset
            if exc.user_id is None:
                exc.user_id = summary.primary_id
            raise
    return updated


def run(
    source: UserSource,
    categories: AbstractSet[str],
    *,
    from_offset: int = 0,
    to_offset: Optional[int] = None,
    page_size: int = config.PAGE_SIZE,
    external_groups: AbstractSet[str] = frozenset(),
) -> RunSummary:
    """Make one sequential pass over the page range."""
    summary = RunSummary()
    if not categories and not external_groups:
        logger.warning("Category set is empty; no user will be changed")

    for page in iter_pages(source, from_offset=from_offset, to_offset=to_offset, page_size=page_size):
        summary.last_offset = page.offset
        updated = process_users(
            source,
            page.users,
            categories,
            offset=page.offset,
            external_groups=external_groups,
        )
        summary.pages += 1
        summary.users_seen += len(page.users)
        summary.users_updated += updated
        logger.info("Page %s: %s of %s users updated", page.offset, updated, len(page.users))

    logger.info(
        "Run completed: %s pages, %s users seen, %s updated",
        summary.pages,
        summary.users_seen,
        summary.users_updated,
    )
    return summary
