"""Filtering of a user's statistics collection."""

from __future__ import annotations

import logging
from typing import AbstractSet, List, NamedTuple

from ..models import StatisticEntry, UserRecord

logger = logging.getLogger(__name__)


class StatisticsSplit(NamedTuple):
    kept: List[StatisticEntry]
    removed: List[StatisticEntry]


def split_statistics(
    record: UserRecord,
    categories: AbstractSet[str],
    *,
    external_groups: AbstractSet[str] = frozenset(),
) -> StatisticsSplit:
    """Partition ``record.statistics`` keeping the original relative order.

    An entry is removed when its category is in ``categories``, or when it
    belongs to the internal segment and the user's group is one of
    ``external_groups``. Entries without a category are kept.
    """
    kept: List[StatisticEntry] = []
    removed: List[StatisticEntry] = []
    strip_internal = record.user_group is not None and record.user_group in external_groups

    for entry in record.statistics:
        if entry.is_internal:
            logger.warning(
                "user %s (group %s) has internal statistic: %s",
                record.primary_id,
                record.user_group,
                entry.payload,
            )
            if strip_internal:
                removed.append(entry)
                continue
        if entry.category is not None and entry.category in categories:
            removed.append(entry)
        else:
            kept.append(entry)

    return StatisticsSplit(kept, removed)
