"""
Pytest configuration and fixtures for the stripping tests.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Set, Tuple

import pytest

from stat_stripper.errors import SourceFetchError, SourceUpdateError, UserNotFoundError
from stat_stripper.models import Page, UserRecord, UserSummary


def statistic(category: Optional[str], segment: str = "External", note: str = "") -> dict:
    """Alma-shaped user_statistic entry."""
    entry = {
        "statistic_category": {"value": f"{category}_1", "desc": f"{category} one"},
        "statistic_note": note,
        "segment_type": segment,
    }
    if category is not None:
        entry["category_type"] = {"value": category, "desc": f"{category} category"}
    return entry


def user_payload(primary_id: str, categories: List[Optional[str]], group: str = "STAFF") -> dict:
    return {
        "primary_id": primary_id,
        "first_name": "Ada",
        "user_group": {"value": group, "desc": group.title()},
        "contact_info": {"email": [{"email_address": f"{primary_id}@example.org"}]},
        "user_statistic": [statistic(category) for category in categories],
    }


class FakeUserSource:
    """In-memory user source that records every call made against it."""

    def __init__(self, users: Optional[Dict[str, dict]] = None, *, total: Optional[int] = None) -> None:
        self.users: Dict[str, dict] = dict(users or {})
        self.total = total
        self.page_fetches: List[Tuple[int, int]] = []
        self.user_fetches: List[str] = []
        self.updates: List[dict] = []
        self.fail_page_at: Set[int] = set()
        self.fail_update_for: Set[str] = set()
        self.page_sizes: Dict[int, int] = {}

    def fetch_page(self, offset: int, page_size: int) -> Page:
        self.page_fetches.append((offset, offset * page_size))
        if offset in self.fail_page_at:
            raise SourceFetchError("HTTP 503 from /users", offset=offset)
        ids = sorted(self.users)
        start = offset * page_size
        chunk = ids[start : start + page_size]
        if offset in self.page_sizes:
            chunk = [f"{offset}-{i}" for i in range(self.page_sizes[offset])]
        return Page(
            offset=offset,
            users=[UserSummary(primary_id=user_id) for user_id in chunk],
            total_record_count=self.total if self.total is not None else len(ids),
        )

    def fetch_user(self, user_id: str) -> UserRecord:
        self.user_fetches.append(user_id)
        if user_id not in self.users:
            raise UserNotFoundError("User not found", user_id=user_id)
        return UserRecord.from_payload(self.users[user_id])

    def update_user(self, record: UserRecord) -> None:
        if record.primary_id in self.fail_update_for:
            raise SourceUpdateError("HTTP 409 conflict", user_id=record.primary_id)
        payload = record.to_payload()
        self.updates.append(payload)
        self.users[record.primary_id] = payload


@pytest.fixture
def categories() -> frozenset:
    return frozenset({"LOAN", "FINE"})


@pytest.fixture
def fake_source() -> FakeUserSource:
    return FakeUserSource()
