"""Tests for the fetch-filter-update pipeline and its resume contract."""
from __future__ import annotations

import pytest

from conftest import FakeUserSource, user_payload
from stat_stripper.errors import SourceFetchError, SourceUpdateError, UserNotFoundError
from stat_stripper.models import UserSummary
from stat_stripper.pipeline import run, strip_user


def ids(count: int):
    return [f"u{i:04d}" for i in range(count)]


def make_source(count: int, categories=("LOAN", "VISIT", "FINE")) -> FakeUserSource:
    return FakeUserSource({user_id: user_payload(user_id, list(categories)) for user_id in ids(count)})


def stat_categories(payload):
    return [entry["category_type"]["value"] for entry in payload["user_statistic"]]


def test_matching_statistics_are_removed_and_written_back(categories):
    source = FakeUserSource({"u1": user_payload("u1", ["LOAN", "VISIT", "FINE"])})

    assert strip_user(source, UserSummary(primary_id="u1"), categories) is True

    assert len(source.updates) == 1
    assert stat_categories(source.updates[0]) == ["VISIT"]
    assert source.updates[0]["first_name"] == "Ada"


def test_user_without_matches_is_not_written(categories):
    source = FakeUserSource({"u2": user_payload("u2", ["VISIT"])})

    assert strip_user(source, UserSummary(primary_id="u2"), categories) is False

    assert source.user_fetches == ["u2"]
    assert source.updates == []


def test_second_pass_issues_no_writes(categories):
    source = FakeUserSource({"u1": user_payload("u1", ["LOAN", "VISIT", "FINE"])})
    summary = UserSummary(primary_id="u1")

    assert strip_user(source, summary, categories) is True
    assert strip_user(source, summary, categories) is False
    assert len(source.updates) == 1


def test_run_updates_only_users_that_change(categories):
    source = FakeUserSource(
        {
            "a": user_payload("a", ["LOAN", "VISIT", "FINE"]),
            "b": user_payload("b", ["VISIT"]),
            "c": user_payload("c", ["FINE"]),
        }
    )

    summary = run(source, categories)

    assert [payload["primary_id"] for payload in source.updates] == ["a", "c"]
    assert stat_categories(source.updates[1]) == []
    assert summary.pages == 1
    assert summary.users_seen == 3
    assert summary.users_updated == 2
    assert summary.last_offset == 0


def test_empty_category_set_never_writes():
    source = make_source(5)

    summary = run(source, frozenset())

    assert source.updates == []
    assert summary.users_seen == 5


def test_empty_range_makes_no_calls(categories):
    source = make_source(10)

    summary = run(source, categories, from_offset=5, to_offset=3)

    assert source.page_fetches == []
    assert summary.pages == 0


def test_users_are_processed_in_page_order(categories):
    source = make_source(250)

    run(source, categories, page_size=100)

    assert source.user_fetches == ids(250)
    assert [payload["primary_id"] for payload in source.updates] == ids(250)


def test_update_failure_names_page_and_user_and_resumes_from_page_start(categories):
    source = make_source(250)
    failing = ids(250)[102]  # third user on page index 1
    source.fail_update_for = {failing}

    with pytest.raises(SourceUpdateError) as excinfo:
        run(source, categories, page_size=100)

    assert excinfo.value.offset == 1
    assert excinfo.value.user_id == failing
    assert "page offset 1" in str(excinfo.value)
    assert failing in str(excinfo.value)
    assert len(source.updates) == 102

    source.fail_update_for = set()
    source.page_fetches.clear()
    source.user_fetches.clear()

    run(source, categories, from_offset=1, page_size=100)

    assert source.page_fetches[0] == (1, 100)
    assert source.user_fetches[:3] == ids(250)[100:103]
    # the first two users on the page were already stripped
    assert len(source.updates) == 102 + 148


def test_missing_user_aborts_the_run(categories):
    source = FakeUserSource()
    source.page_sizes = {0: 2}

    with pytest.raises(UserNotFoundError) as excinfo:
        run(source, categories, to_offset=0)

    assert isinstance(excinfo.value, SourceFetchError)
    assert excinfo.value.offset == 0
    assert excinfo.value.user_id == "0-0"
    assert source.user_fetches == ["0-0"]


def test_page_failure_stops_before_later_pages(categories):
    source = make_source(300)
    source.fail_page_at = {2}

    with pytest.raises(SourceFetchError) as excinfo:
        run(source, categories, page_size=100)

    assert excinfo.value.offset == 2
    assert excinfo.value.user_id is None
    assert len(source.updates) == 200
