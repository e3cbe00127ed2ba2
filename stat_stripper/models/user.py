"""Typed representations of Alma user records."""

from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

STATISTICS_FIELD = "user_statistic"
INTERNAL_SEGMENT = "Internal"


class UserSummary(BaseModel):
    primary_id: str

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_payload(cls, user: dict) -> "UserSummary":
        return cls(primary_id=_require_string(user.get("primary_id"), "primary_id"))


class Page(BaseModel):
    offset: int
    users: List[UserSummary] = Field(default_factory=list)
    total_record_count: Optional[int] = None

    def __len__(self) -> int:
        return len(self.users)


class StatisticEntry(BaseModel):
    """One ``user_statistic`` item; ``payload`` is sent back untouched."""

    category: Optional[str] = None
    segment_type: Optional[str] = None
    payload: Dict[str, Any]

    @classmethod
    def from_payload(cls, statistic: dict) -> "StatisticEntry":
        if not isinstance(statistic, dict):
            raise ValueError(f"Statistic entry must be an object, got {type(statistic).__name__}")
        return cls(
            category=_nested_value(statistic.get("category_type")),
            segment_type=_normalize_string(statistic.get("segment_type")),
            payload=statistic,
        )

    @property
    def is_internal(self) -> bool:
        return self.segment_type == INTERNAL_SEGMENT


class UserRecord(BaseModel):
    primary_id: str
    user_group: Optional[str] = None
    statistics: List[StatisticEntry] = Field(default_factory=list)
    payload: Dict[str, Any]

    @classmethod
    def from_payload(cls, user: dict, *, primary_id: Optional[str] = None) -> "UserRecord":
        if not isinstance(user, dict):
            raise ValueError("User record must be a JSON object")
        statistics = user.get(STATISTICS_FIELD) or []
        if not isinstance(statistics, list):
            raise ValueError(f"Field '{STATISTICS_FIELD}' must be a list")
        return cls(
            primary_id=_require_string(user.get("primary_id") or primary_id, "primary_id"),
            user_group=_nested_value(user.get("user_group")),
            statistics=[StatisticEntry.from_payload(statistic) for statistic in statistics],
            payload=user,
        )

    def with_statistics(self, statistics: List[StatisticEntry]) -> "UserRecord":
        """Return a copy whose statistics collection is replaced by ``statistics``."""
        payload = copy.deepcopy(self.payload)
        payload[STATISTICS_FIELD] = [copy.deepcopy(entry.payload) for entry in statistics]
        return UserRecord(
            primary_id=self.primary_id,
            user_group=self.user_group,
            statistics=list(statistics),
            payload=payload,
        )

    def to_payload(self) -> dict:
        return copy.deepcopy(self.payload)


def _require_string(value, field: str) -> str:
    if value is None:
        raise ValueError(f"Missing required field '{field}'")
    value_str = str(value).strip()
    if not value_str:
        raise ValueError(f"Field '{field}' cannot be empty")
    return value_str


def _nested_value(value) -> Optional[str]:
    # Alma code-table fields look like {"value": "...", "desc": "..."}
    if isinstance(value, dict):
        return _normalize_string(value.get("value"))
    return _normalize_string(value)


def _normalize_string(value) -> Optional[str]:
    if value is None:
        return None
    value_str = str(value).strip()
    return value_str or None
