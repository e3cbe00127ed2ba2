"""Domain models for the stripping run."""

from .user import Page, StatisticEntry, UserRecord, UserSummary

__all__ = ["Page", "StatisticEntry", "UserRecord", "UserSummary"]
