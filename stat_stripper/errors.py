"""Exception types raised by the stripping run."""

from __future__ import annotations

from typing import Optional


class StatStripperError(Exception):
    """Base class for every error the run reports."""


class ConfigError(StatStripperError):
    """Bad command line arguments, input files or environment."""


class SourceError(StatStripperError):
    """A remote call failed while processing ``offset``/``user_id``."""

    action = "process"

    def __init__(self, message: str, *, offset: Optional[int] = None, user_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.offset = offset
        self.user_id = user_id

    def location(self) -> str:
        parts = []
        if self.offset is not None:
            parts.append(f"page offset {self.offset}")
        if self.user_id is not None:
            parts.append(f"user {self.user_id}")
        return ", ".join(parts) or "unknown location"

    def __str__(self) -> str:
        return f"Failed to {self.action} at {self.location()}: {self.args[0]}"


class SourceFetchError(SourceError):
    action = "fetch"


class SourceUpdateError(SourceError):
    action = "update"


class UserNotFoundError(SourceFetchError):
    """The user listed on a page no longer exists."""
