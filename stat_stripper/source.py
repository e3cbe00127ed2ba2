"""The remote user source the stripping pipeline reads from and writes to."""

from __future__ import annotations

import logging
from typing import Iterable, List, Protocol

import requests

from .errors import SourceFetchError, SourceUpdateError, UserNotFoundError
from .models import Page, UserRecord, UserSummary
from .utils.alma import AlmaAPIError, AlmaClient

logger = logging.getLogger(__name__)

# errorCode values Alma uses for an unknown user identifier
USER_NOT_FOUND_CODES = frozenset({"401861", "401890"})


class UserSource(Protocol):
    def fetch_page(self, offset: int, page_size: int) -> Page:
        """Return the summaries starting at record ``offset * page_size``."""

    def fetch_user(self, user_id: str) -> UserRecord:
        ...

    def update_user(self, record: UserRecord) -> None:
        """Replace the stored user with ``record`` in full."""


def _is_not_found(exc: AlmaAPIError) -> bool:
    return exc.status_code == 404 or any(error.error_code in USER_NOT_FOUND_CODES for error in exc.errors)


class AlmaUserSource:
    """:class:`UserSource` backed by the Alma ``/users`` API."""

    def __init__(self, client: AlmaClient) -> None:
        self.client = client

    def fetch_page(self, offset: int, page_size: int) -> Page:
        try:
            user_ids, total = self.client.get_user_ids(offset * page_size, page_size)
        except requests.RequestException as exc:
            raise SourceFetchError(str(exc), offset=offset) from exc
        except (KeyError, ValueError) as exc:
            raise SourceFetchError(f"Malformed users page: {exc}", offset=offset) from exc
        return Page(
            offset=offset,
            users=[UserSummary(primary_id=user_id) for user_id in user_ids],
            total_record_count=total,
        )

    def fetch_user(self, user_id: str) -> UserRecord:
        try:
            payload = self.client.get_user(user_id)
        except AlmaAPIError as exc:
            if _is_not_found(exc):
                raise UserNotFoundError(str(exc), user_id=user_id) from exc
            raise SourceFetchError(str(exc), user_id=user_id) from exc
        except requests.RequestException as exc:
            raise SourceFetchError(str(exc), user_id=user_id) from exc
        except ValueError as exc:
            raise SourceFetchError(f"Unreadable user record: {exc}", user_id=user_id) from exc

        try:
            return UserRecord.from_payload(payload, primary_id=user_id)
        except ValueError as exc:
            raise SourceFetchError(f"Unreadable user record: {exc}", user_id=user_id) from exc

    def update_user(self, record: UserRecord) -> None:
        try:
            self.client.update_user(record.primary_id, record.to_payload())
        except requests.RequestException as exc:
            raise SourceUpdateError(str(exc), user_id=record.primary_id) from exc


def summaries_from_ids(user_ids: Iterable[str]) -> List[UserSummary]:
    return [UserSummary(primary_id=user_id) for user_id in user_ids]
