"""HTTP client utilities for communicating with the Alma users API."""

from __future__ import annotations

import logging
import time
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import quote

import requests

from .. import config
from .rate_limit import Throttle

logger = logging.getLogger(__name__)

BASE_URL_TEMPLATE = "https://api-{region}.hosted.exlibrisgroup.com/almaws/v1"


@dataclass
class AlmaError:
    status_code: int
    error_code: str = ""
    error_message: str = ""
    tracking_id: str = ""

    def __str__(self) -> str:
        return f"Alma API error {self.status_code} [{self.error_code}]: {self.error_message}"


class AlmaAPIError(requests.HTTPError):
    """Raised for any 4xx/5xx response; carries the errors Alma reported."""

    def __init__(self, errors: List[AlmaError], *, response: requests.Response) -> None:
        self.errors = errors
        message = "; ".join(str(error) for error in errors) or f"Alma API error {response.status_code}"
        super().__init__(message, response=response)

    @property
    def status_code(self) -> int:
        return self.response.status_code


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _parse_xml_errors(status_code: int, body: bytes) -> List[AlmaError]:
    errors: List[AlmaError] = []
    root = ET.fromstring(body)
    for element in root.iter():
        if _local_name(element.tag) != "error":
            continue
        fields = {_local_name(child.tag): (child.text or "").strip() for child in element}
        errors.append(
            AlmaError(
                status_code,
                error_code=fields.get("errorCode", ""),
                error_message=fields.get("errorMessage", ""),
                tracking_id=fields.get("trackingId", ""),
            )
        )
    return errors


def _parse_json_errors(status_code: int, payload: Any) -> List[AlmaError]:
    error_list = payload.get("errorList") if isinstance(payload, dict) else None
    if not isinstance(error_list, dict):
        return []
    entries = error_list.get("error") or []
    if isinstance(entries, dict):
        entries = [entries]
    return [
        AlmaError(
            status_code,
            error_code=str(entry.get("errorCode", "")),
            error_message=str(entry.get("errorMessage", "")),
            tracking_id=str(entry.get("trackingId", "")),
        )
        for entry in entries
        if isinstance(entry, dict)
    ]


def parse_errors(response: requests.Response) -> List[AlmaError]:
    """Pull Alma's error list out of an error response, whatever its format."""
    content_type = response.headers.get("Content-Type", "").split(";")[0].strip()
    try:
        if content_type == "application/json":
            return _parse_json_errors(response.status_code, response.json())
        if content_type in ("application/xml", "text/xml"):
            return _parse_xml_errors(response.status_code, response.content)
    except (ValueError, ET.ParseError) as exc:
        logger.debug("Could not parse error body for status %s: %s", response.status_code, exc)
    return []


def check_error(response: requests.Response) -> requests.Response:
    if response.status_code >= 400:
        raise AlmaAPIError(parse_errors(response), response=response)
    return response


class AlmaClient:
    """Thin wrapper around :mod:`requests` with rate limiting.

    Only 429 responses (Alma's per-second threshold) are retried; every
    other failure is raised to the caller straight away.
    """

    def __init__(
        self,
        region: str,
        api_key: str,
        *,
        base_url: Optional[str] = None,
        throttle: Throttle | None = None,
        max_retries: int = config.API_MAX_RETRIES,
        backoff_factor: float = config.API_BACKOFF_FACTOR,
        timeout: int = config.API_TIMEOUT,
    ) -> None:
        self.base_url = (base_url or BASE_URL_TEMPLATE.format(region=region)).rstrip("/")
        self.session = requests.Session()
        self.timeout = timeout
        self._throttle = throttle or Throttle()
        self._max_retries = max_retries
        self._backoff_factor = backoff_factor

        self.session.headers.update(
            {
                "Authorization": f"apikey {api_key}",
                "Accept": "application/json",
            }
        )

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
    ) -> requests.Response:
        url = f"{self.base_url}/{path.lstrip('/')}"
        params = dict(params or {})

        for attempt in range(1, self._max_retries + 1):
            self._throttle.wait()
            logger.debug("%s %s %s", method, url, params)
            response = self.session.request(method, url, params=params, json=json, timeout=self.timeout)

            if response.status_code == 429 and attempt < self._max_retries:
                sleep_for = self._retry_delay(response, attempt)
                logger.info("Rate limited; sleeping %.2fs", sleep_for)
                time.sleep(sleep_for)
                continue

            return check_error(response)

        raise RuntimeError("Exceeded maximum retries for request")

    def _retry_delay(self, response: requests.Response, attempt: int) -> float:
        retry_after = response.headers.get("Retry-After")
        if retry_after:
            try:
                return max(0.0, float(retry_after))
            except ValueError:
                # HTTP-date form
                logger.debug("Ignoring non-numeric Retry-After %r", retry_after)
        return self._backoff_factor ** (attempt - 1)

    def get_json(self, path: str, *, params: Optional[Mapping[str, Any]] = None) -> Any:
        return self._request("GET", path, params=params).json()

    def put_json(self, path: str, payload: Any) -> requests.Response:
        # the body of a successful PUT is never read
        return self._request("PUT", path, json=payload)

    def get_user_ids(self, offset: int, limit: int) -> Tuple[List[str], Optional[int]]:
        """Return the primary ids on one ``/users`` page and the total record count."""
        data = self.get_json(
            "/users",
            params={"order_by": "primary_id", "limit": limit, "offset": offset},
        )
        # Alma omits the "user" key entirely past the last record
        users = data.get("user") or []
        if isinstance(users, dict):
            users = [users]
        user_ids = [str(user["primary_id"]) for user in users if user.get("primary_id")]
        total = data.get("total_record_count")
        return user_ids, int(total) if total is not None else None

    def get_user(self, user_id: str) -> Dict[str, Any]:
        return self.get_json(f"/users/{quote(user_id, safe='')}")

    def update_user(self, user_id: str, payload: Dict[str, Any]) -> None:
        self.put_json(f"/users/{quote(user_id, safe='')}", payload)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "AlmaClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
