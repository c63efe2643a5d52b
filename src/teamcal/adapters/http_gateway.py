"""Events API adapter - HTTP client for the calendar endpoints."""

import logging
from datetime import datetime
from typing import Any

import requests

from teamcal.config import Config, load_config
from teamcal.core.events import SearchParams, format_datetime

logger = logging.getLogger(__name__)

EVENTS_PATH = "/calendar/events"


def _scoped_query(key: str, value: str, start: datetime, end: datetime) -> dict[str, str]:
    return {key: value, "start": format_datetime(start), "end": format_datetime(end)}


class CalendarServiceError(Exception):
    """Raised when the events API answers with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class NetworkError(CalendarServiceError):
    """Raised when no HTTP response was received at all."""

    def __init__(self, message: str = "Network error occurred"):
        super().__init__(message, status_code=None, code="NETWORK_ERROR")


class HttpEventGateway:
    """
    Events API adapter.

    Implements EventGateway protocol. Returns wire-format payloads and turns
    every failure into CalendarServiceError. No caching, no business logic.
    """

    def __init__(
        self,
        config: Config | None = None,
        session: requests.Session | None = None,
    ):
        self.config = config or load_config()
        self.base_url = self.config.api_base_url.rstrip("/")
        self.timeout = self.config.request_timeout
        self._session = session or requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        """Send a request and decode the JSON body. Empty bodies decode to None."""
        url = f"{self.base_url}{endpoint}"
        try:
            resp = self._session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise NetworkError() from e

        if not resp.ok:
            try:
                body = resp.json()
            except ValueError:
                body = {}
            if not isinstance(body, dict):
                body = {}
            raise CalendarServiceError(
                body.get("message") or f"HTTP {resp.status_code}",
                resp.status_code,
                body.get("code"),
            )

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise CalendarServiceError(
                f"Invalid JSON from {endpoint}", resp.status_code, "INVALID_RESPONSE"
            ) from e

    def get_events(self, params: SearchParams) -> dict[str, Any]:
        """GET /calendar/events with query, date range, filters and sort."""
        return self._request("GET", EVENTS_PATH, params=params.to_query())

    def get_team_events(self, team_id: str, start: datetime, end: datetime) -> dict[str, Any]:
        """GET /calendar/events scoped to one team."""
        return self._request("GET", EVENTS_PATH, params=_scoped_query("teamId", team_id, start, end))

    def get_project_events(self, project_id: str, start: datetime, end: datetime) -> dict[str, Any]:
        """GET /calendar/events scoped to one project."""
        return self._request("GET", EVENTS_PATH, params=_scoped_query("projectId", project_id, start, end))

    def get_event(self, event_id: str) -> dict[str, Any]:
        return self._request("GET", f"{EVENTS_PATH}/{event_id}")

    def create_event(self, payload: dict[str, Any]) -> dict[str, Any]:
        return self._request("POST", EVENTS_PATH, json=payload)

    def update_event(self, event_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        return self._request("PUT", f"{EVENTS_PATH}/{event_id}", json=changes)

    def delete_event(self, event_id: str) -> None:
        self._request("DELETE", f"{EVENTS_PATH}/{event_id}")

    def bulk_update_events(self, updates: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return self._request("POST", f"{EVENTS_PATH}/bulk", json=updates) or []

    def bulk_delete_events(self, event_ids: list[str]) -> None:
        self._request("POST", f"{EVENTS_PATH}/bulk-delete", json={"ids": list(event_ids)})
