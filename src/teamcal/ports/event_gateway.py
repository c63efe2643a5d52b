"""Events API gateway interface."""

from datetime import datetime
from typing import Any, Protocol

from teamcal.core.events import SearchParams


class EventGateway(Protocol):
    """Interface for reaching the remote events API.

    Payloads are wire-format dicts (camelCase keys, ISO-8601 date strings).
    Failures raise CalendarServiceError.
    """

    def get_events(self, params: SearchParams) -> dict[str, Any]:
        """Fetch one page of events matching the search params."""
        ...

    def get_team_events(self, team_id: str, start: datetime, end: datetime) -> dict[str, Any]:
        """Fetch events of one team between start and end."""
        ...

    def get_project_events(self, project_id: str, start: datetime, end: datetime) -> dict[str, Any]:
        """Fetch events of one project between start and end."""
        ...

    def get_event(self, event_id: str) -> dict[str, Any]:
        """Fetch a single event."""
        ...

    def create_event(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Create an event. Returns the created event with server-assigned fields."""
        ...

    def update_event(self, event_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        """Apply a partial update. Returns the full updated event."""
        ...

    def delete_event(self, event_id: str) -> None:
        """Delete an event."""
        ...

    def bulk_update_events(self, updates: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Apply several partial updates, each carrying its own id."""
        ...

    def bulk_delete_events(self, event_ids: list[str]) -> None:
        """Delete several events."""
        ...
