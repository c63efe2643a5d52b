"""Shared fixtures for teamcal tests."""

from datetime import datetime, timezone

import pytest

from teamcal.core.events import CalendarEvent, CalendarFilter


@pytest.fixture
def make_event():
    """Factory for creating events."""
    def _make(
        id: str = "evt-1",
        title: str = "Team Meeting",
        start: datetime | None = None,
        end: datetime | None = None,
        **kwargs,
    ) -> CalendarEvent:
        start = start or datetime(2025, 1, 15, 14, 0, tzinfo=timezone.utc)
        return CalendarEvent(id=id, title=title, start=start, end=end, **kwargs)
    return _make


@pytest.fixture
def make_filter():
    """Factory for creating filters."""
    def _make(id: str, facet: str, *values: str, active: bool = True) -> CalendarFilter:
        return CalendarFilter(id=id, name=id.title(), facet=facet, values=frozenset(values), active=active)
    return _make


@pytest.fixture
def wire_event():
    """Factory for events API payloads."""
    def _make(id: str = "evt-1", title: str = "Team Meeting", **overrides) -> dict:
        data = {
            "id": id,
            "title": title,
            "description": None,
            "start": "2025-01-15T14:00:00.000Z",
            "end": "2025-01-15T15:00:00.000Z",
            "allDay": False,
            "type": "meeting",
            "category": "team",
            "priority": "medium",
            "status": "planned",
            "ownerId": "u-1",
            "assigneeIds": ["u-1", "u-2"],
            "teamId": "team-1",
            "projectId": None,
            "tags": ["weekly"],
            "editable": True,
            "deletable": True,
            "createdAt": "2025-01-01T09:00:00.000Z",
            "updatedAt": "2025-01-02T09:00:00.000Z",
            "createdBy": "u-1",
            "updatedBy": "u-1",
        }
        data.update(overrides)
        return data
    return _make
