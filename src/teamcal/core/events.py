"""Calendar domain types - pure values, no I/O dependencies."""

import json
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from typing import Any, Mapping

from dateutil.parser import isoparse

EVENT_TYPES = ("task", "meeting", "milestone", "deadline", "reminder", "vacation", "holiday")
EVENT_CATEGORIES = ("personal", "team", "project", "company", "client")
EVENT_PRIORITIES = ("low", "medium", "high", "critical")
EVENT_STATUSES = ("planned", "in_progress", "completed", "cancelled", "on_hold")
FILTER_FACETS = ("type", "category", "priority", "status", "assignee", "team", "project")
CALENDAR_VIEWS = (
    "dayGridMonth",
    "timeGridWeek",
    "timeGridDay",
    "listWeek",
    "multiMonthYear",
    "timelineWeek",
    "resourceTimeline",
    "gantt",
)
SORT_KEYS = ("start", "title", "priority", "status")
SORT_ORDERS = ("asc", "desc")


def ensure_aware(value: datetime) -> datetime:
    """Attach UTC to naive datetimes; aware values pass through."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_datetime(value: Any) -> datetime:
    """Parse an ISO-8601 wire value into an aware datetime."""
    if isinstance(value, datetime):
        return ensure_aware(value)
    if isinstance(value, str):
        return ensure_aware(isoparse(value))
    raise ValueError(f"Unsupported datetime value: {value!r}")


def format_datetime(value: datetime) -> str:
    """Render a datetime as UTC ISO-8601 with millisecond precision, e.g. 2025-01-15T09:30:00.000Z."""
    utc = ensure_aware(value).astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _optional_datetime(value: Any) -> datetime | None:
    return parse_datetime(value) if value else None


def _check_choice(name: str, value: str, choices: tuple[str, ...]) -> None:
    if value not in choices:
        raise ValueError(f"Invalid {name} {value!r}. Must be one of: {', '.join(choices)}")


@dataclass(frozen=True)
class CalendarEvent:
    """A calendar event as held by the store."""

    id: str
    title: str
    start: datetime
    end: datetime | None = None
    all_day: bool = False
    type: str = "task"
    category: str = "personal"
    priority: str = "medium"
    status: str = "planned"
    owner_id: str = ""
    assignee_ids: frozenset[str] = frozenset()
    team_id: str | None = None
    project_id: str | None = None
    tags: frozenset[str] = frozenset()
    description: str | None = None
    location: str | None = None
    meeting_url: str | None = None
    color: str | None = None
    attachments: tuple[str, ...] = ()
    editable: bool = True
    deletable: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None
    created_by: str = ""
    updated_by: str = ""

    def __post_init__(self):
        # Frozen, so normalisation goes through object.__setattr__
        object.__setattr__(self, "start", ensure_aware(self.start))
        if self.end is not None:
            object.__setattr__(self, "end", ensure_aware(self.end))
            if self.end < self.start:
                raise ValueError(f"Event {self.id!r} ends before it starts")
        object.__setattr__(self, "assignee_ids", frozenset(self.assignee_ids))
        object.__setattr__(self, "tags", frozenset(self.tags))
        object.__setattr__(self, "attachments", tuple(self.attachments))
        _check_choice("event type", self.type, EVENT_TYPES)
        _check_choice("category", self.category, EVENT_CATEGORIES)
        _check_choice("priority", self.priority, EVENT_PRIORITIES)
        _check_choice("status", self.status, EVENT_STATUSES)

    def duration_minutes(self) -> int | None:
        """Event duration in minutes, or None if no end time."""
        if not self.end:
            return None
        return int((self.end - self.start).total_seconds() / 60)

    def format_time(self) -> str:
        """Format the event time for display."""
        if self.all_day:
            return "All day"
        return self.start.strftime("%H:%M")

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "CalendarEvent":
        """Create a CalendarEvent from an events API payload (ISO date strings)."""
        return cls(
            id=str(data["id"]),
            title=data["title"],
            description=data.get("description"),
            start=parse_datetime(data["start"]),
            end=_optional_datetime(data.get("end")),
            all_day=bool(data.get("allDay", False)),
            type=data.get("type", "task"),
            category=data.get("category", "personal"),
            priority=data.get("priority", "medium"),
            status=data.get("status", "planned"),
            owner_id=data.get("ownerId", ""),
            assignee_ids=frozenset(data.get("assigneeIds") or ()),
            team_id=data.get("teamId"),
            project_id=data.get("projectId"),
            tags=frozenset(data.get("tags") or ()),
            location=data.get("location"),
            meeting_url=data.get("meetingUrl"),
            color=data.get("color"),
            attachments=tuple(data.get("attachments") or ()),
            editable=bool(data.get("editable", True)),
            deletable=bool(data.get("deletable", True)),
            created_at=_optional_datetime(data.get("createdAt")),
            updated_at=_optional_datetime(data.get("updatedAt")),
            created_by=data.get("createdBy", ""),
            updated_by=data.get("updatedBy", ""),
        )

    def to_api(self) -> dict[str, Any]:
        """Serialize to the events API wire format."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "start": format_datetime(self.start),
            "end": format_datetime(self.end) if self.end else None,
            "allDay": self.all_day,
            "type": self.type,
            "category": self.category,
            "priority": self.priority,
            "status": self.status,
            "ownerId": self.owner_id,
            "assigneeIds": sorted(self.assignee_ids),
            "teamId": self.team_id,
            "projectId": self.project_id,
            "tags": sorted(self.tags),
            "location": self.location,
            "meetingUrl": self.meeting_url,
            "color": self.color,
            "attachments": list(self.attachments),
            "editable": self.editable,
            "deletable": self.deletable,
            "createdAt": format_datetime(self.created_at) if self.created_at else None,
            "updatedAt": format_datetime(self.updated_at) if self.updated_at else None,
            "createdBy": self.created_by,
            "updatedBy": self.updated_by,
        }


@dataclass(frozen=True)
class EventDraft:
    """Fields for a new event; the server assigns id and audit fields."""

    title: str
    start: datetime
    end: datetime | None = None
    all_day: bool = False
    type: str = "task"
    category: str = "personal"
    priority: str = "medium"
    assignee_ids: frozenset[str] = frozenset()
    team_id: str | None = None
    project_id: str | None = None
    tags: frozenset[str] = frozenset()
    description: str | None = None
    location: str | None = None
    meeting_url: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "start", ensure_aware(self.start))
        if self.end is not None:
            object.__setattr__(self, "end", ensure_aware(self.end))
            if self.end < self.start:
                raise ValueError("Event ends before it starts")
        object.__setattr__(self, "assignee_ids", frozenset(self.assignee_ids))
        object.__setattr__(self, "tags", frozenset(self.tags))
        _check_choice("event type", self.type, EVENT_TYPES)
        _check_choice("category", self.category, EVENT_CATEGORIES)
        _check_choice("priority", self.priority, EVENT_PRIORITIES)

    def to_api(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "start": format_datetime(self.start),
            "end": format_datetime(self.end) if self.end else None,
            "allDay": self.all_day,
            "type": self.type,
            "category": self.category,
            "priority": self.priority,
            "assigneeIds": sorted(self.assignee_ids),
            "teamId": self.team_id,
            "projectId": self.project_id,
            "tags": sorted(self.tags),
            "location": self.location,
            "meetingUrl": self.meeting_url,
        }


# Partial updates are sent with the wire names below
_CHANGE_FIELDS = {
    "title": "title",
    "description": "description",
    "start": "start",
    "end": "end",
    "all_day": "allDay",
    "type": "type",
    "category": "category",
    "priority": "priority",
    "status": "status",
    "assignee_ids": "assigneeIds",
    "team_id": "teamId",
    "project_id": "projectId",
    "tags": "tags",
    "location": "location",
    "meeting_url": "meetingUrl",
}


def changes_to_api(changes: Mapping[str, Any]) -> dict[str, Any]:
    """
    Convert a partial update (Python field names) to its wire payload.

    Raises ValueError for fields that cannot be updated.
    """
    payload: dict[str, Any] = {}
    for name, value in changes.items():
        if name not in _CHANGE_FIELDS:
            raise ValueError(f"Field '{name}' cannot be updated")
        if name in ("start", "end") and value is not None:
            value = format_datetime(value)
        elif name in ("assignee_ids", "tags"):
            value = sorted(value)
        payload[_CHANGE_FIELDS[name]] = value
    return payload


@dataclass(frozen=True)
class CalendarFilter:
    """A facet filter; active filters are OR-combined."""

    id: str
    name: str
    facet: str
    values: frozenset[str]
    active: bool = True
    color: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "values", frozenset(self.values))
        _check_choice("filter facet", self.facet, FILTER_FACETS)

    def toggled(self) -> "CalendarFilter":
        return replace(self, active=not self.active)

    def to_api(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.facet,
            "values": sorted(self.values),
            "active": self.active,
        }
        if self.color:
            data["color"] = self.color
        return data


@dataclass(frozen=True)
class DateRange:
    """A date range; both bounds are inclusive when filtering."""

    start: datetime
    end: datetime

    def __post_init__(self):
        object.__setattr__(self, "start", ensure_aware(self.start))
        object.__setattr__(self, "end", ensure_aware(self.end))
        if self.end < self.start:
            raise ValueError("Date range ends before it starts")

    def contains(self, dt: datetime) -> bool:
        return self.start <= dt <= self.end


@dataclass(frozen=True)
class SearchParams:
    """Query sent to the events API and applied locally by the filter engine."""

    query: str = ""
    date_range: DateRange | None = None
    filters: tuple[CalendarFilter, ...] = ()
    sort_by: str | None = "start"
    sort_order: str = "asc"

    def __post_init__(self):
        object.__setattr__(self, "filters", tuple(self.filters))
        if self.sort_by is not None:
            _check_choice("sort key", self.sort_by, SORT_KEYS)
        _check_choice("sort order", self.sort_order, SORT_ORDERS)

    def merged(self, **overrides: Any) -> "SearchParams":
        """Return a copy with the given fields replaced."""
        return replace(self, **overrides)

    def to_query(self) -> dict[str, str]:
        """Build the events API query string parameters."""
        query: dict[str, str] = {}
        if self.query:
            query["q"] = self.query
        if self.date_range:
            query["start"] = format_datetime(self.date_range.start)
            query["end"] = format_datetime(self.date_range.end)
        if self.filters:
            query["filters"] = json.dumps([f.to_api() for f in self.filters])
        if self.sort_by:
            query["sortBy"] = self.sort_by
            query["sortOrder"] = self.sort_order or "asc"
        return query


@dataclass(frozen=True)
class EventsPage:
    """One page of events returned by the events API."""

    events: tuple[CalendarEvent, ...]
    total: int
    has_more: bool = False
    next_cursor: str | None = None

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "EventsPage":
        events = tuple(CalendarEvent.from_api(item) for item in data.get("events", []))
        return cls(
            events=events,
            total=int(data.get("total", len(events))),
            has_more=bool(data.get("hasMore", False)),
            next_cursor=data.get("nextCursor"),
        )


@dataclass(frozen=True)
class BusinessHours:
    days_of_week: tuple[int, ...] = (1, 2, 3, 4, 5)
    start_time: str = "09:00"
    end_time: str = "17:00"


@dataclass(frozen=True)
class CalendarConfig:
    """View configuration for the rendering surface."""

    view: str = "dayGridMonth"
    date: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    editable: bool = True
    selectable: bool = True
    business_hours: BusinessHours = field(default_factory=BusinessHours)
    time_zone: str = "local"
    locale: str = "en"
    first_day: int = 1
    weekends: bool = True
    show_week_numbers: bool = False
    height: str | int = "auto"

    def __post_init__(self):
        object.__setattr__(self, "date", ensure_aware(self.date))
        _check_choice("view", self.view, CALENDAR_VIEWS)
        if not 0 <= self.first_day <= 6:
            raise ValueError(f"first_day must be 0-6, got {self.first_day}")

    def merged(self, changes: Mapping[str, Any]) -> "CalendarConfig":
        """Merge a partial configuration. Unknown keys raise ValueError."""
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(sorted(unknown))}")
        return replace(self, **changes)


DEFAULT_FILTERS: tuple[CalendarFilter, ...] = (
    CalendarFilter("personal", "Personal Tasks", "category", frozenset({"personal"}), True, "#3B82F6"),
    CalendarFilter("team", "Team Events", "category", frozenset({"team"}), True, "#10B981"),
    CalendarFilter("project", "Project Tasks", "category", frozenset({"project"}), True, "#F59E0B"),
    CalendarFilter("meetings", "Meetings", "type", frozenset({"meeting"}), True, "#8B5CF6"),
    CalendarFilter("deadlines", "Deadlines", "type", frozenset({"deadline"}), True, "#EF4444"),
)

DEFAULT_SEARCH_PARAMS = SearchParams(
    query="",
    date_range=None,
    filters=DEFAULT_FILTERS,
    sort_by="start",
    sort_order="asc",
)
