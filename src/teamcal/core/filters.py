"""Pure filtering logic for the visible event set - no I/O dependencies."""

from datetime import date, datetime, tzinfo
from typing import Iterable

from .events import (
    EVENT_PRIORITIES,
    EVENT_STATUSES,
    CalendarEvent,
    CalendarFilter,
    DateRange,
    SearchParams,
)


def matches_query(event: CalendarEvent, query: str) -> bool:
    """Case-insensitive substring match on title, description or any tag."""
    if not query:
        return True
    needle = query.lower()
    if needle in event.title.lower():
        return True
    if event.description and needle in event.description.lower():
        return True
    return any(needle in tag.lower() for tag in event.tags)


def matches_date_range(event: CalendarEvent, date_range: DateRange | None) -> bool:
    """Start-anchored: only the event's start must lie within the range."""
    if date_range is None:
        return True
    return date_range.contains(event.start)


def matches_filter(event: CalendarEvent, calendar_filter: CalendarFilter) -> bool:
    """Check one filter's facet predicate, ignoring its active flag."""
    values = calendar_filter.values
    match calendar_filter.facet:
        case "type":
            return event.type in values
        case "category":
            return event.category in values
        case "priority":
            return event.priority in values
        case "status":
            return event.status in values
        case "assignee":
            return not values.isdisjoint(event.assignee_ids)
        case "team":
            return event.team_id is not None and event.team_id in values
        case "project":
            return event.project_id is not None and event.project_id in values
    return True


def matches_facets(event: CalendarEvent, filters: Iterable[CalendarFilter]) -> bool:
    """
    OR-combine all active filters, regardless of facet.

    With no active filters every event passes.
    """
    active = [f for f in filters if f.active]
    if not active:
        return True
    return any(matches_filter(event, f) for f in active)


def filter_events(
    events: Iterable[CalendarEvent],
    filters: Iterable[CalendarFilter],
    params: SearchParams,
) -> list[CalendarEvent]:
    """
    Reduce events to the currently visible subset.

    Each event goes through free text, then date range, then facets,
    stopping at the first failing stage.

    Pure function - no I/O.
    """
    active = [f for f in filters if f.active]
    return [
        e
        for e in events
        if matches_query(e, params.query)
        and matches_date_range(e, params.date_range)
        and matches_facets(e, active)
    ]


def _local_day(value: datetime, tz: tzinfo | None) -> date:
    # astimezone(None) converts to the system's local zone
    return value.astimezone(tz).date()


def events_for_date(
    events: Iterable[CalendarEvent],
    filters: Iterable[CalendarFilter],
    params: SearchParams,
    day: date | datetime,
    tz: tzinfo | None = None,
) -> list[CalendarEvent]:
    """
    Visible events starting on the given calendar day.

    Days are compared in `tz` (local time when None). Multi-day events only
    appear on their start day.
    """
    if isinstance(day, datetime):
        target = _local_day(day, tz) if day.tzinfo else day.date()
    else:
        target = day
    return [e for e in filter_events(events, filters, params) if _local_day(e.start, tz) == target]


def is_event_visible(
    event: CalendarEvent,
    events: Iterable[CalendarEvent],
    filters: Iterable[CalendarFilter],
    params: SearchParams,
) -> bool:
    """True iff the event's id is in the filtered output."""
    return any(e.id == event.id for e in filter_events(events, filters, params))


_PRIORITY_RANK = {p: i for i, p in enumerate(EVENT_PRIORITIES)}
_STATUS_RANK = {s: i for i, s in enumerate(EVENT_STATUSES)}


def sort_events(
    events: Iterable[CalendarEvent],
    sort_by: str | None = "start",
    sort_order: str = "asc",
) -> list[CalendarEvent]:
    """
    Sort events by start, title, priority or status.

    Priority ranks low < medium < high < critical. Ties keep their input order.
    """
    events = list(events)
    if not sort_by:
        return events

    def sort_key(e: CalendarEvent):
        match sort_by:
            case "title":
                return e.title.lower()
            case "priority":
                return _PRIORITY_RANK[e.priority]
            case "status":
                return _STATUS_RANK[e.status]
        return e.start

    return sorted(events, key=sort_key, reverse=sort_order == "desc")
