"""Functional core - pure calendar logic with no I/O."""

from .events import (
    CalendarConfig,
    CalendarEvent,
    CalendarFilter,
    DateRange,
    EventDraft,
    EventsPage,
    SearchParams,
)
from .filters import events_for_date, filter_events, is_event_visible, sort_events
from .state import CalendarState, EventStateStore, reduce

__all__ = [
    # Events
    "CalendarConfig",
    "CalendarEvent",
    "CalendarFilter",
    "DateRange",
    "EventDraft",
    "EventsPage",
    "SearchParams",
    # Filters
    "events_for_date",
    "filter_events",
    "is_event_visible",
    "sort_events",
    # State
    "CalendarState",
    "EventStateStore",
    "reduce",
]
