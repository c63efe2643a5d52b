"""Calendar facade - the one object a rendering surface talks to.

Loads go through the EventCache, other reads and writes go straight to the
gateway, and every outcome lands in the EventStateStore. Gateway failures
never propagate: they are reduced to a message in `state.error`.
"""

import logging
from dataclasses import replace
from datetime import date, datetime, timezone, tzinfo
from typing import Any, Callable, Mapping
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta

from .adapters.event_cache import EventCache
from .adapters.http_gateway import CalendarServiceError
from .core.events import (
    CalendarConfig,
    CalendarEvent,
    CalendarFilter,
    DateRange,
    EventDraft,
    EventsPage,
    SearchParams,
    changes_to_api,
    ensure_aware,
)
from .core.filters import events_for_date, filter_events, is_event_visible
from .core.state import (
    AddEvent,
    CalendarState,
    DeleteEvent,
    EventStateStore,
    SelectEvent,
    SetConfig,
    SetError,
    SetEvents,
    SetLoading,
    SetSearchParams,
    ShowCreateModal,
    ShowDeleteModal,
    ShowEditModal,
    ToggleFilter,
    UpdateEvent,
)
from .ports import EventGateway

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CalendarFacade:
    """Coordinates cache, store and filter engine for one calendar view."""

    def __init__(
        self,
        gateway: EventGateway,
        cache: EventCache | None = None,
        store: EventStateStore | None = None,
        team_id: str | None = None,
        project_id: str | None = None,
        initial_config: Mapping[str, Any] | None = None,
        now: Callable[[], datetime] = _utc_now,
    ):
        self.gateway = gateway
        self.cache = cache or EventCache(gateway)
        self.team_id = team_id or None
        self.project_id = project_id or None
        self._now = now
        self._load_seq = 0

        if store is None:
            config = CalendarConfig(date=now()).merged(initial_config or {})
            store = EventStateStore(CalendarState(config=config))
        elif initial_config:
            store.dispatch(SetConfig(dict(initial_config)))
        self.store = store

        # Reload whenever the visible date changes
        self._unsubscribe = self.store.subscribe(self._on_state_change)

    @property
    def state(self) -> CalendarState:
        return self.store.state

    def close(self) -> None:
        """Stop observing the store."""
        self._unsubscribe()

    def _on_state_change(self, previous: CalendarState, current: CalendarState) -> None:
        if previous.config.date != current.config.date:
            self.load_events()

    def _fail(self, fallback: str, error: Exception) -> None:
        """Record a failed remote operation in the store."""
        if isinstance(error, CalendarServiceError):
            logger.warning(f"{fallback}: {error.message} (status={error.status_code}, code={error.code})")
            message = error.message
        else:
            logger.error(f"{fallback}: {type(error).__name__}: {error}", exc_info=error)
            message = fallback
        self.store.dispatch(SetError(message))

    def _context_filters(self) -> tuple[CalendarFilter, ...]:
        filters = []
        if self.team_id:
            filters.append(
                CalendarFilter("current-team", "Current Team", "team", frozenset({self.team_id}), True)
            )
        if self.project_id:
            filters.append(
                CalendarFilter("current-project", "Current Project", "project", frozenset({self.project_id}), True)
            )
        return tuple(filters)

    # ============== Loading ==============

    def load_events(self, **overrides: Any) -> bool:
        """
        Load events for the current search params through the cache.

        Keyword overrides (query, date_range, filters, sort_by, sort_order)
        apply to this load only. Returns True if the result reached the store.
        A load overtaken by a newer one is dropped when it completes.

        Raises ValueError for invalid overrides; nothing is sent.
        """
        params = self.store.state.search_params.merged(**overrides)
        params = params.merged(filters=params.filters + self._context_filters())

        self._load_seq += 1
        seq = self._load_seq
        self.store.dispatch(SetLoading(True))

        try:
            page = self.cache.get(params)
        except Exception as e:
            if seq != self._load_seq:
                logger.info(f"Discarding failure of superseded load #{seq}")
                return False
            self._fail("Failed to load events", e)
            return False

        if seq != self._load_seq:
            logger.info(f"Discarding result of superseded load #{seq}")
            return False

        self.store.dispatch(SetEvents(page.events))
        logger.debug(f"Loaded {len(page.events)} of {page.total} events")
        return True

    # ============== Mutations ==============

    def create_event(self, draft: EventDraft) -> CalendarEvent | None:
        """Create an event and add the server's copy to the store."""
        if self.team_id and not draft.team_id:
            draft = replace(draft, team_id=self.team_id)
        if self.project_id and not draft.project_id:
            draft = replace(draft, project_id=self.project_id)

        self.store.dispatch(SetLoading(True))
        try:
            event = CalendarEvent.from_api(self.gateway.create_event(draft.to_api()))
        except Exception as e:
            self._fail("Failed to create event", e)
            return None

        self.store.dispatch(AddEvent(event))
        self.cache.invalidate_all()
        self.store.dispatch(SetLoading(False))
        logger.info(f"Created event {event.id}")
        return event

    def update_event(self, event_id: str, **changes: Any) -> CalendarEvent | None:
        """
        Apply a partial update and replace the event in the store.

        Raises ValueError for fields that cannot be updated; nothing is sent.
        """
        payload = changes_to_api(changes)

        self.store.dispatch(SetLoading(True))
        try:
            event = CalendarEvent.from_api(self.gateway.update_event(event_id, payload))
        except Exception as e:
            self._fail("Failed to update event", e)
            return None

        self.store.dispatch(UpdateEvent(event))
        self.cache.invalidate_all()
        self.store.dispatch(SetLoading(False))
        logger.info(f"Updated event {event.id}")
        return event

    def delete_event(self, event_id: str) -> bool:
        """Delete an event and drop it from the store."""
        self.store.dispatch(SetLoading(True))
        try:
            self.gateway.delete_event(event_id)
        except Exception as e:
            self._fail("Failed to delete event", e)
            return False

        self.store.dispatch(DeleteEvent(event_id))
        self.cache.invalidate_all()
        self.store.dispatch(SetLoading(False))
        logger.info(f"Deleted event {event_id}")
        return True

    def bulk_update_events(self, updates: Mapping[str, Mapping[str, Any]]) -> list[CalendarEvent]:
        """Apply partial updates keyed by event id in one request."""
        payload = [{"id": event_id, **changes_to_api(changes)} for event_id, changes in updates.items()]

        self.store.dispatch(SetLoading(True))
        try:
            events = [CalendarEvent.from_api(item) for item in self.gateway.bulk_update_events(payload)]
        except Exception as e:
            self._fail("Failed to update events", e)
            return []

        for event in events:
            self.store.dispatch(UpdateEvent(event))
        self.cache.invalidate_all()
        self.store.dispatch(SetLoading(False))
        return events

    def bulk_delete_events(self, event_ids: list[str]) -> bool:
        """Delete several events in one request."""
        self.store.dispatch(SetLoading(True))
        try:
            self.gateway.bulk_delete_events(list(event_ids))
        except Exception as e:
            self._fail("Failed to delete events", e)
            return False

        for event_id in event_ids:
            self.store.dispatch(DeleteEvent(event_id))
        self.cache.invalidate_all()
        self.store.dispatch(SetLoading(False))
        return True

    def get_event(self, event_id: str) -> CalendarEvent | None:
        """Fetch one event from the server without touching the loaded set."""
        try:
            return CalendarEvent.from_api(self.gateway.get_event(event_id))
        except Exception as e:
            self._fail("Failed to load event", e)
            return None

    def _read_events(self, fallback: str, fetch: Callable[[], dict[str, Any]]) -> list[CalendarEvent]:
        try:
            return list(EventsPage.from_api(fetch()).events)
        except Exception as e:
            self._fail(fallback, e)
            return []

    def get_events_by_date_range(self, start: datetime, end: datetime) -> list[CalendarEvent]:
        """Fetch events starting between start and end, ignoring search params and filters."""
        params = SearchParams(date_range=DateRange(start, end), sort_by=None)
        return self._read_events("Failed to load events", lambda: self.gateway.get_events(params))

    def get_team_events(self, team_id: str, start: datetime, end: datetime) -> list[CalendarEvent]:
        """Fetch one team's events between start and end."""
        span = DateRange(start, end)
        return self._read_events(
            "Failed to load team events",
            lambda: self.gateway.get_team_events(team_id, span.start, span.end),
        )

    def get_project_events(self, project_id: str, start: datetime, end: datetime) -> list[CalendarEvent]:
        """Fetch one project's events between start and end."""
        span = DateRange(start, end)
        return self._read_events(
            "Failed to load project events",
            lambda: self.gateway.get_project_events(project_id, span.start, span.end),
        )

    # ============== Navigation ==============

    def set_view(self, view: str) -> None:
        self.store.dispatch(SetConfig({"view": view}))

    def set_date(self, target: datetime) -> None:
        """Move the visible date. Unchanged dates are ignored so no reload fires."""
        target = ensure_aware(target)
        if target == self.state.config.date:
            return
        self.store.dispatch(SetConfig({"date": target}))

    def navigate_month(self, direction: int) -> None:
        """Step the visible date by whole months; day-of-month clamps to the month's end."""
        self.set_date(self.state.config.date + relativedelta(months=direction))

    def go_to_today(self) -> None:
        self.set_date(self._now())

    # ============== Selection, filters, modals ==============

    def select_event(self, event: CalendarEvent | None) -> None:
        self.store.dispatch(SelectEvent(event))

    def toggle_filter(self, filter_id: str) -> None:
        self.store.dispatch(ToggleFilter(filter_id))

    def set_search_query(self, query: str) -> None:
        params = self.state.search_params.merged(query=query)
        self.store.dispatch(SetSearchParams(params))

    def set_date_range(self, start: datetime, end: datetime) -> None:
        params = self.state.search_params.merged(date_range=DateRange(start, end))
        self.store.dispatch(SetSearchParams(params))

    def clear_filters(self) -> None:
        """Deactivate every filter and drop the query and date range."""
        state = self.state
        cleared = tuple(replace(f, active=False) for f in state.filters)
        self.store.dispatch(
            SetSearchParams(state.search_params.merged(filters=cleared, query="", date_range=None))
        )
        for f in state.filters:
            if f.active:
                self.store.dispatch(ToggleFilter(f.id))

    def open_create_modal(self) -> None:
        self.store.dispatch(ShowCreateModal(True))

    def close_create_modal(self) -> None:
        self.store.dispatch(ShowCreateModal(False))

    def open_edit_modal(self, event: CalendarEvent) -> None:
        self.store.dispatch(SelectEvent(event))
        self.store.dispatch(ShowEditModal(True))

    def close_edit_modal(self) -> None:
        self.store.dispatch(ShowEditModal(False))

    def open_delete_modal(self, event: CalendarEvent) -> None:
        self.store.dispatch(SelectEvent(event))
        self.store.dispatch(ShowDeleteModal(True))

    def close_delete_modal(self) -> None:
        self.store.dispatch(ShowDeleteModal(False))

    # ============== Reads ==============

    def display_tz(self) -> tzinfo | None:
        """Zone used for day boundaries and times. None means system local."""
        name = self.state.config.time_zone
        if not name or name == "local":
            return None
        return ZoneInfo(name)

    def get_filtered_events(self) -> list[CalendarEvent]:
        state = self.state
        return filter_events(state.events, state.filters, state.search_params)

    def get_events_for_date(self, day: date | datetime) -> list[CalendarEvent]:
        state = self.state
        return events_for_date(state.events, state.filters, state.search_params, day, self.display_tz())

    def is_event_visible(self, event: CalendarEvent) -> bool:
        state = self.state
        return is_event_visible(event, state.events, state.filters, state.search_params)
