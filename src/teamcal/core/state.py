"""Calendar state: actions, the pure reducer and the store that applies them."""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Mapping

from .events import (
    DEFAULT_FILTERS,
    DEFAULT_SEARCH_PARAMS,
    CalendarConfig,
    CalendarEvent,
    CalendarFilter,
    SearchParams,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalendarState:
    """Everything the rendering layer reads. Replaced, never mutated."""

    config: CalendarConfig = field(default_factory=CalendarConfig)
    events: tuple[CalendarEvent, ...] = ()
    loading: bool = False
    error: str | None = None
    selected_event: CalendarEvent | None = None
    filters: tuple[CalendarFilter, ...] = DEFAULT_FILTERS
    search_params: SearchParams = DEFAULT_SEARCH_PARAMS
    show_create_modal: bool = False
    show_edit_modal: bool = False
    show_delete_modal: bool = False

    def find_event(self, event_id: str) -> CalendarEvent | None:
        return next((e for e in self.events if e.id == event_id), None)


# ============== Actions ==============


@dataclass(frozen=True)
class SetLoading:
    loading: bool


@dataclass(frozen=True)
class SetError:
    message: str | None


@dataclass(frozen=True)
class SetEvents:
    events: tuple[CalendarEvent, ...]


@dataclass(frozen=True)
class AddEvent:
    event: CalendarEvent


@dataclass(frozen=True)
class UpdateEvent:
    event: CalendarEvent


@dataclass(frozen=True)
class DeleteEvent:
    event_id: str


@dataclass(frozen=True)
class SetConfig:
    changes: Mapping[str, Any]


@dataclass(frozen=True)
class SelectEvent:
    event: CalendarEvent | None


@dataclass(frozen=True)
class ToggleFilter:
    filter_id: str


@dataclass(frozen=True)
class SetSearchParams:
    params: SearchParams


@dataclass(frozen=True)
class ShowCreateModal:
    visible: bool


@dataclass(frozen=True)
class ShowEditModal:
    visible: bool


@dataclass(frozen=True)
class ShowDeleteModal:
    visible: bool


Action = (
    SetLoading
    | SetError
    | SetEvents
    | AddEvent
    | UpdateEvent
    | DeleteEvent
    | SetConfig
    | SelectEvent
    | ToggleFilter
    | SetSearchParams
    | ShowCreateModal
    | ShowEditModal
    | ShowDeleteModal
)


# ============== Reducer ==============


def reduce(state: CalendarState, action: Action) -> CalendarState:
    """
    Apply one action and return the next state.

    Pure function - no I/O. Every action variant is handled; anything else
    raises TypeError.
    """
    match action:
        case SetLoading(loading=loading):
            return replace(state, loading=loading)

        case SetError(message=message):
            return replace(state, error=message, loading=False)

        case SetEvents(events=events):
            return replace(state, events=tuple(events), loading=False, error=None)

        case AddEvent(event=event):
            return replace(
                state,
                events=state.events + (event,),
                show_create_modal=False,
                selected_event=event,
            )

        case UpdateEvent(event=event):
            selected = state.selected_event
            if selected is not None and selected.id == event.id:
                selected = event
            return replace(
                state,
                events=tuple(event if e.id == event.id else e for e in state.events),
                show_edit_modal=False,
                selected_event=selected,
            )

        case DeleteEvent(event_id=event_id):
            selected = state.selected_event
            if selected is not None and selected.id == event_id:
                selected = None
            return replace(
                state,
                events=tuple(e for e in state.events if e.id != event_id),
                show_delete_modal=False,
                selected_event=selected,
            )

        case SetConfig(changes=changes):
            return replace(state, config=state.config.merged(changes))

        case SelectEvent(event=event):
            return replace(state, selected_event=event)

        case ToggleFilter(filter_id=filter_id):
            if not any(f.id == filter_id for f in state.filters):
                return state
            return replace(
                state,
                filters=tuple(f.toggled() if f.id == filter_id else f for f in state.filters),
            )

        case SetSearchParams(params=params):
            return replace(state, search_params=params)

        case ShowCreateModal(visible=visible):
            return replace(state, show_create_modal=visible)

        case ShowEditModal(visible=visible):
            return replace(state, show_edit_modal=visible)

        case ShowDeleteModal(visible=visible):
            return replace(state, show_delete_modal=visible)

    raise TypeError(f"Unknown action: {action!r}")


# ============== Store ==============

Listener = Callable[[CalendarState, CalendarState], None]


class EventStateStore:
    """
    Holds the current CalendarState.

    State changes only through dispatch(); listeners are told about every
    dispatch that produced a different state.
    """

    def __init__(self, initial: CalendarState | None = None):
        self._state = initial or CalendarState()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> CalendarState:
        return self._state

    def dispatch(self, action: Action) -> CalendarState:
        """Apply an action and notify listeners. Returns the new state."""
        previous = self._state
        self._state = reduce(previous, action)
        logger.debug(f"Dispatched {type(action).__name__}")
        if self._state != previous:
            for listener in list(self._listeners):
                listener(previous, self._state)
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener. Returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
