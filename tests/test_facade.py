"""Tests for the calendar facade."""

from datetime import date, datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from teamcal.adapters.http_gateway import CalendarServiceError, NetworkError
from teamcal.core.events import EventDraft
from teamcal.core.state import EventStateStore
from teamcal.facade import CalendarFacade

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


def _page(*events):
    return {"events": list(events), "total": len(events), "hasMore": False}


@pytest.fixture
def gateway(wire_event):
    gateway = MagicMock()
    gateway.get_events.return_value = _page(wire_event("a", "Alpha"), wire_event("b", "Beta"))
    return gateway


@pytest.fixture
def facade(gateway):
    return CalendarFacade(gateway, now=lambda: NOW)


def _ids(events):
    return [e.id for e in events]


class TestLoadEvents:
    def test_load_populates_store(self, facade, gateway):
        assert facade.load_events() is True
        assert _ids(facade.state.events) == ["a", "b"]
        assert facade.state.loading is False
        assert facade.state.error is None

    def test_second_load_served_from_cache(self, facade, gateway):
        facade.load_events()
        facade.load_events()
        assert gateway.get_events.call_count == 1

    def test_failed_load_keeps_previous_events(self, facade, gateway):
        facade.load_events()
        gateway.get_events.side_effect = NetworkError()
        assert facade.load_events(query="other") is False
        assert _ids(facade.state.events) == ["a", "b"]
        assert facade.state.error == "Network error occurred"
        assert facade.state.loading is False

    def test_unrecognized_failure_uses_generic_message(self, facade, gateway):
        gateway.get_events.side_effect = KeyError("events")
        facade.load_events()
        assert facade.state.error == "Failed to load events"

    def test_success_clears_previous_error(self, facade, gateway):
        gateway.get_events.side_effect = [NetworkError(), gateway.get_events.return_value]
        facade.load_events()
        assert facade.state.error is not None
        facade.load_events()
        assert facade.state.error is None

    def test_overrides_apply_to_one_load(self, facade, gateway):
        facade.load_events(query="standup")
        assert gateway.get_events.call_args.args[0].query == "standup"
        assert facade.state.search_params.query == ""

    def test_context_filters_sent_but_not_stored(self, gateway):
        facade = CalendarFacade(gateway, team_id="team-1", project_id="proj-1", now=lambda: NOW)
        facade.load_events()
        sent = gateway.get_events.call_args.args[0]
        ids = [f.id for f in sent.filters]
        assert ids[-2:] == ["current-team", "current-project"]
        assert sent.filters[-2].values == frozenset({"team-1"})
        assert "current-team" not in [f.id for f in facade.state.search_params.filters]

    def test_superseded_load_is_dropped(self, facade, gateway, wire_event):
        """A load that completes after a newer one started never reaches the store."""
        first = _page(wire_event("old"))
        second = _page(wire_event("new"))
        results = []

        def fetch(params):
            if params.query == "older":
                results.append(facade.load_events(query="newer"))
                return first
            return second

        gateway.get_events.side_effect = fetch
        assert facade.load_events(query="older") is False
        assert results == [True]
        assert _ids(facade.state.events) == ["new"]

    def test_superseded_failure_is_dropped(self, facade, gateway, wire_event):
        def fetch(params):
            if params.query == "older":
                facade.load_events(query="newer")
                raise NetworkError()
            return _page(wire_event("new"))

        gateway.get_events.side_effect = fetch
        facade.load_events(query="older")
        assert facade.state.error is None
        assert _ids(facade.state.events) == ["new"]


class TestMutations:
    def test_create_adds_event_and_invalidates_cache(self, facade, gateway, wire_event):
        facade.load_events()
        gateway.create_event.return_value = wire_event("c", "Gamma")

        event = facade.create_event(
            EventDraft(title="Gamma", start=datetime(2025, 1, 16, 9, 0, tzinfo=timezone.utc))
        )

        assert event.id == "c"
        assert len(facade.state.events) == 3
        assert facade.state.selected_event == event
        assert facade.state.loading is False
        facade.load_events()
        assert gateway.get_events.call_count == 2

    def test_create_fills_context(self, gateway, wire_event):
        facade = CalendarFacade(gateway, team_id="team-9", now=lambda: NOW)
        gateway.create_event.return_value = wire_event("c")
        facade.create_event(EventDraft(title="x", start=NOW))
        payload = gateway.create_event.call_args.args[0]
        assert payload["teamId"] == "team-9"
        assert payload["projectId"] is None

    def test_create_keeps_explicit_team(self, gateway, wire_event):
        facade = CalendarFacade(gateway, team_id="team-9", now=lambda: NOW)
        gateway.create_event.return_value = wire_event("c")
        facade.create_event(EventDraft(title="x", start=NOW, team_id="team-2"))
        assert gateway.create_event.call_args.args[0]["teamId"] == "team-2"

    def test_create_failure(self, facade, gateway):
        facade.load_events()
        gateway.create_event.side_effect = CalendarServiceError("Title is required", 422, "VALIDATION")
        assert facade.create_event(EventDraft(title="", start=NOW)) is None
        assert len(facade.state.events) == 2
        assert facade.state.error == "Title is required"
        assert facade.state.loading is False

    def test_failed_delete_leaves_events(self, facade, gateway):
        facade.load_events()
        gateway.delete_event.side_effect = CalendarServiceError("HTTP 500", 500)

        assert facade.delete_event("a") is False

        assert _ids(facade.state.events) == ["a", "b"]
        assert facade.state.error == "HTTP 500"
        assert facade.state.loading is False

    def test_delete(self, facade, gateway):
        facade.load_events()
        assert facade.delete_event("a") is True
        gateway.delete_event.assert_called_once_with("a")
        assert _ids(facade.state.events) == ["b"]
        assert facade.state.loading is False

    def test_update_sends_wire_changes_and_refreshes_selection(self, facade, gateway, wire_event):
        facade.load_events()
        facade.select_event(facade.state.events[0])
        gateway.update_event.return_value = wire_event("a", "Alpha v2")

        event = facade.update_event("a", title="Alpha v2")

        gateway.update_event.assert_called_once_with("a", {"title": "Alpha v2"})
        assert event.title == "Alpha v2"
        assert facade.state.selected_event.title == "Alpha v2"
        assert facade.state.loading is False

    def test_update_rejects_unknown_field_before_sending(self, facade, gateway):
        with pytest.raises(ValueError):
            facade.update_event("a", owner_id="someone")
        gateway.update_event.assert_not_called()
        assert facade.state.loading is False

    def test_update_failure(self, facade, gateway):
        facade.load_events()
        gateway.update_event.side_effect = RuntimeError("boom")
        assert facade.update_event("a", title="x") is None
        assert facade.state.error == "Failed to update event"
        assert facade.state.events[0].title == "Alpha"

    def test_bulk_update(self, facade, gateway, wire_event):
        facade.load_events()
        gateway.bulk_update_events.return_value = [wire_event("a", "A2"), wire_event("b", "B2")]

        events = facade.bulk_update_events({"a": {"title": "A2"}, "b": {"status": "completed"}})

        gateway.bulk_update_events.assert_called_once_with(
            [{"id": "a", "title": "A2"}, {"id": "b", "status": "completed"}]
        )
        assert _ids(events) == ["a", "b"]
        assert [e.title for e in facade.state.events] == ["A2", "B2"]

    def test_bulk_delete(self, facade, gateway):
        facade.load_events()
        assert facade.bulk_delete_events(["a", "b"]) is True
        assert facade.state.events == ()

    def test_bulk_delete_failure(self, facade, gateway):
        facade.load_events()
        gateway.bulk_delete_events.side_effect = NetworkError()
        assert facade.bulk_delete_events(["a"]) is False
        assert len(facade.state.events) == 2
        assert facade.state.error == "Network error occurred"

    def test_get_event_leaves_loaded_set(self, facade, gateway, wire_event):
        gateway.get_event.return_value = wire_event("z", "Zed")
        assert facade.get_event("z").title == "Zed"
        assert facade.state.events == ()

    def test_get_event_failure(self, facade, gateway):
        gateway.get_event.side_effect = CalendarServiceError("Event not found", 404, "NOT_FOUND")
        assert facade.get_event("z") is None
        assert facade.state.error == "Event not found"


class TestNavigation:
    def test_initial_date_from_clock(self, facade):
        assert facade.state.config.date == NOW

    def test_initial_config_applied(self, gateway):
        facade = CalendarFacade(gateway, initial_config={"view": "timeGridWeek"}, now=lambda: NOW)
        assert facade.state.config.view == "timeGridWeek"

    def test_initial_config_on_given_store(self, gateway):
        store = EventStateStore()
        facade = CalendarFacade(gateway, store=store, initial_config={"locale": "fr"})
        assert facade.store is store
        assert store.state.config.locale == "fr"

    def test_set_view(self, facade):
        facade.set_view("listWeek")
        assert facade.state.config.view == "listWeek"

    def test_date_change_triggers_load(self, facade):
        with patch.object(facade, "load_events") as load:
            facade.set_date(datetime(2025, 3, 1, tzinfo=timezone.utc))
        load.assert_called_once_with()

    def test_same_date_does_not_reload(self, facade):
        with patch.object(facade, "load_events") as load:
            facade.set_date(NOW)
            facade.set_view("timeGridDay")
        load.assert_not_called()

    def test_close_stops_reloading(self, facade):
        facade.close()
        with patch.object(facade, "load_events") as load:
            facade.set_date(datetime(2025, 3, 1, tzinfo=timezone.utc))
        load.assert_not_called()

    def test_navigate_month_clamps_to_month_end(self, gateway):
        facade = CalendarFacade(gateway, now=lambda: datetime(2025, 1, 31, 12, 0, tzinfo=timezone.utc))
        facade.navigate_month(1)
        assert facade.state.config.date == datetime(2025, 2, 28, 12, 0, tzinfo=timezone.utc)

    def test_navigate_month_backwards(self, facade):
        facade.navigate_month(-1)
        assert facade.state.config.date == datetime(2024, 12, 15, 12, 0, tzinfo=timezone.utc)

    def test_go_to_today(self, facade):
        facade.set_date(datetime(2030, 6, 1, tzinfo=timezone.utc))
        facade.go_to_today()
        assert facade.state.config.date == NOW


class TestFiltersAndSearch:
    def test_toggle_filter(self, facade):
        facade.toggle_filter("meetings")
        assert {f.id: f.active for f in facade.state.filters}["meetings"] is False

    def test_set_search_query(self, facade):
        facade.set_search_query("standup")
        assert facade.state.search_params.query == "standup"

    def test_set_date_range(self, facade):
        end = datetime(2025, 1, 31, tzinfo=timezone.utc)
        facade.set_date_range(NOW, end)
        assert facade.state.search_params.date_range.end == end

    def test_clear_filters(self, facade):
        facade.toggle_filter("meetings")
        facade.set_search_query("standup")
        facade.set_date_range(NOW, datetime(2025, 1, 31, tzinfo=timezone.utc))

        facade.clear_filters()

        assert not any(f.active for f in facade.state.filters)
        params = facade.state.search_params
        assert params.query == ""
        assert params.date_range is None
        assert not any(f.active for f in params.filters)

    def test_filtered_reads(self, facade, gateway, wire_event):
        gateway.get_events.return_value = _page(
            wire_event("a", start="2025-01-15T12:00:00.000Z", end=None),
            wire_event("b", type="task", category="client", start="2025-01-15T12:00:00.000Z", end=None),
            wire_event("c", start="2025-01-20T12:00:00.000Z", end=None),
        )
        facade.load_events()
        hidden = facade.state.find_event("b")

        assert _ids(facade.get_filtered_events()) == ["a", "c"]
        assert _ids(facade.get_events_for_date(date(2025, 1, 15))) == ["a"]
        assert facade.is_event_visible(hidden) is False
        assert facade.is_event_visible(facade.state.find_event("a")) is True


class TestModals:
    def test_create_modal(self, facade):
        facade.open_create_modal()
        assert facade.state.show_create_modal is True
        facade.close_create_modal()
        assert facade.state.show_create_modal is False

    def test_edit_modal_selects_event(self, facade, make_event):
        event = make_event()
        facade.open_edit_modal(event)
        assert facade.state.show_edit_modal is True
        assert facade.state.selected_event == event
        facade.close_edit_modal()
        assert facade.state.show_edit_modal is False

    def test_delete_modal_selects_event(self, facade, make_event):
        event = make_event()
        facade.open_delete_modal(event)
        assert facade.state.show_delete_modal is True
        assert facade.state.selected_event == event
        facade.close_delete_modal()
        assert facade.state.show_delete_modal is False


class TestInvalidLoadOverrides:
    def test_bad_sort_key_raises_before_loading(self, facade, gateway):
        with pytest.raises(ValueError, match="sort key"):
            facade.load_events(sort_by="due")
        assert facade.state.loading is False
        assert facade.state.error is None
        gateway.get_events.assert_not_called()

    def test_next_load_still_applies(self, facade, gateway):
        with pytest.raises(ValueError):
            facade.load_events(sort_order="sideways")
        assert facade.load_events() is True
        assert _ids(facade.state.events) == ["a", "b"]


class TestScopedReads:
    START = datetime(2025, 1, 1, tzinfo=timezone.utc)
    END = datetime(2025, 1, 31, tzinfo=timezone.utc)

    def test_date_range_read_ignores_search_state(self, facade, gateway):
        facade.set_search_query("standup")
        facade.toggle_filter("meetings")

        events = facade.get_events_by_date_range(self.START, self.END)

        params = gateway.get_events.call_args.args[0]
        assert params.query == ""
        assert params.filters == ()
        assert params.sort_by is None
        assert params.date_range.start == self.START
        assert _ids(events) == ["a", "b"]
        assert facade.state.events == ()

    def test_date_range_read_bypasses_cache(self, facade, gateway):
        facade.get_events_by_date_range(self.START, self.END)
        facade.get_events_by_date_range(self.START, self.END)
        assert gateway.get_events.call_count == 2

    def test_reversed_range_rejected(self, facade, gateway):
        with pytest.raises(ValueError):
            facade.get_team_events("team-1", self.END, self.START)
        gateway.get_team_events.assert_not_called()

    def test_team_events(self, facade, gateway, wire_event):
        gateway.get_team_events.return_value = _page(wire_event("t"))
        assert _ids(facade.get_team_events("team-1", self.START, self.END)) == ["t"]
        gateway.get_team_events.assert_called_once_with("team-1", self.START, self.END)

    def test_project_events(self, facade, gateway, wire_event):
        gateway.get_project_events.return_value = _page(wire_event("p"))
        assert _ids(facade.get_project_events("proj-1", self.START, self.END)) == ["p"]

    def test_failed_read_sets_error(self, facade, gateway):
        facade.load_events()
        gateway.get_project_events.side_effect = CalendarServiceError("Forbidden", 403)
        assert facade.get_project_events("proj-1", self.START, self.END) == []
        assert facade.state.error == "Forbidden"
        assert _ids(facade.state.events) == ["a", "b"]

    def test_unrecognized_failure_message(self, facade, gateway):
        gateway.get_team_events.side_effect = RuntimeError("boom")
        facade.get_team_events("team-1", self.START, self.END)
        assert facade.state.error == "Failed to load team events"


def test_construction_does_not_load(gateway):
    CalendarFacade(gateway, now=lambda: NOW)
    gateway.get_events.assert_not_called()
