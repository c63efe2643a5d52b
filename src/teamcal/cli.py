"""teamcal CLI - terminal view over the calendar facade."""

import json
import logging
import sys
from datetime import date, datetime, time, timezone, tzinfo

import click

from .adapters.event_cache import EventCache
from .adapters.http_gateway import HttpEventGateway
from .config import Config, load_config
from .core.events import (
    EVENT_CATEGORIES,
    EVENT_PRIORITIES,
    EVENT_STATUSES,
    EVENT_TYPES,
    SORT_KEYS,
    CalendarEvent,
    EventDraft,
    parse_datetime,
)
from .core.filters import sort_events
from .facade import CalendarFacade


def build_facade(config: Config) -> CalendarFacade:
    """Wire gateway, cache and store from configuration."""
    gateway = HttpEventGateway(config)
    cache = EventCache(gateway, ttl=config.cache_ttl_seconds)
    return CalendarFacade(
        gateway,
        cache=cache,
        team_id=config.team_id,
        project_id=config.project_id,
        initial_config=config.initial_view_config(),
    )


def _parse_when(ctx, param, value):
    """Click callback: ISO-8601 string to aware datetime."""
    if value is None:
        return None
    try:
        return parse_datetime(value)
    except ValueError:
        raise click.BadParameter(f"expected an ISO-8601 date or datetime, got {value!r}")


def _parse_range_end(ctx, param, value):
    """Click callback for a range end: a bare date covers that whole day."""
    if value is None:
        return None
    try:
        day = date.fromisoformat(value)
    except ValueError:
        return _parse_when(ctx, param, value)
    return datetime.combine(day, time(23, 59, 59, 999000), tzinfo=timezone.utc)


def _exit_on_error(facade: CalendarFacade) -> None:
    error = facade.state.error
    if error:
        click.echo(f"Error: {error}", err=True)
        sys.exit(1)


def _serialize(e: CalendarEvent) -> dict:
    return {
        "id": e.id,
        "title": e.title,
        "start": e.start.isoformat(),
        "end": e.end.isoformat() if e.end else None,
        "all_day": e.all_day,
        "type": e.type,
        "category": e.category,
        "priority": e.priority,
        "status": e.status,
        "assignees": sorted(e.assignee_ids),
        "tags": sorted(e.tags),
        "location": e.location,
    }


def _show_events(
    events: list[CalendarEvent],
    as_json: bool,
    empty_msg: str = "No events.",
    tz: tzinfo | None = None,
) -> None:
    """Shared event display logic. Days and times are shown in tz (None is system local)."""
    if as_json:
        click.echo(json.dumps([_serialize(e) for e in events], indent=2))
        return

    if not events:
        click.echo(empty_msg)
        return

    current_date = None
    for event in events:
        start = event.start.astimezone(tz)
        event_date = start.date()
        if event_date != current_date:
            if current_date is not None:
                click.echo()
            click.echo(f"### {event_date.strftime('%A, %B %d')}")
            current_date = event_date

        marker = "!" if event.priority in ("high", "critical") else " "
        loc = f" @ {event.location}" if event.location else ""
        when = event.format_time() if event.all_day else start.strftime("%H:%M")
        click.echo(f"  {when:8} {marker} {event.title} [{event.type}]{loc}  ({event.id})")


@click.group()
@click.version_option(package_name="teamcal")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx, debug: bool):
    """teamcal - team calendar from the terminal."""
    config = load_config()
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.DEBUG if debug else getattr(logging, config.log_level, logging.WARNING),
    )
    ctx.obj = config


@main.command()
@click.option("--query", "-q", default="", help="Free-text search on title, description and tags")
@click.option("--start", callback=_parse_when, help="Range start (ISO-8601)")
@click.option("--end", callback=_parse_range_end, help="Range end (ISO-8601; a bare date means end of day)")
@click.option("--toggle", "toggles", multiple=True, help="Flip a filter by id (repeatable)")
@click.option("--no-filters", is_flag=True, help="Deactivate every filter")
@click.option("--sort-by", type=click.Choice(SORT_KEYS), default="start", show_default=True)
@click.option("--desc", is_flag=True, help="Sort descending")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def events(config: Config, query, start, end, toggles, no_filters, sort_by, desc, as_json):
    """List visible events."""
    if (start is None) != (end is None):
        raise click.UsageError("--start and --end must be given together")

    facade = build_facade(config)
    if no_filters:
        facade.clear_filters()
    for filter_id in toggles:
        facade.toggle_filter(filter_id)
    if query:
        facade.set_search_query(query)
    if start is not None:
        facade.set_date_range(start, end)

    facade.load_events()
    _exit_on_error(facade)

    visible = sort_events(facade.get_filtered_events(), sort_by, "desc" if desc else "asc")
    _show_events(visible, as_json, tz=facade.display_tz())


@main.command()
@click.argument("day", required=False)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def day(config: Config, day: str | None, as_json: bool):
    """Show visible events starting on DAY (YYYY-MM-DD, default today)."""
    try:
        target = date.fromisoformat(day) if day else date.today()
    except ValueError:
        raise click.BadParameter(f"expected YYYY-MM-DD, got {day!r}", param_hint="DAY")

    facade = build_facade(config)
    facade.load_events()
    _exit_on_error(facade)
    _show_events(
        sort_events(facade.get_events_for_date(target)),
        as_json,
        f"No events on {target.isoformat()}.",
        facade.display_tz(),
    )


@main.command()
@click.argument("event_id")
@click.pass_obj
def show(config: Config, event_id: str):
    """Show one event."""
    facade = build_facade(config)
    event = facade.get_event(event_id)
    _exit_on_error(facade)
    click.echo(json.dumps(event.to_api(), indent=2))


@main.command()
@click.option("--title", required=True)
@click.option("--start", required=True, callback=_parse_when, help="Start (ISO-8601)")
@click.option("--end", callback=_parse_when, help="End (ISO-8601)")
@click.option("--all-day", is_flag=True)
@click.option("--type", "event_type", type=click.Choice(EVENT_TYPES), default="task", show_default=True)
@click.option("--category", type=click.Choice(EVENT_CATEGORIES), default="personal", show_default=True)
@click.option("--priority", type=click.Choice(EVENT_PRIORITIES), default="medium", show_default=True)
@click.option("--assignee", "assignees", multiple=True, help="Assignee id (repeatable)")
@click.option("--tag", "tags", multiple=True, help="Tag (repeatable)")
@click.option("--description")
@click.option("--location")
@click.option("--meeting-url")
@click.pass_obj
def create(config: Config, title, start, end, all_day, event_type, category, priority,
           assignees, tags, description, location, meeting_url):
    """Create an event."""
    try:
        draft = EventDraft(
            title=title,
            start=start,
            end=end,
            all_day=all_day,
            type=event_type,
            category=category,
            priority=priority,
            assignee_ids=frozenset(assignees),
            tags=frozenset(tags),
            description=description,
            location=location,
            meeting_url=meeting_url,
        )
    except ValueError as e:
        raise click.UsageError(str(e))

    facade = build_facade(config)
    event = facade.create_event(draft)
    _exit_on_error(facade)
    click.echo(f"Created {event.id}: {event.title}")


@main.command()
@click.argument("event_id")
@click.option("--title")
@click.option("--start", callback=_parse_when, help="Start (ISO-8601)")
@click.option("--end", callback=_parse_when, help="End (ISO-8601)")
@click.option("--status", type=click.Choice(EVENT_STATUSES))
@click.option("--priority", type=click.Choice(EVENT_PRIORITIES))
@click.option("--description")
@click.option("--location")
@click.pass_obj
def update(config: Config, event_id, title, start, end, status, priority, description, location):
    """Update fields of an event. Only given options are sent."""
    changes = {
        name: value
        for name, value in {
            "title": title,
            "start": start,
            "end": end,
            "status": status,
            "priority": priority,
            "description": description,
            "location": location,
        }.items()
        if value is not None
    }
    if not changes:
        raise click.UsageError("No fields to update")

    facade = build_facade(config)
    event = facade.update_event(event_id, **changes)
    _exit_on_error(facade)
    click.echo(f"Updated {event.id}: {event.title}")


@main.command()
@click.argument("event_ids", nargs=-1, required=True)
@click.pass_obj
def delete(config: Config, event_ids: tuple[str, ...]):
    """Delete one or more events."""
    facade = build_facade(config)
    if len(event_ids) == 1:
        facade.delete_event(event_ids[0])
    else:
        facade.bulk_delete_events(list(event_ids))
    _exit_on_error(facade)
    click.echo(f"Deleted {len(event_ids)} event(s)")


@main.command()
@click.pass_obj
def filters(config: Config):
    """List the available filters."""
    facade = build_facade(config)
    for f in facade.state.filters:
        state = "on " if f.active else "off"
        click.echo(f"[{state}] {f.id:10} {f.name} ({f.facet}: {', '.join(sorted(f.values))})")
    if facade.team_id:
        click.echo(f"[ctx] current-team  team {facade.team_id}")
    if facade.project_id:
        click.echo(f"[ctx] current-project  project {facade.project_id}")


if __name__ == "__main__":
    main()
