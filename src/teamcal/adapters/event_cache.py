"""Read-through TTL cache for event queries."""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from teamcal.core.events import EventsPage, SearchParams, format_datetime
from teamcal.ports import EventGateway

logger = logging.getLogger(__name__)

EVENTS_NAMESPACE = "events:"
DEFAULT_TTL_SECONDS = 5 * 60


@dataclass
class CacheEntry:
    """A cached payload and when it was stored."""

    payload: EventsPage
    timestamp: float
    ttl: float

    def is_valid(self, now: float) -> bool:
        return now - self.timestamp < self.ttl


def canonical_key(params: SearchParams) -> str:
    """
    Build an order-independent cache key for a query.

    Filters are sorted by id and their values sorted, so two queries that
    differ only in ordering share a key.
    """
    filters = sorted(
        (
            {
                "id": f.id,
                "facet": f.facet,
                "values": sorted(f.values),
                "active": f.active,
            }
            for f in params.filters
        ),
        key=lambda item: item["id"],
    )
    date_range = None
    if params.date_range:
        date_range = [
            format_datetime(params.date_range.start),
            format_datetime(params.date_range.end),
        ]
    payload: dict[str, Any] = {
        "query": params.query,
        "dateRange": date_range,
        "filters": filters,
        "sortBy": params.sort_by,
        "sortOrder": params.sort_order,
    }
    return EVENTS_NAMESPACE + json.dumps(payload, sort_keys=True, separators=(",", ":"))


class EventCache:
    """
    TTL cache in front of EventGateway.get_events.

    Entries older than their ttl are misses. Every miss sweeps all expired
    entries, so keys left behind by navigation do not pile up. Identical
    in-flight queries are not deduplicated.
    """

    def __init__(
        self,
        gateway: EventGateway,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.gateway = gateway
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _lookup(self, key: str) -> EventsPage | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not entry.is_valid(self._clock()):
            del self._entries[key]
            return None
        return entry.payload

    def _sweep(self) -> None:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if not entry.is_valid(now)]
        for key in expired:
            del self._entries[key]

    def get(self, params: SearchParams, use_cache: bool = True) -> EventsPage:
        """Return cached events for params, fetching through the gateway on a miss."""
        key = canonical_key(params)

        if use_cache:
            cached = self._lookup(key)
            if cached is not None:
                logger.debug(f"Cache hit for {key}")
                return cached

        logger.debug(f"Cache miss for {key}")
        self._sweep()
        page = EventsPage.from_api(self.gateway.get_events(params))
        self._entries[key] = CacheEntry(payload=page, timestamp=self._clock(), ttl=self.ttl)
        return page

    def invalidate_all(self) -> int:
        """Drop every entry in the events namespace. Returns how many were dropped."""
        stale = [key for key in self._entries if key.startswith(EVENTS_NAMESPACE)]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.debug(f"Invalidated {len(stale)} cached event queries")
        return len(stale)
