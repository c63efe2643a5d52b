"""Adapters - I/O implementations of ports."""

from .http_gateway import CalendarServiceError, HttpEventGateway, NetworkError
from .event_cache import EventCache, canonical_key

__all__ = [
    "CalendarServiceError",
    "HttpEventGateway",
    "NetworkError",
    "EventCache",
    "canonical_key",
]
