"""Ports - interfaces/protocols for external dependencies."""

from .event_gateway import EventGateway

__all__ = [
    "EventGateway",
]
