"""Event/pipeline infrastructure for the city tick."""

from typing import Any, Callable

from citysim.core.decorators import event as event_decorator
from citysim.core.event import Event
from citysim.core.pipeline import Pipeline
from citysim.core.registry import get_event, list_events

event: Callable[..., Any] = event_decorator

__all__ = [
    "Event",
    "Pipeline",
    "event",
    "get_event",
    "list_events",
]
