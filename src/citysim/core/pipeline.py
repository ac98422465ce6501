"""
Ordered event pipeline run once per simulation tick.

Every event reads the tick's elapsed time, so an event may appear only
once; a second copy would count the same milliseconds twice.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import yaml

from citysim.core.event import Event
from citysim.core.registry import get_event

if TYPE_CHECKING:
    from citysim.simulation import Simulation


@dataclass(slots=True)
class Pipeline:
    """
    Explicitly ordered list of events.

    Attributes
    ----------
    events : list[Event]
        Event instances in execution order.
    _event_map : dict[str, Event]
        Name lookup used by the editing methods.

    Raises
    ------
    ValueError
        If an event name appears more than once.
    """

    events: list[Event] = field(default_factory=list)
    _event_map: dict[str, Event] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        for event in self.events:
            self._check_new(event.name)
            self._event_map[event.name] = event

    def _check_new(self, name: str) -> None:
        if name in self._event_map:
            raise ValueError(f"Event '{name}' is already in the pipeline")

    @classmethod
    def from_event_list(cls, event_names: list[str]) -> Pipeline:
        """
        Build a pipeline from ordered event names.

        Raises
        ------
        KeyError
            If an event name is not registered.
        ValueError
            If a name is listed twice.
        """
        return cls(events=[get_event(name.strip())() for name in event_names])

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> Pipeline:
        """
        Build a pipeline from a YAML file with an ``events`` list of names.

        Raises
        ------
        ValueError
            If the file has no ``events`` key or lists an event twice.
        KeyError
            If an event is not registered.

        Examples
        --------
        >>> pipeline = Pipeline.from_yaml("my_city.yml")  # doctest: +SKIP
        """
        yaml_path = Path(yaml_path)
        with open(yaml_path) as f:
            config = yaml.safe_load(f)

        if not isinstance(config, dict) or "events" not in config:
            raise ValueError(f"YAML file must have 'events' key: {yaml_path}")

        return cls.from_event_list([str(name) for name in config["events"]])

    def execute(self, sim: Simulation) -> None:
        """Run every event in order."""
        for event in self.events:
            event.execute(sim)

    def insert_after(self, after: str, event: Event | str) -> None:
        """
        Insert *event* right after the event named *after*.

        Raises
        ------
        ValueError
            If *after* is not in the pipeline, or *event* already is.
        """
        if after not in self._event_map:
            raise ValueError(f"Event '{after}' not found in pipeline")

        if isinstance(event, str):
            event = get_event(event)()
        self._check_new(event.name)

        idx = self.events.index(self._event_map[after])
        self.events.insert(idx + 1, event)
        self._event_map[event.name] = event

    def remove(self, event_name: str) -> None:
        """
        Remove the event named *event_name*.

        Raises
        ------
        ValueError
            If the event is not in the pipeline.
        """
        if event_name not in self._event_map:
            raise ValueError(f"Event '{event_name}' not found in pipeline")

        self.events.remove(self._event_map.pop(event_name))

    def replace(self, old_name: str, new_event: Event | str) -> None:
        """
        Swap the event named *old_name* for *new_event*.

        Raises
        ------
        ValueError
            If *old_name* is not in the pipeline, or *new_event* is already
            elsewhere in it.
        """
        if old_name not in self._event_map:
            raise ValueError(f"Event '{old_name}' not found in pipeline")

        if isinstance(new_event, str):
            new_event = get_event(new_event)()
        if new_event.name != old_name:
            self._check_new(new_event.name)

        idx = self.events.index(self._event_map[old_name])
        self.events[idx] = new_event
        del self._event_map[old_name]
        self._event_map[new_event.name] = new_event

    def __len__(self) -> int:
        return len(self.events)

    def __repr__(self) -> str:
        return f"Pipeline(n_events={len(self.events)})"
