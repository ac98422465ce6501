"""Event base class: one named step of the simulation tick."""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from citysim.simulation import Simulation


def _camel_to_snake(name: str) -> str:
    """Convert CamelCase to snake_case."""
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    return re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1).lower()


@dataclass(slots=True)
class Event(ABC):
    """
    Base class for every step of the city tick.

    An Event reads the elapsed time from ``sim.delta`` / ``sim.now``,
    calls into the systems and mutates the role state containers in place.
    Events run in the exact order given by the :class:`Pipeline`.

    Notes
    -----
    Subclasses register themselves through ``__init_subclass__`` under
    ``name``: the snake_case class name, or the ``event_name`` class
    keyword, as in ``class RefillWell(Event, event_name="refill_well")``.
    """

    name: ClassVar[str] = ""

    def __init_subclass__(cls, event_name: str = "", **kwargs: Any) -> None:
        super(Event, cls).__init_subclass__(**kwargs)

        # @dataclass(slots=True) builds a second class and re-enters this hook
        # without the keyword; keep the name set on the first pass.
        if event_name != "":
            cls.name = event_name
        elif cls.name == "":
            cls.name = _camel_to_snake(cls.__name__)

        from citysim.core.registry import _EVENT_REGISTRY

        _EVENT_REGISTRY[cls.name] = cls

    def get_logger(self) -> logging.Logger:
        """
        Logger for this event, ``citysim.events.<name>``.

        Per-event levels come from the ``logging.events`` config section::

            logging:
              events:
                update_happiness: DEBUG
                fluctuate_prices: WARNING
        """
        return logging.getLogger(f"citysim.events.{self.name}")

    @abstractmethod
    def execute(self, sim: Simulation) -> None:
        """
        Run the event against *sim*, mutating state in place.

        Parameters
        ----------
        sim : Simulation
            The simulation holding the roles, config and clock.
        """

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
