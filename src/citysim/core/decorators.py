"""
Decorator for compact Event definitions.

Instead of::

    from dataclasses import dataclass
    from citysim import Event

    @dataclass(slots=True)
    class RefillWell(Event):
        def execute(self, sim): ...

you can write::

    from citysim import event

    @event
    class RefillWell:
        def execute(self, sim): ...

The decorator adds the Event base, applies ``@dataclass(slots=True)`` and
leaves registration to ``Event.__init_subclass__``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, TypeVar

T = TypeVar("T")


def event(
    cls: type[T] | None = None,
    *,
    name: str | None = None,
    **dataclass_kwargs: Any,
) -> type[T] | Callable[[type[T]], type[T]]:
    """
    Define an Event with automatic inheritance and dataclass.

    Parameters
    ----------
    cls : type, optional
        The class to decorate (given implicitly by bare ``@event``).
    name : str, optional
        Registry name. Defaults to the snake_case class name.
    **dataclass_kwargs : Any
        Forwarded to ``@dataclass``; ``slots=True`` by default.

    Examples
    --------
    >>> @event(name="refill_well")  # doctest: +SKIP
    ... class Refill:
    ...     def execute(self, sim):
    ...         sim.pool.add_resources({"mana": 1})
    """
    from citysim.core.event import Event

    dataclass_kwargs.setdefault("slots", True)

    def decorator(cls: type[T]) -> type[T]:
        if not issubclass(cls, Event):
            # Rebuild with Event as the only base so slots stay valid.
            namespace = {
                "__module__": cls.__module__,
                "__qualname__": cls.__qualname__,
                "__doc__": cls.__doc__,
                "__annotations__": getattr(cls, "__annotations__", {}),
            }
            for attr_name in dir(cls):
                if not attr_name.startswith("__"):
                    namespace[attr_name] = getattr(cls, attr_name)

            cls = type(cls.__name__, (Event,), namespace)

        if name is not None:
            cls.name = name  # type: ignore[attr-defined]

        return dataclass(**dataclass_kwargs)(cls)

    if cls is None:
        return decorator
    return decorator(cls)
