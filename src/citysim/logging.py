"""
Logging for citysim.

Adds a DEEP level (5) below DEBUG for per-tick, per-chain tracing and a
:class:`CityLogger` with a ``deep()`` method. Loggers follow the package
layout: ``citysim.roles.resource_pool``, ``citysim.systems.labor`` and
``citysim.events.<event_name>`` for pipeline events, so one event can be
made verbose without flooding the rest of the tick.

Levels in use
-------------
- ERROR: invariant violations (a chain committed without registration,
  an assignment whose building type is unknown)
- WARNING: unknown catalog ids, rejected player operations
- INFO: construction, promotions, migration, monthly tax (default)
- DEBUG: per-interval summaries (prices, staffing, consumption)
- DEEP (5): per-tick and per-chain output

Examples
--------
>>> from citysim import logging
>>> logger = logging.getLogger("citysim.events.fluctuate_prices")
>>> logger.deep("only shown at DEEP")

Per-event levels are read from the ``logging`` config section:

>>> import citysim as cs
>>> sim = cs.Simulation.init(
...     logging={"default_level": "WARNING", "events": {"fluctuate_prices": "DEBUG"}}
... )

See Also
--------
Event.get_logger : Logger of a pipeline event
"""

import logging
from typing import Any, Mapping

CRITICAL = logging.CRITICAL
ERROR = logging.ERROR
WARNING = logging.WARNING
INFO = logging.INFO
DEBUG = logging.DEBUG
DEEP_DEBUG = 5
logging.addLevelName(DEEP_DEBUG, "DEEP")

ROOT = "citysim"
EVENTS = f"{ROOT}.events"


class CityLogger(logging.Logger):
    """Logger with a ``deep()`` method for the DEEP level."""

    def deep(self, msg: str, *args: Any, **kwargs: Any) -> None:
        if self.isEnabledFor(DEEP_DEBUG):
            self._log(DEEP_DEBUG, msg, args, **kwargs)


logging.setLoggerClass(CityLogger)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)


def getLogger(name: str | None = None) -> CityLogger:
    """Return the :class:`CityLogger` called *name* (root logger if None)."""
    return logging.getLogger(name)  # type: ignore[return-value]


def level_from_name(name: str) -> int:
    """
    Numeric level for a case-insensitive name, ``"DEEP"`` and
    ``"DEEP_DEBUG"`` included.

    Raises
    ------
    ValueError
        If *name* is not a known level.
    """
    key = name.upper()
    if key in ("DEEP", "DEEP_DEBUG"):
        return DEEP_DEBUG
    level = logging.getLevelName(key)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level '{name}'")
    return level


def configure(log_config: Mapping[str, Any]) -> None:
    """
    Apply a ``{"default_level": str, "events": {name: level}}`` mapping.

    The default level goes on the ``citysim`` logger; each event entry sets
    ``citysim.events.<name>``.
    """
    default = log_config.get("default_level", "INFO")
    logging.getLogger(ROOT).setLevel(level_from_name(default))
    for event_name, level in (log_config.get("events") or {}).items():
        logging.getLogger(f"{EVENTS}.{event_name}").setLevel(level_from_name(level))
