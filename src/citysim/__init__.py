"""
citysim - Closed-loop economy core for a city-building game
===========================================================

Buildings convert resources, a stratified population supplies labor, and a
market sets prices and taxes trade. Production depends on labor, labor on
happiness, happiness on market outcomes, and market outcomes on production.

Quick Start
-----------
>>> import citysim as cs
>>> sim = cs.Simulation.init(seed=42)
>>> sim.construct_building("magic_forge").success
True
>>> sim.run(n_ticks=300, delta=100.0)
>>> sim.pool.value("arcane_essence") >= 0
True

Custom configuration via YAML file or keyword arguments:

>>> sim = cs.Simulation.init(config="my_city.yml", seed=42)  # doctest: +SKIP
>>> sim = cs.Simulation.init(time_scale=2.0, tax_rate=0.1)

Key Concepts
------------
**State containers**
  ``ResourcePool`` (tiered capped stock, production chains),
  ``Building`` (Idle/Producing state machine), ``LaborMarket``
  (professions, classes, allocations, happiness) and ``TradeMarket``
  (prices, market stock, inflation, local events, revenue).

**Event Pipeline**
  Each tick runs the events of ``default_pipeline.yml`` in order:
  production → labor → population → market → calendar.

**Deterministic RNG**
  Every stochastic decision draws from one ``numpy.random.Generator``.

Public API
----------
Simulation
    Facade owning the state and the pipeline.
Event, event
    Base class and decorator for custom tick events.
Pipeline
    Ordered event list.
Config, Catalog
    Validated tunables and read-only game data.
ActionResult, TradeResult, TaxReport
    Outcomes of player commands and taxation.
logging
    Logging with a DEEP_DEBUG level and per-event levels.

Notes
-----
- Time unit: simulated milliseconds; one day is 5000 ms by default
- Configuration precedence: defaults.yml → user config → kwargs
"""

from __future__ import annotations

__version__: str = "0.1.0"

from typing import TypeAlias

import numpy as np

# logging first so every module logger is a CityLogger
from . import logging  # noqa: E402 (circular‑safe)

Rng: TypeAlias = np.random.Generator


def make_rng(seed: int | None = None) -> Rng:
    """Create a new random number generator.

    Parameters
    ----------
    seed : int | None
        Seed for reproducibility. If `None`, uses a random seed.

    Returns
    -------
    Rng
        A NumPy random number generator (np.random.Generator).

    Examples
    --------
    >>> import citysim as cs
    >>> rng = cs.make_rng(42)
    >>> sim = cs.Simulation.init(seed=rng)
    """
    return np.random.default_rng(seed)


from .calendar import Calendar  # noqa: E402
from .catalog import Catalog  # noqa: E402
from .config import Config  # noqa: E402
from .core import Event, Pipeline, event, get_event, list_events  # noqa: E402
from .results import (  # noqa: E402
    ActionResult,
    TaxReport,
    TradeResult,
    resource_history_frame,
    tax_frame,
    transactions_frame,
)
from .roles import (  # noqa: E402
    Building,
    BuildingListener,
    BuildingState,
    LaborMarket,
    ResearchState,
    ResourcePool,
    TradeMarket,
)
from .simulation import Simulation  # noqa: E402  (circular‑safe)

__all__ = [
    "__version__",
    # Core
    "Simulation",
    "Config",
    "Catalog",
    "Calendar",
    # State containers
    "ResourcePool",
    "Building",
    "BuildingListener",
    "BuildingState",
    "LaborMarket",
    "ResearchState",
    "TradeMarket",
    # Results
    "ActionResult",
    "TradeResult",
    "TaxReport",
    # Export
    "resource_history_frame",
    "transactions_frame",
    "tax_frame",
    # Extensibility
    "Event",
    "Pipeline",
    "event",
    "get_event",
    "list_events",
    # Utilities
    "Rng",
    "make_rng",
    "logging",
]
