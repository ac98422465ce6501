"""
Production events: the resource pool clock and building state machines.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from citysim.core.decorators import event

if TYPE_CHECKING:
    from citysim.simulation import Simulation


@event
class UpdateResourcePool:
    """
    Run timer-driven chains, refresh production-rate estimates and sample
    the daily resource history.

    Rule
    ----
        fire chain  iff  now - last_production_time > interval
    """

    def execute(self, sim: Simulation) -> None:
        produced = sim.pool.tick(sim.now, sim.delta)
        if produced:
            self.get_logger().debug("Timer chains produced: %s", produced)


@event
class BuildingsUpdateProduction:
    """
    Advance every building's Idle/Producing state machine.

    Rule
    ----
        progress += delta · base_efficiency · worker_efficiency
        commit   iff  progress ≥ production_time
    """

    def execute(self, sim: Simulation) -> None:
        logger = self.get_logger()
        completed = 0
        for building in sim.buildings.values():
            if building.update_production(sim.now, sim.delta, sim.pool) is not None:
                completed += 1
        if completed and logger.isEnabledFor(logging.DEBUG):
            logger.debug("%d buildings completed a cycle at t=%.0f", completed, sim.now)
