"""
Labor events: worker re-allocation and experience.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from citysim.core.decorators import event
from citysim.events._timing import interval_elapsed

if TYPE_CHECKING:
    from citysim.simulation import Simulation


@event
class LaborReevaluateAssignments:
    """
    Re-staff all buildings when allocations are stale, then push staffing
    into the buildings.

    A building is active iff it has a labor entry and either needs nobody
    or has at least one worker; its worker efficiency is the count-weighted
    mean profession multiplier times its staffing ratio.
    """

    def execute(self, sim: Simulation) -> None:
        from citysim.systems.labor import apply_staffing, needs_reevaluation

        if needs_reevaluation(sim.labor):
            staffing = sim.labor.reevaluate()
            self.get_logger().debug("Staffing after re-evaluation: %s", staffing)
        apply_staffing(sim.labor, sim.buildings.values())


@event
class LaborAccumulateExperience:
    """
    Assigned workers gain experience toward promotion.

    Rule
    ----
        experience += assigned · experience_rate   (every experience_interval)
    """

    def execute(self, sim: Simulation) -> None:
        from citysim.systems.labor import accumulate_experience

        cfg = sim.config
        if interval_elapsed(sim.labor, "experience_timer", sim.delta, cfg.experience_interval):
            accumulate_experience(sim.labor, cfg.experience_rate)
