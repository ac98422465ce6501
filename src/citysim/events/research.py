"""
Research event: project progress and tech effects on buildings.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from citysim.core.decorators import event

if TYPE_CHECKING:
    from citysim.simulation import Simulation


@event
class UpdateResearch:
    """
    Advance the active research project, then push the tech multipliers
    into every building so this tick's production sees them.

    Rule
    ----
        points += research_rate · delta_s
        days   += delta / day_length
        done   iff  points, days and building hours reached; success roll
    """

    def execute(self, sim: Simulation) -> None:
        from citysim.systems.research import advance_research, apply_research_effects

        outcome = advance_research(
            sim.research,
            sim.pool,
            sim.buildings.values(),
            sim.rng,
            sim.delta,
            sim.config.day_length,
        )
        if outcome is not None:
            self.get_logger().info(outcome.message)
        apply_research_effects(sim.research, sim.buildings.values())
