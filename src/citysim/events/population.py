"""
Population events: growth, happiness, profession changes and migration.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from citysim.core.decorators import event
from citysim.events._timing import interval_elapsed

if TYPE_CHECKING:
    from citysim.simulation import Simulation


@event
class PopulationGrowth:
    """
    Natural growth of the lowest class, bounded by housing.

    Rule
    ----
        growth = N · growth_rate · seconds · H / 50
    """

    def execute(self, sim: Simulation) -> None:
        from citysim.systems.population import grow_population

        born = grow_population(sim.labor, sim.delta, sim.config.growth_rate)
        if born:
            sim.labor.needs_reevaluation = True


@event
class UpdateHappiness:
    """
    Recompute class happiness from housing, market and base factors and
    smooth the overall happiness toward the population-weighted mean.
    """

    def execute(self, sim: Simulation) -> None:
        from citysim.systems.population import update_happiness

        cfg = sim.config
        if not interval_elapsed(sim.labor, "happiness_timer", sim.delta, cfg.happiness_interval):
            return
        overall = update_happiness(sim.labor, cfg.overall_blend)
        self.get_logger().debug("Overall happiness %.2f", overall)


@event
class CheckPromotions:
    """Roll experience-based promotions along the catalog paths."""

    def execute(self, sim: Simulation) -> None:
        from citysim.systems.population import check_promotions

        cfg = sim.config
        if not interval_elapsed(sim.labor, "promotion_timer", sim.delta, cfg.class_check_interval):
            return
        if check_promotions(sim.labor, sim.pool, sim.rng):
            sim.labor.needs_reevaluation = True


@event
class CheckDemotions:
    """Roll profession demotions under low happiness or overcrowding."""

    def execute(self, sim: Simulation) -> None:
        from citysim.systems.population import check_demotions

        cfg = sim.config
        if not interval_elapsed(sim.labor, "demotion_timer", sim.delta, cfg.class_check_interval):
            return
        if check_demotions(sim.labor, sim.rng, cfg):
            sim.labor.needs_reevaluation = True


@event
class CheckMigration:
    """
    Apply the happiness-driven population flows.

    Rule
    ----
        H_c < 20           → chance of losing part of class c
        20 ≤ H_c < 35      → chance of demoting part of class c
        H_c ≥ 75 / 85      → chance of moving part of class c up
        H > 70, N < 0.9·K  → chance of immigration
    """

    def execute(self, sim: Simulation) -> None:
        from citysim.systems.population import (
            apply_immigration,
            apply_unhappy_effects,
            apply_upward_mobility,
        )

        cfg = sim.config
        if not interval_elapsed(sim.labor, "migration_timer", sim.delta, cfg.migration_interval):
            return
        unhappy = apply_unhappy_effects(sim.labor, sim.rng, cfg)
        moved = apply_upward_mobility(sim.labor, sim.rng, cfg)
        arrived = apply_immigration(sim.labor, sim.rng, cfg)
        if unhappy["lost"] or unhappy["demoted"] or moved or arrived:
            sim.labor.needs_reevaluation = True
