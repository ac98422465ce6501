"""
Market events: local price events, price fluctuation and consumption.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from citysim.core.decorators import event
from citysim.events._timing import interval_elapsed

if TYPE_CHECKING:
    from citysim.simulation import Simulation


@event
class PurgeLocalEvents:
    """
    Drop expired local events and reprice everything they touched, as well
    as everything touched by events whose start time was reached this tick.
    """

    def execute(self, sim: Simulation) -> None:
        from citysim.systems.pricing import reprice_for_events

        market = sim.market
        previous = sim.now - sim.delta
        started = [e for e in market.events if previous < e.start_time <= sim.now]
        expired = market.purge_expired_events(sim.now)
        if started or expired:
            reprice_for_events(market, sim.pool, sim.rng, sim.now, started + expired)


@event
class TriggerRandomEvents:
    """Occasionally start a local event drawn from the catalog templates."""

    def execute(self, sim: Simulation) -> None:
        from citysim.systems.pricing import maybe_trigger_random_event, reprice_for_events

        cfg = sim.config
        if not interval_elapsed(sim.market, "event_timer", sim.delta, cfg.random_event_interval):
            return
        started = maybe_trigger_random_event(
            sim.market, sim.rng, sim.now, cfg.random_event_chance
        )
        if started is not None:
            reprice_for_events(sim.market, sim.pool, sim.rng, sim.now, [started])


@event
class FluctuatePrices:
    """
    Periodic price update of goods, inflation and services.

    Rule
    ----
        supply = 0.7 · market_stock / market_cap + 0.3 · held / cap
        p      = round(base · (0.5 + (1 - supply) · 1.5) · noise · events),  p ≥ 1
        infl   = 0.8 · infl + 0.2 · mean(p / base)
    """

    def execute(self, sim: Simulation) -> None:
        from citysim.systems.pricing import (
            fluctuate_prices,
            refresh_service_prices,
            update_inflation,
        )

        cfg = sim.config
        market = sim.market
        if not interval_elapsed(
            market, "fluctuation_timer", sim.delta, cfg.price_fluctuation_interval
        ):
            return
        fluctuate_prices(market, sim.pool, sim.rng, sim.now)
        rate = update_inflation(market)
        refresh_service_prices(market, sim.rng, sim.now)
        self.get_logger().debug("Prices fluctuated; inflation %.3f", rate)


@event
class ProcessPopulationConsumption:
    """
    Population consumes goods and services; the outcome feeds each class's
    market happiness factor.

    Rule
    ----
        impact = ((0.7 · satisfaction + 0.3 · price_score) · 2 - 1) · 20 · importance
    """

    def execute(self, sim: Simulation) -> None:
        from citysim.systems.consumption import (
            consume_services,
            process_population_consumption,
        )
        from citysim.systems.population import apply_market_results

        cfg = sim.config
        labor = sim.labor
        if not interval_elapsed(
            sim.market, "consumption_timer", sim.delta, cfg.consumption_interval
        ):
            return

        populations = {cid: labor.class_population(cid) for cid in labor.class_order()}
        results = process_population_consumption(sim.market, populations, sim.pool)
        apply_market_results(
            labor, results, blend=cfg.market_blend, scale=cfg.market_impact_scale
        )
        consume_services(sim.market, labor.total_population)
        sim.last_consumption = results

        logger = self.get_logger()
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Consumption impact: %s",
                {cid: round(r.total_impact, 2) for cid, r in results.items()},
            )
