"""
Population consumption of goods and services.

For each social class and each demand category:

- demanded = ``rate * class_population``, split evenly over the
  category's resources;
- each resource is consumed from the player's pool up to availability and
  paid at its current market price (the category base price when the
  resource is not traded);
- ``satisfaction = consumed / demanded``,
  ``price_score = min(1, base_price / avg_paid)``,
  ``impact = ((0.7 * satisfaction + 0.3 * price_score) * 2 - 1) * 20 * importance``.

The class's summed impact is handed to the labor market; all spending goes
into the market's monthly revenue.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Mapping

from citysim.roles.labor import DemandOutcome
from citysim.roles.market import ClassConsumption

if TYPE_CHECKING:
    from citysim.catalog import DemandSpec
    from citysim.roles.market import TradeMarket
    from citysim.roles.resource_pool import ResourcePool

log = logging.getLogger(__name__)

SATISFACTION_WEIGHT = 0.7
PRICE_WEIGHT = 0.3
IMPACT_SCALE = 20.0


def demand_impact(satisfaction: float, price_score: float, importance: float) -> float:
    score = SATISFACTION_WEIGHT * satisfaction + PRICE_WEIGHT * price_score
    return (score * 2.0 - 1.0) * IMPACT_SCALE * importance


def _consume_demand(
    market: TradeMarket, demand: DemandSpec, population: int, pool: ResourcePool
) -> tuple[DemandOutcome, float]:
    demanded = demand.rate * population
    if demanded <= 0 or not demand.resources:
        return DemandOutcome(1.0, 1.0, 0.0, demand.importance), 0.0

    per_resource = demanded / len(demand.resources)
    consumed = 0.0
    cost = 0.0
    for rid in demand.resources:
        if rid not in pool.resources:
            log.warning("Demand '%s' maps to unknown resource '%s'", demand.id, rid)
            continue
        taken = pool.consume_resources({rid: per_resource}).get(rid, 0.0)
        if taken <= 0:
            continue
        price = market.price_of(rid)
        if price is None:
            price = demand.base_price
        consumed += taken
        cost += taken * price
        market.record_transaction(rid, taken, price, "consumption")

    satisfaction = min(1.0, consumed / demanded)
    avg_paid = cost / consumed if consumed > 0 else demand.base_price
    price_score = min(1.0, max(0.0, demand.base_price / avg_paid)) if avg_paid > 0 else 1.0
    impact = demand_impact(satisfaction, price_score, demand.importance)
    return DemandOutcome(satisfaction, price_score, impact, demand.importance), cost


def process_population_consumption(
    market: TradeMarket,
    populations: Mapping[str, int],
    pool: ResourcePool,
) -> dict[str, ClassConsumption]:
    """
    Run one consumption pass for every populated class.

    Parameters
    ----------
    market : TradeMarket
        Supplies prices; receives revenue and transaction records.
    populations : Mapping[str, int]
        Head count per social class.
    pool : ResourcePool
        The player's stock the population consumes from.

    Returns
    -------
    dict[str, ClassConsumption]
        Outcome per class, fed to the labor market's happiness model.
    """
    results: dict[str, ClassConsumption] = {}
    for cid, population in populations.items():
        if population <= 0:
            continue
        demands = market.demands.get(cid, ())
        outcome = ClassConsumption(class_id=cid)
        for demand in demands:
            result, cost = _consume_demand(market, demand, population, pool)
            outcome.demands[demand.id] = result
            outcome.total_impact += result.impact
            outcome.spent += cost
        market.monthly_revenue += outcome.spent
        results[cid] = outcome

    if log.isEnabledFor(logging.DEBUG):
        log.debug(
            "Consumption: %s",
            {cid: (round(r.total_impact, 2), round(r.spent, 1)) for cid, r in results.items()},
        )
    return results


def consume_services(market: TradeMarket, population: int) -> dict[str, float]:
    """Drain each service level by ``consumption_rate * population``."""
    drained = {}
    for sid, svc in market.services.items():
        amount = min(svc.market_inventory, svc.consumption_rate * population)
        svc.market_inventory -= amount
        drained[sid] = amount
    return drained


def recover_services(market: TradeMarket) -> None:
    """Daily recovery of every service level up to its capacity."""
    for svc in market.services.values():
        svc.market_inventory = min(svc.market_capacity, svc.market_inventory + svc.daily_recovery)
