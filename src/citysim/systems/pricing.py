"""
Price formation: periodic fluctuation, inflation, services and events.

Goods
-----
``supply = 0.7 * market_inventory / market_capacity + 0.3 * held / cap``

``price = base * (0.5 + (1 - supply) * 1.5) * (1 + U(-1, 1) * volatility)``
times the active local-event multipliers, rounded and floored at 1.

Services
--------
``price = base * inflation * event multipliers * noise``, floored at 1.

Inflation
---------
``rate = 0.8 * rate + 0.2 * mean(current / base over goods)``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from numpy.random import Generator

if TYPE_CHECKING:
    from citysim.roles.market import LocalEvent, PricedGood, TradeMarket
    from citysim.roles.resource_pool import ResourcePool

log = logging.getLogger(__name__)

MARKET_WEIGHT = 0.7
PLAYER_WEIGHT = 0.3
MAX_TRADE_IMPACT = 0.2
INFLATION_MEMORY = 0.8


def _noise(rng: Generator, volatility: float) -> float:
    return 1.0 + float(rng.uniform(-1.0, 1.0)) * volatility


def supply_ratio(good: PricedGood, pool: ResourcePool) -> float:
    """Blend of market-side and player-side stock ratios, in [0, 1]."""
    market_ratio = good.market_inventory / good.market_capacity if good.market_capacity > 0 else 0.0
    res = pool.resources.get(good.id)
    player_ratio = res.value / res.cap if res is not None and res.cap > 0 else 0.0
    combined = MARKET_WEIGHT * market_ratio + PLAYER_WEIGHT * player_ratio
    return max(0.0, min(1.0, combined))


def fluctuate_prices(
    market: TradeMarket,
    pool: ResourcePool,
    rng: Generator,
    now: float,
    only: Iterable[str] | None = None,
) -> dict[str, float]:
    """
    Recompute goods prices from supply, noise and active events.

    Parameters
    ----------
    only : Iterable[str], optional
        Restrict the recompute to these goods (used when events start or end).
        Goods are always visited in market order.

    Returns
    -------
    dict[str, float]
        New price per recomputed good.
    """
    wanted = None if only is None else set(only)
    ids = [g for g in market.goods if wanted is None or g in wanted]
    prices = {}
    for gid in ids:
        good = market.goods[gid]
        good.supply = supply_ratio(good, pool)
        price = good.base_price * (0.5 + (1.0 - good.supply) * 1.5)
        price *= _noise(rng, good.volatility)
        price *= market.event_multiplier(gid, now)
        good.current_price = max(1.0, float(round(price)))
        prices[gid] = good.current_price

    if log.isEnabledFor(logging.DEBUG) and prices:
        log.debug("Prices updated: %s", prices)
    return prices


def update_inflation(market: TradeMarket) -> float:
    """Smooth the mean price/base ratio into the inflation rate."""
    goods = [g for g in market.goods.values() if g.base_price > 0]
    if not goods:
        return market.inflation.rate
    ratio = sum(g.current_price / g.base_price for g in goods) / len(goods)
    inf = market.inflation
    inf.rate = INFLATION_MEMORY * inf.rate + (1.0 - INFLATION_MEMORY) * ratio
    inf.history.append(inf.rate)
    log.debug("Inflation rate %.3f (mean ratio %.3f)", inf.rate, ratio)
    return inf.rate


def refresh_service_prices(
    market: TradeMarket,
    rng: Generator,
    now: float,
    only: Iterable[str] | None = None,
) -> dict[str, float]:
    """Price services off the inflation rate, events and noise."""
    wanted = None if only is None else set(only)
    ids = [s for s in market.services if wanted is None or s in wanted]
    prices = {}
    for sid in ids:
        svc = market.services[sid]
        svc.inflation_adjusted_price = svc.base_price * market.inflation.rate
        price = svc.inflation_adjusted_price * market.event_multiplier(sid, now)
        price *= _noise(rng, svc.volatility)
        svc.current_price = max(1.0, float(round(price)))
        prices[sid] = svc.current_price
    return prices


def apply_trade_impact(good: PricedGood, amount: float, buying: bool) -> float:
    """
    Nudge a price right after a trade.

    The shift is ``min(0.2, amount / market_capacity * 0.5)``, upward for
    player purchases and downward for sales.
    """
    cap = good.market_capacity if good.market_capacity > 0 else 1.0
    impact = min(MAX_TRADE_IMPACT, amount / cap * 0.5)
    factor = 1.0 + impact if buying else 1.0 - impact
    good.current_price = max(1.0, good.current_price * factor)
    return good.current_price


def reprice_for_events(
    market: TradeMarket,
    pool: ResourcePool,
    rng: Generator,
    now: float,
    events: Iterable[LocalEvent],
) -> None:
    """Recompute every item touched by *events* so starts and ends take effect."""
    touched: dict[str, None] = {}
    for event in events:
        touched.update(dict.fromkeys(event.price_modifiers))
    if not touched:
        return
    fluctuate_prices(market, pool, rng, now, only=touched)
    refresh_service_prices(market, rng, now, only=touched)


def maybe_trigger_random_event(
    market: TradeMarket, rng: Generator, now: float, chance: float
) -> LocalEvent | None:
    """With probability *chance*, start an event drawn from the templates."""
    if not market.event_templates or rng.random() >= chance:
        return None
    template = market.event_templates[int(rng.integers(len(market.event_templates)))]
    return market.add_local_event(
        template.price_modifiers,
        template.duration,
        start_time=now,
        event_id=f"{template.id}@{int(now)}",
    )
