"""
Player trades with the market.

Every rejection returns a :class:`TradeResult` carrying the limiting
quantity (``available_amount``, ``max_amount`` or
``max_affordable_amount``) so a trading screen can offer a corrected
amount.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from citysim.results import TradeResult
from citysim.systems.pricing import apply_trade_impact

if TYPE_CHECKING:
    from citysim.roles.market import TradeMarket
    from citysim.roles.resource_pool import ResourcePool

log = logging.getLogger(__name__)

MAX_BULK_MARKUP = 0.3


def calculate_buy_price(price: float, amount: float, reference: float = 1000.0) -> float:
    """Unit price for a purchase: ``ceil(p * min(1.3, 1 + amount / reference * 0.3))``."""
    markup = min(1.0 + MAX_BULK_MARKUP, 1.0 + amount / reference * MAX_BULK_MARKUP)
    return float(math.ceil(price * markup))


def calculate_sell_price(price: float, amount: float, reference: float = 1000.0) -> float:
    """Unit price for a sale: ``floor(p * max(0.7, 1 - amount / reference * 0.3))``."""
    discount = max(1.0 - MAX_BULK_MARKUP, 1.0 - amount / reference * MAX_BULK_MARKUP)
    return float(math.floor(price * discount))


def player_buy_resource(
    market: TradeMarket,
    resource: str,
    amount: float,
    pool: ResourcePool,
    gold: float,
) -> TradeResult:
    """
    Buy *amount* of a good from the market into the player's pool.

    Checks, in order: known good, positive amount, market inventory, funds,
    player storage headroom.
    """
    good = market.goods.get(resource)
    if good is None:
        log.warning("Unknown good '%s'", resource)
        return TradeResult(False, f"{resource} is not traded on the market")
    if amount <= 0:
        return TradeResult(False, "Amount must be positive")

    if good.market_inventory < amount:
        return TradeResult(
            False,
            f"Market only has {good.market_inventory:g} {resource}",
            amount=amount,
            available_amount=good.market_inventory,
        )

    unit_price = calculate_buy_price(good.current_price, amount, market.bulk_reference_amount)
    total = unit_price * amount
    if gold < total:
        return TradeResult(
            False,
            f"Not enough gold: need {total:g}, have {gold:g}",
            amount=amount,
            unit_price=unit_price,
            cost=total,
            max_affordable_amount=float(math.floor(gold / unit_price)) if unit_price > 0 else 0.0,
        )

    res = pool.resources.get(resource)
    headroom = res.headroom if res is not None else 0.0
    if headroom < amount:
        return TradeResult(
            False,
            f"Not enough storage for {resource}",
            amount=amount,
            unit_price=unit_price,
            max_amount=float(math.floor(headroom)),
        )

    good.market_inventory -= amount
    pool.add_resources({resource: amount})
    market.record_transaction(resource, amount, unit_price, "buy")
    apply_trade_impact(good, amount, buying=True)
    market.monthly_revenue += total
    log.info("Bought %g %s for %g", amount, resource, total)
    return TradeResult(
        True,
        f"Bought {amount:g} {resource}",
        amount=amount,
        unit_price=unit_price,
        cost=total,
        remaining_gold=gold - total,
    )


def player_sell_resource(
    market: TradeMarket,
    resource: str,
    amount: float,
    pool: ResourcePool,
    gold: float | None = None,
) -> TradeResult:
    """
    Sell *amount* of a good from the player's pool to the market.

    Checks, in order: known good, positive amount, market capacity, player
    stock, a positive sale price.
    """
    good = market.goods.get(resource)
    if good is None:
        log.warning("Unknown good '%s'", resource)
        return TradeResult(False, f"{resource} is not traded on the market")
    if amount <= 0:
        return TradeResult(False, "Amount must be positive")

    room = good.market_capacity - good.market_inventory
    if room < amount:
        return TradeResult(
            False,
            f"Market can only take {room:g} more {resource}",
            amount=amount,
            max_amount=room,
        )

    held = pool.value(resource)
    if held < amount:
        return TradeResult(
            False,
            f"Only {held:g} {resource} in storage",
            amount=amount,
            available_amount=held,
        )

    unit_price = calculate_sell_price(good.current_price, amount, market.bulk_reference_amount)
    if unit_price <= 0:
        return TradeResult(False, f"{resource} currently sells for nothing", amount=amount)

    profit = unit_price * amount
    pool.consume_resources({resource: amount})
    good.market_inventory += amount
    market.record_transaction(resource, -amount, unit_price, "sell")
    apply_trade_impact(good, amount, buying=False)
    market.monthly_revenue += profit
    log.info("Sold %g %s for %g", amount, resource, profit)
    return TradeResult(
        True,
        f"Sold {amount:g} {resource}",
        amount=amount,
        unit_price=unit_price,
        profit=profit,
        remaining_gold=gold + profit if gold is not None else None,
    )


def player_buy_service(
    market: TradeMarket, service: str, amount: float, gold: float
) -> TradeResult:
    """Buy service level (transport, security, ...) at the current service price."""
    svc = market.services.get(service)
    if svc is None:
        log.warning("Unknown service '%s'", service)
        return TradeResult(False, f"{service} is not an available service")
    if amount <= 0:
        return TradeResult(False, "Amount must be positive")

    room = svc.market_capacity - svc.market_inventory
    if room < amount:
        return TradeResult(
            False,
            f"{service} can only take {room:g} more",
            amount=amount,
            max_amount=room,
        )

    total = svc.current_price * amount
    if gold < total:
        return TradeResult(
            False,
            f"Not enough gold: need {total:g}, have {gold:g}",
            amount=amount,
            unit_price=svc.current_price,
            cost=total,
            max_affordable_amount=float(math.floor(gold / svc.current_price)),
        )

    svc.market_inventory += amount
    market.record_transaction(service, amount, svc.current_price, "buy")
    market.monthly_revenue += total
    return TradeResult(
        True,
        f"Bought {amount:g} {service}",
        amount=amount,
        unit_price=svc.current_price,
        cost=total,
        remaining_gold=gold - total,
    )
