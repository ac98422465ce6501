"""Trade market state: prices, market stock, inflation, events and revenue."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from citysim.logging import getLogger
from citysim.results import TaxReport, TradeResult

if TYPE_CHECKING:
    from citysim.catalog import Catalog, DemandSpec, EventTemplate
    from citysim.roles.labor import DemandOutcome
    from citysim.roles.resource_pool import ResourcePool

log = getLogger(__name__)


@dataclass(slots=True)
class PricedGood:
    """
    A tradable resource as seen by the market.

    Invariants: ``current_price >= 1`` and
    ``0 <= market_inventory <= market_capacity``.
    """

    id: str
    base_price: float
    current_price: float
    volatility: float = 0.1
    supply: float = 0.0  # last combined supply ratio
    market_inventory: float = 100.0
    market_capacity: float = 1000.0


@dataclass(slots=True)
class PricedService(PricedGood):
    """
    A non-good "resource value" (happiness, transport, ...) priced off inflation.

    ``market_inventory`` is the city's current service level; it recovers
    daily and is drained per capita on consumption ticks.
    """

    inflation_adjusted_price: float = 0.0
    daily_recovery: float = 0.0
    consumption_rate: float = 0.0


@dataclass(slots=True)
class InflationState:
    rate: float = 1.0
    history: deque[float] = field(default_factory=lambda: deque(maxlen=100))


@dataclass(slots=True)
class LocalEvent:
    """Time-boxed multiplicative price modifier on goods and services."""

    id: str
    start_time: float
    duration: float
    price_modifiers: dict[str, float] = field(default_factory=dict)

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration

    def is_active(self, now: float) -> bool:
        return self.start_time <= now <= self.end_time

    def is_expired(self, now: float) -> bool:
        return now > self.end_time


@dataclass(slots=True, frozen=True)
class Transaction:
    time: float
    resource: str
    amount: float  # positive: market -> player / population
    price: float
    kind: str  # "buy", "sell" or "consumption"


@dataclass(slots=True)
class ClassConsumption:
    """Outcome of one consumption pass for one social class."""

    class_id: str
    total_impact: float = 0.0
    spent: float = 0.0
    demands: dict[str, DemandOutcome] = field(default_factory=dict)


@dataclass(slots=True)
class TradeMarket:
    """
    Pure *state* container for the market plus the player-facing trade calls.

    Pricing, consumption and taxation algorithms live in
    :mod:`citysim.systems.pricing`, :mod:`citysim.systems.consumption`,
    :mod:`citysim.systems.trade` and :mod:`citysim.systems.taxation`.
    """

    goods: dict[str, PricedGood] = field(default_factory=dict)
    services: dict[str, PricedService] = field(default_factory=dict)
    demands: dict[str, tuple[DemandSpec, ...]] = field(default_factory=dict)
    event_templates: tuple[EventTemplate, ...] = ()
    inflation: InflationState = field(default_factory=InflationState)
    events: list[LocalEvent] = field(default_factory=list)
    transactions: deque[Transaction] = field(default_factory=lambda: deque(maxlen=100))

    tax_rate: float = 0.05
    bulk_reference_amount: float = 1000.0
    monthly_revenue: float = 0.0
    tax_history: deque[TaxReport] = field(default_factory=lambda: deque(maxlen=120))
    now: float = 0.0

    # ── timers (ms accumulated since last firing) ────────────────────────
    fluctuation_timer: float = 0.0
    consumption_timer: float = 0.0
    event_timer: float = 0.0

    _event_seq: int = field(default=0, init=False, repr=False)

    @classmethod
    def from_catalog(
        cls,
        catalog: Catalog,
        *,
        market_inventory: float = 100.0,
        market_capacity: float = 1000.0,
        tax_rate: float = 0.05,
        bulk_reference_amount: float = 1000.0,
        inflation_history_size: int = 100,
        transaction_history_size: int = 100,
        tax_history_size: int = 120,
    ) -> TradeMarket:
        goods = {
            g.id: PricedGood(
                id=g.id,
                base_price=g.base_price,
                current_price=max(1.0, g.base_price),
                volatility=g.volatility,
                market_inventory=min(market_inventory, market_capacity),
                market_capacity=market_capacity,
            )
            for g in catalog.goods.values()
        }
        services = {
            s.id: PricedService(
                id=s.id,
                base_price=s.base_price,
                current_price=max(1.0, s.base_price),
                volatility=s.volatility,
                market_inventory=min(s.initial, s.capacity),
                market_capacity=s.capacity,
                inflation_adjusted_price=s.base_price,
                daily_recovery=s.daily_recovery,
                consumption_rate=s.consumption_rate,
            )
            for s in catalog.services.values()
        }
        return cls(
            goods=goods,
            services=services,
            demands=dict(catalog.demands),
            event_templates=catalog.event_templates,
            inflation=InflationState(history=deque(maxlen=inflation_history_size)),
            transactions=deque(maxlen=transaction_history_size),
            tax_history=deque(maxlen=tax_history_size),
            tax_rate=tax_rate,
            bulk_reference_amount=bulk_reference_amount,
        )

    # ── prices & events ──────────────────────────────────────────────────
    def price_of(self, item_id: str) -> float | None:
        item = self.goods.get(item_id) or self.services.get(item_id)
        return item.current_price if item is not None else None

    def event_multiplier(self, item_id: str, now: float | None = None) -> float:
        """Product of the modifiers of every event active at *now* on *item_id*."""
        now = self.now if now is None else now
        mult = 1.0
        for event in self.events:
            if event.is_active(now) and item_id in event.price_modifiers:
                mult *= event.price_modifiers[item_id]
        return mult

    def add_local_event(
        self,
        price_modifiers: dict[str, float],
        duration: float,
        *,
        start_time: float | None = None,
        event_id: str | None = None,
    ) -> LocalEvent:
        """Register a local event; it starts at *start_time* (default: now)."""
        for item_id in price_modifiers:
            if item_id not in self.goods and item_id not in self.services:
                log.warning("Local event modifies unknown good '%s'", item_id)
        self._event_seq += 1
        event = LocalEvent(
            id=event_id or f"event_{self._event_seq}",
            start_time=self.now if start_time is None else start_time,
            duration=duration,
            price_modifiers=dict(price_modifiers),
        )
        self.events.append(event)
        log.info("Local event %s started (%s)", event.id, event.price_modifiers)
        return event

    def purge_expired_events(self, now: float | None = None) -> list[LocalEvent]:
        now = self.now if now is None else now
        expired = [e for e in self.events if e.is_expired(now)]
        if expired:
            self.events = [e for e in self.events if not e.is_expired(now)]
            for e in expired:
                log.info("Local event %s ended", e.id)
        return expired

    def record_transaction(
        self, resource: str, amount: float, price: float, kind: str
    ) -> None:
        self.transactions.append(Transaction(self.now, resource, amount, price, kind))

    # ── player trading (delegating to systems) ───────────────────────────
    def player_buy_resource(
        self, resource: str, amount: float, pool: ResourcePool, gold: float
    ) -> TradeResult:
        from citysim.systems.trade import player_buy_resource

        return player_buy_resource(self, resource, amount, pool, gold)

    def player_sell_resource(
        self,
        resource: str,
        amount: float,
        pool: ResourcePool,
        gold: float | None = None,
    ) -> TradeResult:
        from citysim.systems.trade import player_sell_resource

        return player_sell_resource(self, resource, amount, pool, gold)

    def player_buy_service(self, service: str, amount: float, gold: float) -> TradeResult:
        from citysim.systems.trade import player_buy_service

        return player_buy_service(self, service, amount, gold)

    def process_monthly_tax(self, month: int | None = None) -> TaxReport:
        from citysim.systems.taxation import process_monthly_tax

        return process_monthly_tax(self, month)

    # ── reporting ────────────────────────────────────────────────────────
    def tax_info(self) -> dict[str, float]:
        return {
            "tax_rate": self.tax_rate,
            "monthly_revenue": self.monthly_revenue,
            "projected_tax": float(int(self.monthly_revenue * self.tax_rate)),
        }

    def market_stats(self) -> dict[str, Any]:
        return {
            "inflation_rate": self.inflation.rate,
            "goods": {
                gid: {
                    "price": g.current_price,
                    "base_price": g.base_price,
                    "inventory": g.market_inventory,
                    "capacity": g.market_capacity,
                    "supply": g.supply,
                    "event_multiplier": self.event_multiplier(gid),
                }
                for gid, g in self.goods.items()
            },
            "services": {
                sid: {
                    "price": s.current_price,
                    "inflation_adjusted_price": s.inflation_adjusted_price,
                    "level": s.market_inventory,
                    "capacity": s.market_capacity,
                }
                for sid, s in self.services.items()
            },
            "active_events": [e.id for e in self.events if e.is_active(self.now)],
            "transactions": len(self.transactions),
            "tax": self.tax_info(),
        }
