"""Tiered resource ledger and the production chains it runs."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Mapping

from numpy.random import Generator, default_rng

from citysim.logging import getLogger
from citysim.typing import ResourceMap

if TYPE_CHECKING:
    from citysim.catalog import Catalog
    from citysim.roles.building import Building

log = getLogger(__name__)

DEFAULT_TIER_CAPS: dict[int, float] = {1: 1000.0, 2: 500.0, 3: 200.0, 4: 100.0}


@dataclass(slots=True)
class Resource:
    """
    One resource entry of the pool.

    Invariant: ``0 <= value <= cap``.
    """

    id: str
    tier: int
    value: float = 0.0
    cap: float = 1000.0
    production_rate: float = 0.0  # units per minute, from active chains

    # ── statistics ───────────────────────────────────────────────────────
    produced_total: float = 0.0
    consumed_total: float = 0.0
    history: deque[float] = field(default_factory=lambda: deque(maxlen=5))

    @property
    def headroom(self) -> float:
        return self.cap - self.value

    def trend(self, threshold: float = 0.05) -> str:
        """Return ``"increase"``, ``"decrease"`` or ``"stable"`` over the history."""
        if len(self.history) < 2:
            return "stable"
        first, last = self.history[0], self.history[-1]
        if first == 0:
            return "increase" if last > 0 else "stable"
        change = (last - first) / first
        if change > threshold:
            return "increase"
        if change < -threshold:
            return "decrease"
        return "stable"


@dataclass(slots=True)
class ProductionChain:
    """
    Runtime pairing of a recipe with a timer and an efficiency multiplier.

    Chains bound to a building are committed when the building's progress
    completes; unbound chains are committed by :meth:`ResourcePool.tick`
    whenever their interval has elapsed.
    """

    id: str
    input: dict[str, float]
    output: dict[str, float]
    interval: float
    byproducts: dict[str, float] = field(default_factory=dict)
    efficiency: float = 1.0
    last_production_time: float = 0.0
    active: bool = True
    building_bound: bool = False
    rate_estimate: dict[str, float] = field(default_factory=dict)

    def estimate_rates(self) -> dict[str, float]:
        """Per-minute output estimate ``amount * 60000 / interval * efficiency``."""
        if self.interval <= 0:
            return {}
        return {
            rid: amount * 60000.0 / self.interval * self.efficiency
            for rid, amount in self.output.items()
        }


@dataclass(slots=True)
class ResourcePool:
    """
    Pure *state* container for the player's resources plus the chain registry.

    All mutators clamp instead of raising: consumption never drives a value
    below zero and additions never exceed the cap.
    """

    resources: dict[str, Resource] = field(default_factory=dict)
    chains: dict[str, ProductionChain] = field(default_factory=dict)
    rng: Generator = field(default_factory=default_rng)

    day_length: float = 5000.0
    trend_threshold: float = 0.05
    _day_timer: float = field(default=0.0, init=False, repr=False)

    # ── construction ─────────────────────────────────────────────────────
    @classmethod
    def from_catalog(
        cls,
        catalog: Catalog,
        *,
        tier_caps: Mapping[int, float] | None = None,
        rng: Generator | None = None,
        history_days: int = 5,
        day_length: float = 5000.0,
        trend_threshold: float = 0.05,
    ) -> ResourcePool:
        caps = dict(DEFAULT_TIER_CAPS)
        caps.update(tier_caps or {})
        resources = {}
        for spec in catalog.resources.values():
            cap = caps.get(spec.tier, caps[1])
            resources[spec.id] = Resource(
                id=spec.id,
                tier=spec.tier,
                value=min(spec.initial, cap),
                cap=cap,
                history=deque(maxlen=history_days),
            )
        return cls(
            resources=resources,
            rng=rng if rng is not None else default_rng(),
            day_length=day_length,
            trend_threshold=trend_threshold,
        )

    # ── queries ──────────────────────────────────────────────────────────
    def get(self, resource_id: str) -> Resource | None:
        res = self.resources.get(resource_id)
        if res is None:
            log.warning("Unknown resource '%s'", resource_id)
        return res

    def value(self, resource_id: str) -> float:
        res = self.resources.get(resource_id)
        return res.value if res is not None else 0.0

    def has_resources(self, requirements: ResourceMap) -> bool:
        """True if every required amount is held; unknown ids never suffice."""
        for rid, amount in requirements.items():
            if amount <= 0:
                continue
            res = self.resources.get(rid)
            if res is None or res.value < amount:
                return False
        return True

    def missing(self, requirements: ResourceMap) -> dict[str, float]:
        """Shortfall per resource for *requirements* (empty when affordable)."""
        out = {}
        for rid, amount in requirements.items():
            have = self.value(rid)
            if have < amount:
                out[rid] = amount - have
        return out

    def can_fit(self, amounts: ResourceMap) -> bool:
        """True if every amount fits under its resource's cap."""
        for rid, amount in amounts.items():
            res = self.resources.get(rid)
            if res is None or res.headroom < amount:
                return False
        return True

    def resources_by_tier(self, tier: int) -> dict[str, Resource]:
        return {rid: r for rid, r in self.resources.items() if r.tier == tier}

    def snapshot(self) -> dict[str, float]:
        return {rid: r.value for rid, r in self.resources.items()}

    # ── mutators ─────────────────────────────────────────────────────────
    def consume_resources(self, requirements: ResourceMap) -> dict[str, float]:
        """
        Subtract *requirements*, clamping each value at zero.

        Returns
        -------
        dict[str, float]
            Amount actually removed per resource.
        """
        taken = {}
        for rid, amount in requirements.items():
            if amount <= 0:
                continue
            res = self.get(rid)
            if res is None:
                continue
            removed = min(res.value, amount)
            res.value -= removed
            res.consumed_total += removed
            taken[rid] = removed
        return taken

    def add_resources(self, delta: ResourceMap) -> dict[str, float]:
        """
        Add *delta*, clamping each value into ``[0, cap]``.

        Negative entries are allowed and clamp at zero.

        Returns
        -------
        dict[str, float]
            Effective change per resource.
        """
        applied = {}
        for rid, amount in delta.items():
            res = self.get(rid)
            if res is None:
                continue
            new_value = min(res.cap, max(0.0, res.value + amount))
            change = new_value - res.value
            res.value = new_value
            if change > 0:
                res.produced_total += change
            elif change < 0:
                res.consumed_total -= change
            applied[rid] = change
        return applied

    def increase_cap(self, resource_id: str, amount: float) -> bool:
        res = self.get(resource_id)
        if res is None:
            return False
        res.cap = max(0.0, res.cap + amount)
        res.value = min(res.value, res.cap)
        log.debug("Cap of %s is now %.0f", resource_id, res.cap)
        return True

    # ── chain registry ───────────────────────────────────────────────────
    def register_chain(self, building: Building) -> ProductionChain:
        """
        Create or refresh the chain of *building* from its current recipe.

        The chain keeps its timer across refreshes, so method or level
        changes do not reset production.
        """
        chain = self.chains.get(building.id)
        if chain is None:
            chain = ProductionChain(
                id=building.id,
                input={},
                output={},
                interval=building.production_time(),
                building_bound=True,
            )
            self.chains[building.id] = chain
        chain.input = building.current_inputs()
        chain.output = building.current_outputs()
        chain.byproducts = building.current_byproducts()
        chain.interval = building.production_time()
        chain.efficiency = building.total_efficiency
        chain.active = building.is_active
        return chain

    def add_chain(self, chain: ProductionChain) -> None:
        """Register a free-standing, timer-driven chain."""
        self.chains[chain.id] = chain

    def unregister_chain(self, chain_id: str) -> None:
        if self.chains.pop(chain_id, None) is None:
            log.debug("No chain '%s' to unregister", chain_id)

    def _roll_byproducts(self, byproducts: ResourceMap) -> dict[str, float]:
        """Amounts below one are the probability of yielding a single unit."""
        rolled = {}
        for rid, amount in byproducts.items():
            if amount <= 0:
                continue
            if amount < 1:
                if self.rng.random() < amount:
                    rolled[rid] = 1.0
            else:
                rolled[rid] = float(amount)
        return rolled

    def commit_chain(self, chain_id: str, now: float) -> dict[str, float] | None:
        """
        Run one production cycle of a chain if inputs and output headroom allow.

        Returns
        -------
        dict[str, float] | None
            Everything produced (outputs and byproducts), or None when the
            cycle is blocked (missing inputs or a full output).
        """
        chain = self.chains.get(chain_id)
        if chain is None:
            log.error("Chain '%s' is not registered", chain_id)
            return None

        if not self.has_resources(chain.input):
            log.deep("Chain %s waiting for inputs", chain_id)
            return None

        produced = dict(chain.output)
        for rid, amount in self._roll_byproducts(chain.byproducts).items():
            produced[rid] = produced.get(rid, 0.0) + amount

        if not self.can_fit(produced):
            log.deep("Chain %s blocked by full output", chain_id)
            return None

        self.consume_resources(chain.input)
        self.add_resources(produced)
        chain.rate_estimate = chain.estimate_rates()
        chain.last_production_time = now
        log.deep("Chain %s produced %s", chain_id, produced)
        return produced

    # ── tick ─────────────────────────────────────────────────────────────
    def tick(self, now: float, delta: float) -> list[str]:
        """
        Run timer-driven chains and sample the daily history.

        Returns
        -------
        list[str]
            Ids of the chains that produced during this call.
        """
        produced_ids = []
        for chain in self.chains.values():
            if chain.building_bound or not chain.active:
                continue
            if now - chain.last_production_time > chain.interval:
                if self.commit_chain(chain.id, now) is not None:
                    produced_ids.append(chain.id)

        self._refresh_rates(self.chains.values())

        self._day_timer += delta
        while self._day_timer >= self.day_length:
            self._day_timer -= self.day_length
            for res in self.resources.values():
                res.history.append(res.value)

        return produced_ids

    def _refresh_rates(self, chains: Iterable[ProductionChain]) -> None:
        rates: dict[str, float] = {}
        for chain in chains:
            if not chain.active:
                continue
            for rid, rate in chain.rate_estimate.items():
                rates[rid] = rates.get(rid, 0.0) + rate
        for rid, res in self.resources.items():
            res.production_rate = rates.get(rid, 0.0)

    def trends(self) -> dict[str, str]:
        return {
            rid: res.trend(self.trend_threshold) for rid, res in self.resources.items()
        }
