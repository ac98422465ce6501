"""Population and labor state: professions, social classes and allocations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping

from citysim.logging import getLogger
from citysim.typing import WorkerMap

if TYPE_CHECKING:
    from citysim.catalog import Catalog, PromotionPath
    from citysim.results import ActionResult
    from citysim.roles.resource_pool import ResourcePool

log = getLogger(__name__)


@dataclass(slots=True)
class WorkerProfession:
    """
    Head count of one profession.

    Invariant: ``0 <= assigned <= count``.
    """

    id: str
    social_class: str
    count: int = 0
    assigned: int = 0
    experience: float = 0.0
    production_multiplier: float = 1.0
    promotion_chance: float = 0.0
    demotion_chance: float = 0.0
    training_cost: dict[str, float] = field(default_factory=dict)

    @property
    def available(self) -> int:
        return max(0, self.count - self.assigned)


@dataclass(slots=True)
class DemandOutcome:
    """Result of one consumption pass for one demand category."""

    satisfaction: float
    price_score: float
    impact: float
    importance: float = 0.0


@dataclass(slots=True)
class SocialClass:
    """
    Happiness state of one population stratum.

    ``happiness`` is the weighted sum of the ``housing``, ``market`` and
    ``base`` factors, always within [0, 100].
    """

    id: str
    rank: int
    weights: dict[str, float]
    base: float = 50.0
    housing_slope: float = 50.0
    crowding_cutoff: float = 0.0
    crowding_penalty: float = 1.0

    # ── mutable state ────────────────────────────────────────────────────
    happiness: float = 50.0
    housing: float = 50.0
    market: float = 50.0
    demand_satisfaction: dict[str, DemandOutcome] = field(default_factory=dict)

    def factors(self) -> dict[str, float]:
        return {"housing": self.housing, "market": self.market, "base": self.base}


@dataclass(slots=True)
class Assignment:
    """Labor committed to one building."""

    building_id: str
    building_type: str
    requirement: dict[str, int]
    priority: str = "medium"
    workers: dict[str, int] = field(default_factory=dict)
    order: int = 0

    @property
    def required_total(self) -> int:
        return sum(self.requirement.values())

    @property
    def assigned_total(self) -> int:
        return sum(self.workers.values())

    @property
    def staffing(self) -> float:
        """Share of the requirement that is staffed (1.0 when nothing is required)."""
        required = self.required_total
        if required <= 0:
            return 1.0
        return min(1.0, self.assigned_total / required)


@dataclass(slots=True)
class LaborMarket:
    """
    Pure *state* container for population and labor allocation.

    The allocation, happiness and mobility algorithms live in
    :mod:`citysim.systems.labor` and :mod:`citysim.systems.population`;
    the methods here are the query/command surface used by buildings and
    the simulation facade.
    """

    professions: dict[str, WorkerProfession] = field(default_factory=dict)
    classes: dict[str, SocialClass] = field(default_factory=dict)
    promotion_paths: tuple[PromotionPath, ...] = ()
    building_requirements: dict[str, dict[str, int]] = field(default_factory=dict)
    assignments: dict[str, Assignment] = field(default_factory=dict)

    housing_capacity: int = 20
    overall_happiness: float = 50.0
    needs_reevaluation: bool = False

    # ── timers (ms accumulated since last firing) ────────────────────────
    happiness_timer: float = 0.0
    experience_timer: float = 0.0
    promotion_timer: float = 0.0
    demotion_timer: float = 0.0
    migration_timer: float = 0.0
    growth_progress: float = 0.0

    _seq: int = field(default=0, init=False, repr=False)

    @classmethod
    def from_catalog(cls, catalog: Catalog, *, housing_capacity: int = 20) -> LaborMarket:
        professions = {
            p.id: WorkerProfession(
                id=p.id,
                social_class=p.social_class,
                count=p.count,
                production_multiplier=p.production_multiplier,
                promotion_chance=p.promotion_chance,
                demotion_chance=p.demotion_chance,
                training_cost=dict(p.training_cost),
            )
            for p in catalog.professions.values()
        }
        classes = {
            c.id: SocialClass(
                id=c.id,
                rank=c.rank,
                weights=dict(c.weights),
                base=c.base,
                housing_slope=c.housing_slope,
                crowding_cutoff=c.crowding_cutoff,
                crowding_penalty=c.crowding_penalty,
            )
            for c in catalog.social_classes.values()
        }
        requirements = {
            b.id: dict(b.workers) for b in catalog.building_types.values() if b.workers
        }
        return cls(
            professions=professions,
            classes=classes,
            promotion_paths=catalog.promotion_paths,
            building_requirements=requirements,
            housing_capacity=housing_capacity,
        )

    # ── population queries ───────────────────────────────────────────────
    @property
    def total_population(self) -> int:
        return sum(p.count for p in self.professions.values())

    def class_order(self) -> list[str]:
        return sorted(self.classes, key=lambda c: self.classes[c].rank)

    def professions_in(self, class_id: str) -> list[WorkerProfession]:
        return [p for p in self.professions.values() if p.social_class == class_id]

    def class_population(self, class_id: str) -> int:
        return sum(p.count for p in self.professions_in(class_id))

    def class_available(self, class_id: str) -> int:
        return sum(p.available for p in self.professions_in(class_id))

    def available(self, profession_id: str) -> int:
        prof = self.professions.get(profession_id)
        if prof is None:
            log.warning("Unknown profession '%s'", profession_id)
            return 0
        return prof.available

    def occupancy(self) -> float:
        if self.housing_capacity <= 0:
            return 1.0 if self.total_population > 0 else 0.0
        return self.total_population / self.housing_capacity

    def class_below(self, class_id: str) -> str | None:
        order = self.class_order()
        idx = order.index(class_id)
        return order[idx - 1] if idx > 0 else None

    def class_above(self, class_id: str) -> str | None:
        order = self.class_order()
        idx = order.index(class_id)
        return order[idx + 1] if idx + 1 < len(order) else None

    # ── building-facing queries ──────────────────────────────────────────
    def has_sufficient_workers(self, building_id: str) -> bool:
        """True if the building has a labor record that lets it operate."""
        entry = self.assignments.get(building_id)
        if entry is None:
            return False
        return entry.required_total == 0 or entry.assigned_total > 0

    def get_efficiency_multiplier(self, building_id: str) -> float:
        """
        Count-weighted mean profession multiplier times the staffing share.

        Returns 0.0 for buildings without assigned labor and 1.0 for
        buildings that need none.
        """
        entry = self.assignments.get(building_id)
        if entry is None:
            return 0.0
        if entry.required_total == 0:
            return 1.0
        total = entry.assigned_total
        if total == 0:
            return 0.0
        weighted = sum(
            self.professions[pid].production_multiplier * n
            for pid, n in entry.workers.items()
        )
        return weighted / total * entry.staffing

    # ── commands (delegating to systems) ─────────────────────────────────
    def assign(
        self,
        building_id: str,
        building_type: str,
        requirement: WorkerMap | None = None,
        priority: str = "medium",
    ) -> ActionResult:
        from citysim.systems.labor import assign_workers

        return assign_workers(self, building_id, building_type, requirement, priority)

    def release(self, building_id: str) -> dict[str, int]:
        from citysim.systems.labor import release_workers

        return release_workers(self, building_id)

    def reevaluate(self) -> dict[str, float]:
        from citysim.systems.labor import reevaluate_assignments

        return reevaluate_assignments(self)

    def train_workers(
        self, profession_id: str, count: int, pool: ResourcePool
    ) -> ActionResult:
        from citysim.systems.population import train_workers

        return train_workers(self, profession_id, count, pool)

    def promote_worker(
        self, source: str, target: str, pool: ResourcePool
    ) -> ActionResult:
        from citysim.systems.population import promote_worker

        return promote_worker(self, source, target, pool)

    def next_order(self) -> int:
        self._seq += 1
        return self._seq

    # ── reporting ────────────────────────────────────────────────────────
    def population_stats(self) -> dict[str, Any]:
        return {
            "total": self.total_population,
            "housing_capacity": self.housing_capacity,
            "occupancy": self.occupancy(),
            "overall_happiness": self.overall_happiness,
            "classes": {
                cid: {
                    "population": self.class_population(cid),
                    "happiness": cls.happiness,
                    "factors": cls.factors(),
                }
                for cid, cls in self.classes.items()
            },
            "professions": {
                pid: {
                    "count": p.count,
                    "assigned": p.assigned,
                    "available": p.available,
                    "experience": p.experience,
                }
                for pid, p in self.professions.items()
            },
        }

    def assigned_by_profession(self) -> Mapping[str, int]:
        """Sum of per-building allocations, for invariant checks."""
        totals = {pid: 0 for pid in self.professions}
        for entry in self.assignments.values():
            for pid, n in entry.workers.items():
                totals[pid] = totals.get(pid, 0) + n
        return totals
