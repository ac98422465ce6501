"""
Building state and its production state machine.

A Building is a pure state object: presentation code observes it through
:class:`BuildingListener` callbacks and by reading ``is_active`` and
``progress_ratio``; the building never touches a rendering context.

States
------
IDLE
    No progress accrual. Leaves IDLE when the building is active and its
    inputs are available.
PRODUCING
    ``progress += delta * base_efficiency * worker_efficiency *
    research_efficiency``. When progress reaches the production time the
    cycle is committed through the building's chain in the resource pool
    and the building returns to IDLE.
    A cycle blocked by a full output stays PRODUCING with progress held at
    the production time until it fits.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from citysim.logging import getLogger
from citysim.results import ActionResult
from citysim.typing import PRIORITIES

if TYPE_CHECKING:
    from citysim.catalog import BuildingType, ByproductType, ProductionMethod, WorkMode
    from citysim.roles.resource_pool import ResourcePool

log = getLogger(__name__)


class BuildingState(str, Enum):
    IDLE = "idle"
    PRODUCING = "producing"


class BuildingListener:
    """
    Observer hooks for presentation code.

    Subclass and override what you need; every hook defaults to a no-op.
    """

    def on_state_change(
        self, building: Building, old: BuildingState, new: BuildingState
    ) -> None:
        pass

    def on_production_complete(
        self, building: Building, produced: dict[str, float]
    ) -> None:
        pass

    def on_upgrade(self, building: Building, level: int) -> None:
        pass

    def on_active_change(self, building: Building, active: bool) -> None:
        pass

    def on_removed(self, building: Building) -> None:
        pass


@dataclass(slots=True)
class Building:
    """
    One placed building.

    Attributes
    ----------
    id : str
        Unique building id.
    type : str
        Building type id in the catalog.
    category : str
        ``collector``, ``production``, ``advanced``, ``housing``,
        ``utility`` or ``special``.
    input, output : dict[str, float]
        Base recipe; outputs grow on upgrade.
    interval : float
        Base production time in ms.
    worker_requirement : dict[str, int]
        Base head count per profession.
    priority : str
        Staffing priority, one of ``high``, ``medium``, ``low``.
    """

    id: str
    type: str
    category: str = "production"
    level: int = 1
    input: dict[str, float] = field(default_factory=dict)
    output: dict[str, float] = field(default_factory=dict)
    interval: float = 5000.0
    cost: dict[str, float] = field(default_factory=dict)
    base_efficiency: float = 1.0
    worker_efficiency: float = 1.0
    progress: float = 0.0
    state: BuildingState = BuildingState.IDLE
    is_active: bool = True
    worker_requirement: dict[str, int] = field(default_factory=dict)
    priority: str = "medium"
    last_production_time: float = 0.0

    # ── variants ─────────────────────────────────────────────────────────
    production_methods: tuple[ProductionMethod, ...] = ()
    current_method: str | None = None
    byproduct_types: tuple[ByproductType, ...] = ()
    current_byproduct: str | None = None
    work_modes: tuple[WorkMode, ...] = ()
    current_work_mode: str | None = None

    # ── non-producing effects ────────────────────────────────────────────
    housing_capacity: int = 0
    storage_bonus: dict[str, float] = field(default_factory=dict)

    # ── research bonuses, kept current by the research system ───────────
    research_efficiency: float = 1.0
    research_speed: float = 1.0
    research_input: float = 1.0
    research_output: dict[str, float] = field(default_factory=dict)

    listeners: list[BuildingListener] = field(default_factory=list, repr=False)

    NON_PRODUCING = ("housing", "utility", "special")

    @classmethod
    def from_type(
        cls, spec: BuildingType, building_id: str, *, priority: str = "medium"
    ) -> Building:
        """Instantiate a building from its catalog blueprint."""
        return cls(
            id=building_id,
            type=spec.id,
            category=spec.category,
            input=dict(spec.input),
            output=dict(spec.output),
            interval=spec.interval,
            cost=dict(spec.cost),
            worker_requirement=dict(spec.workers),
            priority=priority if priority in PRIORITIES else "medium",
            production_methods=spec.production_methods,
            current_method=(
                spec.production_methods[0].id if spec.production_methods else None
            ),
            byproduct_types=spec.byproduct_types,
            current_byproduct=(
                spec.byproduct_types[0].id if spec.byproduct_types else None
            ),
            work_modes=spec.work_modes,
            current_work_mode=spec.work_modes[0].id if spec.work_modes else None,
            housing_capacity=spec.housing_capacity,
            storage_bonus=dict(spec.storage_bonus),
        )

    # ── derived values ───────────────────────────────────────────────────
    @property
    def is_producer(self) -> bool:
        return self.category not in self.NON_PRODUCING and bool(self.output)

    @property
    def total_efficiency(self) -> float:
        return self.base_efficiency * self.worker_efficiency * self.research_efficiency

    @property
    def progress_ratio(self) -> float:
        """Fraction of the current cycle completed, for progress bars."""
        interval = self.production_time()
        if interval <= 0:
            return 0.0
        return min(1.0, self.progress / interval)

    def production_method(self) -> ProductionMethod | None:
        return _find(self.production_methods, self.current_method)

    def byproduct_type(self) -> ByproductType | None:
        return _find(self.byproduct_types, self.current_byproduct)

    def work_mode(self) -> WorkMode | None:
        return _find(self.work_modes, self.current_work_mode)

    def production_time(self) -> float:
        interval = self.interval
        method = self.production_method()
        if method is not None:
            interval *= method.time_modifier
        mode = self.work_mode()
        if mode is not None:
            interval *= mode.time_modifier
        return interval * self.research_speed

    def current_inputs(self) -> dict[str, float]:
        method = self.production_method()
        inputs = dict(self.input)
        if method is not None:
            inputs = _apply_modifiers(inputs, method.input_modifiers)
        if self.research_input != 1.0:
            inputs = {rid: amount * self.research_input for rid, amount in inputs.items()}
        return inputs

    def current_outputs(self) -> dict[str, float]:
        method = self.production_method()
        outputs = dict(self.output)
        if method is not None:
            outputs = _apply_modifiers(outputs, method.output_modifiers)
        return {
            rid: amount * self.research_output.get(rid, 1.0) for rid, amount in outputs.items()
        }

    def current_byproducts(self) -> dict[str, float]:
        method = self.production_method()
        if method is not None and not method.enable_byproducts:
            return {}
        bp = self.byproduct_type()
        return dict(bp.resources) if bp is not None else {}

    def current_worker_requirement(self) -> dict[str, int]:
        method = self.production_method()
        base = self.worker_requirement
        if method is not None and method.workers is not None:
            base = method.workers
        mode = self.work_mode()
        if mode is None:
            return dict(base)
        return {
            prof: math.ceil(count * mode.worker_modifier) for prof, count in base.items()
        }

    # ── setters ──────────────────────────────────────────────────────────
    def set_active(self, active: bool, worker_efficiency: float = 1.0) -> None:
        changed = active != self.is_active
        self.is_active = active
        self.worker_efficiency = worker_efficiency if active else 0.0
        if not active:
            self._set_state(BuildingState.IDLE)
        if changed:
            for listener in self.listeners:
                listener.on_active_change(self, active)

    def set_priority(self, priority: str) -> bool:
        if priority not in PRIORITIES:
            log.warning("Invalid priority '%s' for building %s", priority, self.id)
            return False
        self.priority = priority
        return True

    def set_production_method(self, method_id: str) -> bool:
        if _find(self.production_methods, method_id) is None:
            log.warning("Building %s has no production method '%s'", self.id, method_id)
            return False
        self.current_method = method_id
        return True

    def set_byproduct_type(self, byproduct_id: str) -> bool:
        if _find(self.byproduct_types, byproduct_id) is None:
            log.warning("Building %s has no byproduct type '%s'", self.id, byproduct_id)
            return False
        self.current_byproduct = byproduct_id
        return True

    def set_work_mode(self, mode_id: str) -> bool:
        if _find(self.work_modes, mode_id) is None:
            log.warning("Building %s has no work mode '%s'", self.id, mode_id)
            return False
        self.current_work_mode = mode_id
        return True

    def _set_state(self, new: BuildingState) -> None:
        old = self.state
        if old is new:
            return
        self.state = new
        for listener in self.listeners:
            listener.on_state_change(self, old, new)

    # ── state machine ────────────────────────────────────────────────────
    def update_production(
        self, time: float, delta: float, pool: ResourcePool
    ) -> dict[str, float] | None:
        """
        Advance the production state machine by *delta* ms.

        Parameters
        ----------
        time : float
            Current simulated time (ms).
        delta : float
            Simulated time elapsed since the previous update.
        pool : ResourcePool
            Pool providing inputs and receiving outputs.

        Returns
        -------
        dict[str, float] | None
            What was produced when a cycle completed during this call,
            otherwise None. A non-positive *delta* changes nothing.
        """
        if delta <= 0 or not self.is_producer:
            return None

        if not self.is_active:
            self._set_state(BuildingState.IDLE)
            return None

        if self.state is BuildingState.IDLE:
            if not pool.has_resources(self.current_inputs()):
                return None
            self._set_state(BuildingState.PRODUCING)

        self.progress += delta * self.total_efficiency
        interval = self.production_time()
        if self.progress < interval:
            return None

        pool.register_chain(self)
        produced = pool.commit_chain(self.id, time)
        if produced is None:
            # hold at completion until inputs/outputs allow the commit
            self.progress = interval
            return None

        self.progress = 0.0
        self.last_production_time = time
        self._set_state(BuildingState.IDLE)
        for listener in self.listeners:
            listener.on_production_complete(self, produced)
        return produced

    # ── upgrade ──────────────────────────────────────────────────────────
    def upgrade_cost(self, cost_factor: float = 0.5) -> dict[str, float]:
        scale = 1 + self.level * cost_factor
        return {rid: math.ceil(amount * scale) for rid, amount in self.cost.items()}

    def upgrade(
        self,
        pool: ResourcePool,
        *,
        cost_factor: float = 0.5,
        efficiency_step: float = 0.2,
        output_multiplier: float = 1.2,
    ) -> ActionResult:
        """
        Spend the upgrade cost and improve the building by one level.

        The cost is checked before anything is deducted, so a failed upgrade
        leaves the pool untouched.
        """
        cost = self.upgrade_cost(cost_factor)
        if not pool.has_resources(cost):
            return ActionResult.fail(
                f"Not enough resources to upgrade {self.type}",
                cost=cost,
                missing=pool.missing(cost),
            )

        pool.consume_resources(cost)
        self.level += 1
        self.base_efficiency += efficiency_step
        self.output = {
            rid: math.ceil(amount * output_multiplier)
            for rid, amount in self.output.items()
        }
        if self.id in pool.chains:
            pool.register_chain(self)

        log.info("Upgraded %s (%s) to level %d", self.id, self.type, self.level)
        for listener in self.listeners:
            listener.on_upgrade(self, self.level)
        return ActionResult.ok(
            f"{self.type} upgraded to level {self.level}",
            cost=cost,
            level=self.level,
        )

    def info(self) -> dict[str, Any]:
        """Snapshot for info panels."""
        interval = self.production_time()
        return {
            "id": self.id,
            "type": self.type,
            "category": self.category,
            "level": self.level,
            "state": self.state.value,
            "is_active": self.is_active,
            "priority": self.priority,
            "efficiency": self.base_efficiency,
            "worker_efficiency": self.worker_efficiency,
            "research_efficiency": self.research_efficiency,
            "total_efficiency": self.total_efficiency,
            "production_interval": interval,
            "base_production_interval": self.interval,
            "progress": self.progress_ratio,
            "time_left": (
                max(0.0, interval - self.progress)
                if self.state is BuildingState.PRODUCING
                else 0.0
            ),
            "inputs": self.current_inputs(),
            "outputs": self.current_outputs(),
            "byproducts": self.current_byproducts(),
            "worker_requirement": self.current_worker_requirement(),
            "production_method": self.current_method,
            "byproduct_type": self.current_byproduct,
            "work_mode": self.current_work_mode,
        }


def _find(items: tuple[Any, ...], item_id: str | None) -> Any:
    if item_id is None:
        return None
    for item in items:
        if item.id == item_id:
            return item
    return None


def _apply_modifiers(
    base: dict[str, float], modifiers: dict[str, float]
) -> dict[str, float]:
    """Scale known entries (ceil) and add new ones for positive modifiers."""
    result = dict(base)
    for rid, modifier in modifiers.items():
        if rid in result:
            result[rid] = math.ceil(result[rid] * modifier)
        elif modifier > 0:
            result[rid] = math.ceil(modifier)
    return result
