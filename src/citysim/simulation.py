# src/citysim/simulation.py
from __future__ import annotations

from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any, Callable, Dict, Mapping

# noinspection PyPackageRequirements
import yaml

# noinspection PyPackageRequirements
from numpy.random import Generator, default_rng

import citysim.events  # noqa: F401 - needed to register events
from citysim.calendar import Calendar
from citysim.catalog import Catalog
from citysim.config import Config
from citysim.core.default_pipeline import create_default_pipeline
from citysim.core.pipeline import Pipeline
from citysim.logging import DEEP_DEBUG, getLogger
from citysim.logging import configure as configure_logging
from citysim.results import ActionResult, TaxReport, TradeResult
from citysim.roles.building import Building
from citysim.roles.labor import LaborMarket
from citysim.roles.market import ClassConsumption, LocalEvent, TradeMarket
from citysim.roles.resource_pool import ResourcePool
from citysim.roles.research import ResearchState
from citysim.systems.labor import apply_staffing
from citysim.systems.research import apply_research_effects

__all__ = ["Simulation"]

log = getLogger(__name__)

DEFAULT_TICK_MS = 100.0


# helpers
# ---------------------------------------------------------------------------
def _read_yaml(obj: str | Path | Mapping[str, Any] | None) -> Dict[str, Any]:
    """Return a plain dict – {} if *obj* is None."""
    if obj is None:
        return {}
    if isinstance(obj, Mapping):
        return dict(obj)
    p = Path(obj)
    with p.open("rt", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, Mapping):
        raise TypeError(f"config root must be mapping, got {type(data)!r}")
    return dict(data)


def _package_defaults() -> Dict[str, Any]:
    """Load citysim/defaults.yml"""
    txt = resources.files("citysim").joinpath("defaults.yml").read_text()
    return yaml.safe_load(txt) or {}


def _merge(base: Dict[str, Any], extra: Mapping[str, Any]) -> None:
    """Update *base* in place; ``catalog`` is merged one section at a time."""
    for key, value in extra.items():
        if key == "catalog" and isinstance(value, Mapping):
            catalog = dict(base.get("catalog") or {})
            catalog.update(value)
            base["catalog"] = catalog
        else:
            base[key] = value


# Simulation
# ---------------------------------------------------------------------
@dataclass(slots=True)
class Simulation:
    """
    Facade that owns the city state and drives it with real-time deltas.

    One call to :meth:`step` runs the event pipeline once with the scaled
    delta; :meth:`run` calls :meth:`step` repeatedly. Player commands
    (construction, trading, training) go through the facade so that the
    resource pool, labor market and market stay consistent.
    """

    # core state
    rng: Generator
    pool: ResourcePool
    labor: LaborMarket
    market: TradeMarket
    research: ResearchState
    calendar: Calendar
    buildings: dict[str, Building]

    # configuration
    config: Config
    catalog: Catalog

    # event pipeline
    pipeline: Pipeline

    # clock
    now: float = 0.0  # simulated ms since start
    delta: float = 0.0  # scaled delta of the current tick
    t: int = 0  # ticks executed
    time_scale: float = 1.0
    paused: bool = False

    # month signal
    month: int | None = None  # last month seen by notify_month
    month_provider: Callable[[], int] | None = None
    tax_listeners: list[Callable[[TaxReport], None]] = field(default_factory=list)

    last_consumption: dict[str, ClassConsumption] = field(default_factory=dict)
    _building_seq: int = field(default=0, init=False, repr=False)

    # Constructor
    # ---------------------------------------------------------------------
    @classmethod
    def init(
        cls,
        config: str | Path | Mapping[str, Any] | None = None,
        *,
        month_provider: Callable[[], int] | None = None,
        **overrides: Any,  # anything here wins last
    ) -> "Simulation":
        """
        Build a Simulation.

        Order of precedence (later overrides earlier):

            1. package defaults  (citysim/defaults.yml)
            2. *config*  (Path / str / Mapping / None)
            3. explicit keyword arguments (**overrides)

        Parameters
        ----------
        config : str | Path | Mapping, optional
            YAML file or mapping with parameters and/or a ``catalog`` section.
        month_provider : Callable[[], int], optional
            External "current month" source. When given it replaces the
            built-in calendar as the taxation signal.
        **overrides
            Any Config field, ``catalog`` or ``seed`` (int or Generator).

        Examples
        --------
        >>> sim = Simulation.init(seed=42, time_scale=2.0)
        >>> sim.run(10)
        """
        cfg_dict: Dict[str, Any] = _package_defaults()
        _merge(cfg_dict, _read_yaml(config))
        _merge(cfg_dict, overrides)

        # Random-seed handling (a Generator bypasses validation)
        seed_val = cfg_dict.pop("seed", None)
        rng: Generator = (
            seed_val if isinstance(seed_val, Generator) else default_rng(seed_val)
        )
        if not isinstance(seed_val, Generator):
            cfg_dict["seed"] = seed_val

        from citysim.config import ConfigValidator

        ConfigValidator.validate_config(cfg_dict)

        pipeline_path = cfg_dict.get("pipeline_path")
        if pipeline_path is not None:
            ConfigValidator.validate_pipeline_path(pipeline_path)

        return cls._from_params(rng=rng, month_provider=month_provider, **cfg_dict)

    @classmethod
    def _from_params(
        cls,
        *,
        rng: Generator,
        month_provider: Callable[[], int] | None = None,
        **p: Any,
    ) -> "Simulation":
        cfg = Config.from_mapping(p)
        catalog = Catalog.from_mapping(p.get("catalog"))

        pool = ResourcePool.from_catalog(
            catalog,
            tier_caps=cfg.tier_caps,
            rng=rng,
            history_days=cfg.history_days,
            day_length=cfg.day_length,
            trend_threshold=cfg.trend_threshold,
        )
        labor = LaborMarket.from_catalog(
            catalog, housing_capacity=cfg.initial_housing_capacity
        )
        market = TradeMarket.from_catalog(
            catalog,
            market_inventory=cfg.market_inventory_init,
            market_capacity=cfg.market_capacity,
            tax_rate=cfg.tax_rate,
            bulk_reference_amount=cfg.bulk_reference_amount,
            inflation_history_size=cfg.inflation_history_size,
            transaction_history_size=cfg.transaction_history_size,
            tax_history_size=cfg.tax_history_size,
        )
        research = ResearchState.from_catalog(
            catalog, rate=cfg.research_rate, retry_bonus=cfg.research_retry_bonus
        )
        calendar = Calendar(
            day_length=cfg.day_length,
            days_per_month=cfg.days_per_month,
            months_per_year=cfg.months_per_year,
        )

        if cfg.pipeline_path is not None:
            pipeline = Pipeline.from_yaml(cfg.pipeline_path)
        else:
            pipeline = create_default_pipeline()

        if cfg.logging:
            configure_logging(cfg.logging)

        month = month_provider() if month_provider is not None else calendar.total_months

        log.info(
            "City initialised: %d resources, %d professions, %d building types",
            len(pool.resources),
            len(labor.professions),
            len(catalog.building_types),
        )
        return cls(
            rng=rng,
            pool=pool,
            labor=labor,
            market=market,
            research=research,
            calendar=calendar,
            buildings={},
            config=cfg,
            catalog=catalog,
            pipeline=pipeline,
            time_scale=cfg.time_scale,
            paused=cfg.paused,
            month=month,
            month_provider=month_provider,
        )

    # public API: clock
    # ---------------------------------------------------------------------
    def step(self, delta: float = DEFAULT_TICK_MS, now: float | None = None) -> None:
        """
        Advance the city by one real-time *delta* (ms) through the pipeline.

        The delta is multiplied by ``time_scale``. A paused simulation, or a
        scaled delta of zero, leaves every piece of state untouched.

        Parameters
        ----------
        delta : float
            Real milliseconds since the previous step.
        now : float, optional
            Absolute simulated time to use instead of ``self.now + delta``.
        """
        if delta < 0:
            raise ValueError(f"delta must be >= 0, got {delta}")
        scaled = delta * self.time_scale
        if self.paused or scaled <= 0:
            return

        self.delta = scaled
        self.now = now if now is not None else self.now + scaled
        self.market.now = self.now
        self.t += 1

        self.pipeline.execute(self)

        if log.isEnabledFor(DEEP_DEBUG):
            log.deep("Tick %d done at t=%.0f", self.t, self.now)

    def run(self, n_ticks: int, delta: float = DEFAULT_TICK_MS) -> None:
        """
        Advance the simulation *n_ticks* steps of *delta* ms each.

        Returns
        -------
        None   (state is mutated in-place)
        """
        for _ in range(int(n_ticks)):
            self.step(delta)

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    def set_time_scale(self, scale: float) -> None:
        if scale < 0:
            raise ValueError(f"time_scale must be >= 0, got {scale}")
        self.time_scale = float(scale)

    # public API: month signal & tax
    # ---------------------------------------------------------------------
    def notify_month(self, month: int) -> TaxReport | None:
        """
        Tell the city which month it is; tax is collected once per change.

        Returns
        -------
        TaxReport | None
            The report when *month* differs from the last month seen.
        """
        if month == self.month:
            return None
        self.month = month
        report = self.market.process_monthly_tax(month)
        for listener in self.tax_listeners:
            listener(report)
        return report

    def add_tax_listener(self, callback: Callable[[TaxReport], None]) -> None:
        """Register *callback* to receive every monthly :class:`TaxReport`."""
        self.tax_listeners.append(callback)

    # public API: buildings
    # ---------------------------------------------------------------------
    def _next_building_id(self, type_id: str) -> str:
        self._building_seq += 1
        return f"{type_id}_{self._building_seq}"

    def construct_building(
        self,
        type_id: str,
        building_id: str | None = None,
        *,
        priority: str = "medium",
        free: bool = False,
    ) -> ActionResult:
        """
        Pay for and place a building, then staff it.

        Housing buildings add to the housing capacity and storage buildings
        raise resource caps. Production buildings get a production chain and
        a labor entry; a building that cannot be staffed right away is still
        placed and waits for workers.

        Parameters
        ----------
        type_id : str
            Catalog building type.
        building_id : str, optional
            Unique id; generated from the type when omitted.
        priority : {"high", "medium", "low"}
            Labor priority.
        free : bool
            Skip the construction cost (scenario setup).

        Returns
        -------
        ActionResult
            ``details["building_id"]`` on success; ``details["missing"]``
            when resources are short.
        """
        spec = self.catalog.building_type(type_id)
        if spec is None:
            return ActionResult.fail(f"Unknown building type '{type_id}'")

        bid = building_id or self._next_building_id(type_id)
        if bid in self.buildings:
            return ActionResult.fail(f"Building id '{bid}' already exists")

        if not free:
            if not self.pool.has_resources(spec.cost):
                return ActionResult.fail(
                    f"Not enough resources to build {type_id}",
                    cost=dict(spec.cost),
                    missing=self.pool.missing(spec.cost),
                )
            self.pool.consume_resources(spec.cost)

        building = Building.from_type(spec, bid, priority=priority)
        apply_research_effects(self.research, [building])
        self.buildings[bid] = building

        if building.housing_capacity:
            self.labor.housing_capacity += building.housing_capacity
        for rid, bonus in building.storage_bonus.items():
            self.pool.increase_cap(rid, bonus)

        details: dict[str, Any] = {"building_id": bid}
        if building.is_producer:
            self.pool.register_chain(building)
            staffing = self.labor.assign(
                bid,
                type_id,
                building.current_worker_requirement(),
                building.priority,
            )
            apply_staffing(self.labor, [building])
            details["staffed"] = staffing.success
            details.update(staffing.details)

        log.info("Constructed %s (%s)", bid, type_id)
        return ActionResult.ok(f"{type_id} constructed", **details)

    def remove_building(self, building_id: str) -> ActionResult:
        """Demolish a building, releasing its workers, chain and bonuses."""
        building = self.buildings.pop(building_id, None)
        if building is None:
            return ActionResult.fail(f"No building '{building_id}'")

        released = self.labor.release(building_id)
        if released:
            self.labor.needs_reevaluation = True
        self.pool.unregister_chain(building_id)
        if building.housing_capacity:
            self.labor.housing_capacity = max(
                0, self.labor.housing_capacity - building.housing_capacity
            )
        for rid, bonus in building.storage_bonus.items():
            self.pool.increase_cap(rid, -bonus)

        for listener in building.listeners:
            listener.on_removed(building)
        log.info("Removed %s (%s)", building_id, building.type)
        return ActionResult.ok(f"{building.type} removed", released=released)

    def upgrade_building(self, building_id: str) -> ActionResult:
        building = self.buildings.get(building_id)
        if building is None:
            return ActionResult.fail(f"No building '{building_id}'")
        cfg = self.config
        return building.upgrade(
            self.pool,
            cost_factor=cfg.upgrade_cost_factor,
            efficiency_step=cfg.upgrade_efficiency_step,
            output_multiplier=cfg.upgrade_output_multiplier,
        )

    def _sync_building(self, building: Building) -> None:
        """Push a recipe or staffing change into the pool and labor market."""
        if building.id in self.pool.chains:
            self.pool.register_chain(building)
        entry = self.labor.assignments.get(building.id)
        if entry is not None:
            entry.requirement = building.current_worker_requirement()
            entry.priority = building.priority
            self.labor.needs_reevaluation = True

    def configure_building(
        self,
        building_id: str,
        *,
        priority: str | None = None,
        production_method: str | None = None,
        byproduct_type: str | None = None,
        work_mode: str | None = None,
    ) -> ActionResult:
        """
        Change a building's priority, production method, byproduct type or
        work mode. Every given option must be valid; nothing is changed
        otherwise.
        """
        building = self.buildings.get(building_id)
        if building is None:
            return ActionResult.fail(f"No building '{building_id}'")

        checks = (
            (priority, lambda v: v in ("high", "medium", "low"), "priority"),
            (
                production_method,
                lambda v: any(m.id == v for m in building.production_methods),
                "production method",
            ),
            (
                byproduct_type,
                lambda v: any(b.id == v for b in building.byproduct_types),
                "byproduct type",
            ),
            (work_mode, lambda v: any(w.id == v for w in building.work_modes), "work mode"),
        )
        for value, valid, label in checks:
            if value is not None and not valid(value):
                return ActionResult.fail(f"Invalid {label} '{value}' for {building.type}")

        if priority is not None:
            building.set_priority(priority)
        if production_method is not None:
            building.set_production_method(production_method)
        if byproduct_type is not None:
            building.set_byproduct_type(byproduct_type)
        if work_mode is not None:
            building.set_work_mode(work_mode)
        self._sync_building(building)
        return ActionResult.ok(f"{building.type} reconfigured", info=building.info())

    # public API: population
    # ---------------------------------------------------------------------
    def train_workers(self, profession_id: str, count: int) -> ActionResult:
        return self.labor.train_workers(profession_id, count, self.pool)

    def promote_worker(self, source: str, target: str) -> ActionResult:
        result = self.labor.promote_worker(source, target, self.pool)
        if result:
            self.labor.needs_reevaluation = True
        return result

    # public API: market
    # ---------------------------------------------------------------------
    def buy_resource(self, resource: str, amount: float, gold: float) -> TradeResult:
        return self.market.player_buy_resource(resource, amount, self.pool, gold)

    def sell_resource(
        self, resource: str, amount: float, gold: float | None = None
    ) -> TradeResult:
        return self.market.player_sell_resource(resource, amount, self.pool, gold)

    def buy_service(self, service: str, amount: float, gold: float) -> TradeResult:
        return self.market.player_buy_service(service, amount, gold)

    def add_local_event(
        self,
        price_modifiers: Mapping[str, float],
        duration: float,
        *,
        start_time: float | None = None,
        event_id: str | None = None,
    ) -> LocalEvent:
        """Start a local price event; affected prices are recomputed at once."""
        from citysim.systems.pricing import reprice_for_events

        event = self.market.add_local_event(
            dict(price_modifiers), duration, start_time=start_time, event_id=event_id
        )
        if event.is_active(self.now):
            reprice_for_events(self.market, self.pool, self.rng, self.now, [event])
        return event

    # public API: research
    # ---------------------------------------------------------------------
    def start_research(self, tech_id: str) -> ActionResult:
        """
        Pay for *tech_id* from the pool and make it the active project.

        Progress accrues each tick in the ``update_research`` event; effects
        of completed technologies apply to every building.
        """
        return self.research.start(tech_id, self.pool)

    def research_progress(self) -> dict[str, Any]:
        return self.research.progress()

    def available_technologies(self) -> list[str]:
        return self.research.available()

    # public API: lookup & reporting
    # ---------------------------------------------------------------------
    def get_role(self, name: str) -> Any:
        """
        Get a state container by name.

        Parameters
        ----------
        name : str
            Role name (case-insensitive): 'ResourcePool', 'LaborMarket',
            'TradeMarket', 'ResearchState', 'Calendar' (or 'pool',
            'labor', 'market', 'research').

        Raises
        ------
        ValueError
            If role name not found.

        Examples
        --------
        >>> sim = Simulation.init()
        >>> assert sim.get_role("LaborMarket") is sim.labor
        """
        role_map = {
            "resourcepool": self.pool,
            "pool": self.pool,
            "labormarket": self.labor,
            "labor": self.labor,
            "trademarket": self.market,
            "market": self.market,
            "researchstate": self.research,
            "research": self.research,
            "calendar": self.calendar,
        }
        key = name.lower().replace("_", "")
        if key not in role_map:
            available = sorted(role_map.keys())
            raise ValueError(f"Role '{name}' not found. Available roles: {available}")
        return role_map[key]

    def get_event(self, name: str) -> Any:
        """
        Get event instance from pipeline by name.

        Raises
        ------
        KeyError
            If event not found in pipeline.
        """
        for event in self.pipeline.events:
            if event.name == name:
                return event
        available = [e.name for e in self.pipeline.events[:5]]
        raise KeyError(
            f"Event '{name}' not found in pipeline. "
            f"Available (first 5): {available}..."
        )

    def stats(self) -> dict[str, Any]:
        """Snapshot of the whole city for dashboards."""
        return {
            "time": self.now,
            "calendar": self.calendar.as_dict(),
            "resources": self.pool.snapshot(),
            "trends": self.pool.trends(),
            "population": self.labor.population_stats(),
            "market": self.market.market_stats(),
            "research": self.research.stats(),
            "buildings": {bid: b.info() for bid, b in self.buildings.items()},
        }
