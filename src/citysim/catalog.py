"""
Static game data consumed by the simulation core.

The catalog describes what can exist (resources, professions, building
types, goods, services, event templates). The core treats it as read-only
input; every runtime object copies what it needs at creation time.

A catalog is normally built from the ``catalog`` section of
``defaults.yml`` merged with user configuration, see
:meth:`Catalog.from_mapping`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from citysim.logging import getLogger

log = getLogger(__name__)



def _amounts(raw: Mapping[str, Any] | None) -> dict[str, float]:
    return {str(k): float(v) for k, v in (raw or {}).items()}


def _counts(raw: Mapping[str, Any] | None) -> dict[str, int]:
    return {str(k): int(v) for k, v in (raw or {}).items()}


@dataclass(slots=True, frozen=True)
class ResourceSpec:
    id: str
    tier: int
    initial: float = 0.0


@dataclass(slots=True, frozen=True)
class SocialClassSpec:
    """
    Happiness model parameters of one social class.

    Housing factor is ``50 + density * housing_slope``, multiplied by
    ``crowding_penalty`` when density falls under ``crowding_cutoff``.
    """

    id: str
    rank: int
    weights: dict[str, float]
    base: float = 50.0
    housing_slope: float = 50.0
    crowding_cutoff: float = 0.0
    crowding_penalty: float = 1.0


@dataclass(slots=True, frozen=True)
class ProfessionSpec:
    id: str
    social_class: str
    count: int = 0
    production_multiplier: float = 1.0
    promotion_chance: float = 0.0
    demotion_chance: float = 0.0
    training_cost: dict[str, float] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class PromotionPath:
    source: str
    target: str
    experience: float
    happiness: float
    resources: dict[str, float] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class ProductionMethod:
    """Alternative way of running a recipe."""

    id: str
    time_modifier: float = 1.0
    input_modifiers: dict[str, float] = field(default_factory=dict)
    output_modifiers: dict[str, float] = field(default_factory=dict)
    enable_byproducts: bool = False
    workers: dict[str, int] | None = None


@dataclass(slots=True, frozen=True)
class ByproductType:
    id: str
    resources: dict[str, float] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class WorkMode:
    id: str
    worker_modifier: float = 1.0
    time_modifier: float = 1.0


@dataclass(slots=True, frozen=True)
class BuildingType:
    """
    Blueprint of a building.

    ``category`` is one of collector, production, advanced, housing,
    utility or special. Only the first three run a recipe.
    """

    id: str
    category: str
    input: dict[str, float] = field(default_factory=dict)
    output: dict[str, float] = field(default_factory=dict)
    interval: float = 5000.0
    cost: dict[str, float] = field(default_factory=dict)
    workers: dict[str, int] = field(default_factory=dict)
    production_methods: tuple[ProductionMethod, ...] = ()
    byproduct_types: tuple[ByproductType, ...] = ()
    work_modes: tuple[WorkMode, ...] = ()
    housing_capacity: int = 0
    storage_bonus: dict[str, float] = field(default_factory=dict)

    NON_PRODUCING = ("housing", "utility", "special")

    @property
    def is_producer(self) -> bool:
        return self.category not in self.NON_PRODUCING


@dataclass(slots=True, frozen=True)
class GoodSpec:
    id: str
    base_price: float
    volatility: float = 0.1


@dataclass(slots=True, frozen=True)
class DemandSpec:
    id: str
    rate: float
    base_price: float
    importance: float
    resources: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class ServiceSpec:
    id: str
    base_price: float
    volatility: float = 0.1
    initial: float = 100.0
    capacity: float = 100.0
    daily_recovery: float = 0.0
    consumption_rate: float = 0.0


@dataclass(slots=True, frozen=True)
class EventTemplate:
    id: str
    duration: float
    price_modifiers: dict[str, float] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class TechEffect:
    """
    One effect of a completed technology.

    ``kind`` is one of ``production_multiplier`` (outputs of *target*
    resource), ``building_efficiency`` (buildings of *target* type),
    ``production_speed`` (cycle time, all buildings), ``resource_consumption``
    (inputs, all buildings) or ``storage_cap`` (all caps, applied once).
    A None *target* applies everywhere.
    """

    kind: str
    value: float
    target: str | None = None


@dataclass(slots=True, frozen=True)
class TechnologySpec:
    """
    Research project in the tech tree.

    ``cost`` is taken from the resource pool when research starts. The
    project completes once ``points`` research points and ``days`` days have
    accrued and every building type in ``building_hours`` has worked its
    hours; completion then succeeds with ``success_rate``.
    """

    id: str
    name: str = ""
    cost: dict[str, float] = field(default_factory=dict)
    prerequisites: tuple[str, ...] = ()
    points: float = 0.0
    days: float = 0.0
    building_hours: dict[str, float] = field(default_factory=dict)
    success_rate: float = 1.0
    effects: tuple[TechEffect, ...] = ()


@dataclass(slots=True, frozen=True)
class Catalog:
    """
    Read-only registry of game data.

    Attributes
    ----------
    resources : Mapping[str, ResourceSpec]
    social_classes : Mapping[str, SocialClassSpec]
        Ordered by rank (lowest first).
    professions : Mapping[str, ProfessionSpec]
    promotion_paths : tuple[PromotionPath, ...]
    building_types : Mapping[str, BuildingType]
    goods : Mapping[str, GoodSpec]
    demands : Mapping[str, tuple[DemandSpec, ...]]
        Demand categories per social class.
    services : Mapping[str, ServiceSpec]
    event_templates : tuple[EventTemplate, ...]
    technologies : Mapping[str, TechnologySpec]
    """

    resources: Mapping[str, ResourceSpec] = field(default_factory=dict)
    social_classes: Mapping[str, SocialClassSpec] = field(default_factory=dict)
    professions: Mapping[str, ProfessionSpec] = field(default_factory=dict)
    promotion_paths: tuple[PromotionPath, ...] = ()
    building_types: Mapping[str, BuildingType] = field(default_factory=dict)
    goods: Mapping[str, GoodSpec] = field(default_factory=dict)
    demands: Mapping[str, tuple[DemandSpec, ...]] = field(default_factory=dict)
    services: Mapping[str, ServiceSpec] = field(default_factory=dict)
    event_templates: tuple[EventTemplate, ...] = ()
    technologies: Mapping[str, TechnologySpec] = field(default_factory=dict)

    # lookups
    # ---------------------------------------------------------------------
    def building_type(self, type_id: str) -> BuildingType | None:
        """Return a building type, logging unknown ids."""
        spec = self.building_types.get(type_id)
        if spec is None:
            log.warning("Unknown building type '%s'", type_id)
        return spec

    def class_order(self) -> list[str]:
        """Social class ids from lowest to highest rank."""
        return sorted(self.social_classes, key=lambda c: self.social_classes[c].rank)

    def professions_in(self, class_id: str) -> list[str]:
        return [p.id for p in self.professions.values() if p.social_class == class_id]

    def worker_requirement(self, type_id: str) -> dict[str, int]:
        spec = self.building_types.get(type_id)
        return dict(spec.workers) if spec is not None else {}

    # construction
    # ---------------------------------------------------------------------
    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> Catalog:
        """
        Build a catalog from plain YAML-shaped data.

        Parameters
        ----------
        data : Mapping
            The ``catalog`` section of the configuration.

        Returns
        -------
        Catalog
        """
        data = data or {}

        resources = {
            rid: ResourceSpec(
                id=rid,
                tier=int(spec.get("tier", 1)),
                initial=float(spec.get("initial", 0.0)),
            )
            for rid, spec in data.get("resources", {}).items()
        }

        classes = {}
        for cid, spec in data.get("social_classes", {}).items():
            housing = spec.get("housing", {})
            classes[cid] = SocialClassSpec(
                id=cid,
                rank=int(spec.get("rank", len(classes))),
                weights=_amounts(spec.get("weights")),
                base=float(spec.get("base", 50.0)),
                housing_slope=float(housing.get("slope", 50.0)),
                crowding_cutoff=float(housing.get("crowding_cutoff", 0.0)),
                crowding_penalty=float(housing.get("crowding_penalty", 1.0)),
            )
        classes = dict(sorted(classes.items(), key=lambda kv: kv[1].rank))

        professions = {
            pid: ProfessionSpec(
                id=pid,
                social_class=str(spec["social_class"]),
                count=int(spec.get("count", 0)),
                production_multiplier=float(spec.get("production_multiplier", 1.0)),
                promotion_chance=float(spec.get("promotion_chance", 0.0)),
                demotion_chance=float(spec.get("demotion_chance", 0.0)),
                training_cost=_amounts(spec.get("training_cost")),
            )
            for pid, spec in data.get("professions", {}).items()
        }

        paths = tuple(
            PromotionPath(
                source=str(p["from"]),
                target=str(p["to"]),
                experience=float(p.get("experience", 0.0)),
                happiness=float(p.get("happiness", 0.0)),
                resources=_amounts(p.get("resources")),
            )
            for p in data.get("promotion_paths", [])
        )

        buildings = {
            bid: _building_type(bid, spec)
            for bid, spec in data.get("building_types", {}).items()
        }

        goods = {
            gid: GoodSpec(
                id=gid,
                base_price=float(spec["base_price"]),
                volatility=float(spec.get("volatility", 0.1)),
            )
            for gid, spec in data.get("goods", {}).items()
        }

        demands = {
            class_id: tuple(
                DemandSpec(
                    id=did,
                    rate=float(spec.get("rate", 0.0)),
                    base_price=float(spec.get("base_price", 1.0)),
                    importance=float(spec.get("importance", 0.0)),
                    resources=tuple(spec.get("resources", ())),
                )
                for did, spec in per_class.items()
            )
            for class_id, per_class in data.get("demands", {}).items()
        }

        services = {
            sid: ServiceSpec(
                id=sid,
                base_price=float(spec["base_price"]),
                volatility=float(spec.get("volatility", 0.1)),
                initial=float(spec.get("initial", 100.0)),
                capacity=float(spec.get("capacity", 100.0)),
                daily_recovery=float(spec.get("daily_recovery", 0.0)),
                consumption_rate=float(spec.get("consumption_rate", 0.0)),
            )
            for sid, spec in data.get("services", {}).items()
        }

        templates = tuple(
            EventTemplate(
                id=str(t["id"]),
                duration=float(t["duration"]),
                price_modifiers=_amounts(t.get("price_modifiers")),
            )
            for t in data.get("event_templates", [])
        )

        technologies = {
            tid: _technology(tid, spec) for tid, spec in data.get("technologies", {}).items()
        }

        return cls(
            resources=MappingProxyType(resources),
            social_classes=MappingProxyType(classes),
            professions=MappingProxyType(professions),
            promotion_paths=paths,
            building_types=MappingProxyType(buildings),
            goods=MappingProxyType(goods),
            demands=MappingProxyType(demands),
            services=MappingProxyType(services),
            event_templates=templates,
            technologies=MappingProxyType(technologies),
        )


def _building_type(bid: str, spec: Mapping[str, Any]) -> BuildingType:
    recipe = spec.get("recipe", {})
    methods = tuple(
        ProductionMethod(
            id=str(m["id"]),
            time_modifier=float(m.get("time_modifier", 1.0)),
            input_modifiers=_amounts(m.get("input_modifiers")),
            output_modifiers=_amounts(m.get("output_modifiers")),
            enable_byproducts=bool(m.get("enable_byproducts", False)),
            workers=_counts(m["workers"]) if "workers" in m else None,
        )
        for m in spec.get("production_methods", [])
    )
    byproducts = tuple(
        ByproductType(id=str(b["id"]), resources=_amounts(b.get("resources")))
        for b in spec.get("byproduct_types", [])
    )
    modes = tuple(
        WorkMode(
            id=str(w["id"]),
            worker_modifier=float(w.get("worker_modifier", 1.0)),
            time_modifier=float(w.get("time_modifier", 1.0)),
        )
        for w in spec.get("work_modes", [])
    )
    return BuildingType(
        id=bid,
        category=str(spec.get("category", "production")),
        input=_amounts(recipe.get("input")),
        output=_amounts(recipe.get("output")),
        interval=float(spec.get("interval", 5000.0)),
        cost=_amounts(spec.get("cost")),
        workers=_counts(spec.get("workers")),
        production_methods=methods,
        byproduct_types=byproducts,
        work_modes=modes,
        housing_capacity=int(spec.get("housing_capacity", 0)),
        storage_bonus=_amounts(spec.get("storage_bonus")),
    )


def _technology(tid: str, spec: Mapping[str, Any]) -> TechnologySpec:
    effects = []
    for kind, raw in (spec.get("effects") or {}).items():
        target = raw.get("resource", raw.get("building"))
        value = raw.get("value", raw.get("multiplier", 1.0))
        effects.append(TechEffect(kind=str(kind), value=float(value), target=target))
    return TechnologySpec(
        id=tid,
        name=str(spec.get("name", tid)),
        cost=_amounts(spec.get("cost")),
        prerequisites=tuple(spec.get("prerequisites", ())),
        points=float(spec.get("points", 0.0)),
        days=float(spec.get("days", 0.0)),
        building_hours=_amounts(spec.get("building_hours")),
        success_rate=float(spec.get("success_rate", 1.0)),
        effects=tuple(effects),
    )
