"""
Research: starting projects, accruing progress and applying tech effects.

A project needs its points (accrued at ``rate`` per second), its days and
the working hours of the listed building types. Once all three are
reached it completes with the technology's success chance, which grows by
``retry_bonus`` per earlier attempt. A failed roll ends the project; it can
be started again at full cost.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from numpy.random import Generator

from citysim.results import ActionResult
from citysim.roles.research import ResearchProject

if TYPE_CHECKING:
    from citysim.roles.building import Building
    from citysim.roles.research import ResearchState
    from citysim.roles.resource_pool import ResourcePool

log = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600.0


def start_research(research: ResearchState, pool: ResourcePool, tech_id: str) -> ActionResult:
    """
    Pay the cost of *tech_id* and make it the active project.

    Nothing is consumed unless every check passes.
    """
    tech = research.technologies.get(tech_id)
    if tech is None:
        return ActionResult.fail(f"Unknown technology '{tech_id}'")
    if research.is_completed(tech_id):
        return ActionResult.fail(f"{tech.name} is already researched")
    if research.active is not None:
        return ActionResult.fail(
            f"Already researching {research.active.tech_id}", active=research.active.tech_id
        )
    if not research.prerequisites_met(tech_id):
        missing = [req for req in tech.prerequisites if not research.is_completed(req)]
        return ActionResult.fail(f"Prerequisites of {tech.name} not met", missing=missing)
    if not pool.has_resources(tech.cost):
        return ActionResult.fail(
            f"Not enough resources to research {tech.name}",
            cost=dict(tech.cost),
            missing=pool.missing(tech.cost),
        )

    consumed = pool.consume_resources(tech.cost)
    research.active = ResearchProject(tech_id=tech_id, consumed=consumed)
    research.attempts[tech_id] = research.attempts.get(tech_id, 0) + 1
    log.info("Started research of %s (attempt %d)", tech_id, research.attempts[tech_id])
    return ActionResult.ok(
        f"Researching {tech.name}",
        cost=consumed,
        attempt=research.attempts[tech_id],
    )


def _requirements_met(research: ResearchState) -> bool:
    project = research.active
    assert project is not None
    tech = research.technologies[project.tech_id]
    if project.points < tech.points or project.days < tech.days:
        return False
    return all(
        project.building_hours.get(btype, 0.0) >= hours
        for btype, hours in tech.building_hours.items()
    )


def advance_research(
    research: ResearchState,
    pool: ResourcePool,
    buildings: Iterable[Building],
    rng: Generator,
    delta: float,
    day_length: float,
) -> ActionResult | None:
    """
    Accrue *delta* ms of progress on the active project.

    Returns
    -------
    ActionResult | None
        The outcome of the success roll when the project finished during
        this call, otherwise None.
    """
    project = research.active
    if project is None or delta <= 0:
        return None

    tech = research.technologies[project.tech_id]
    seconds = delta / 1000.0
    project.points += research.rate * seconds
    project.days += delta / day_length

    if tech.building_hours:
        active_counts: dict[str, int] = {}
        for building in buildings:
            if building.type in tech.building_hours and building.is_active:
                active_counts[building.type] = active_counts.get(building.type, 0) + 1
        for btype, count in active_counts.items():
            gained = count * seconds / SECONDS_PER_HOUR
            project.building_hours[btype] = project.building_hours.get(btype, 0.0) + gained

    if not _requirements_met(research):
        return None

    chance = research.success_chance(project.tech_id)
    if chance < 1.0 and float(rng.random()) > chance:
        research.active = None
        if project.tech_id not in research.failed:
            research.failed.append(project.tech_id)
        log.info("Research of %s failed (chance %.0f%%)", project.tech_id, chance * 100)
        return ActionResult.fail(
            f"Research of {tech.name} failed",
            tech_id=project.tech_id,
            success_chance=chance,
            attempts=research.attempts.get(project.tech_id, 1),
        )

    complete_research(research, pool, project.tech_id)
    return ActionResult.ok(f"Researched {tech.name}", tech_id=project.tech_id)


def complete_research(research: ResearchState, pool: ResourcePool, tech_id: str) -> None:
    """
    Mark *tech_id* completed and apply its one-off effects.

    Storage effects raise every resource cap by ``cap * (multiplier - 1)``;
    the other effects are read by :func:`apply_research_effects`.
    """
    if tech_id not in research.technologies or research.is_completed(tech_id):
        return
    research.completed.append(tech_id)
    if tech_id in research.failed:
        research.failed.remove(tech_id)
    if research.active is not None and research.active.tech_id == tech_id:
        research.active = None

    for effect in research.technologies[tech_id].effects:
        if effect.kind == "storage_cap":
            for rid, res in pool.resources.items():
                pool.increase_cap(rid, res.cap * (effect.value - 1.0))
    log.info("Completed research of %s", tech_id)


def apply_research_effects(research: ResearchState, buildings: Iterable[Building]) -> None:
    """Push the combined tech multipliers into each building."""
    speed = research.effect_value("production_speed")
    consumption = research.effect_value("resource_consumption")
    for building in buildings:
        building.research_efficiency = research.effect_value("building_efficiency", building.type)
        building.research_speed = speed
        building.research_input = consumption
        produced = list(building.output)
        method = building.production_method()
        if method is not None:
            produced += [rid for rid in method.output_modifiers if rid not in building.output]
        bonus = {}
        for rid in produced:
            mult = research.effect_value("production_multiplier", rid)
            if mult != 1.0:
                bonus[rid] = mult
        building.research_output = bonus
