"""Research state: the tech tree, the active project and completed technologies."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from citysim.catalog import Catalog, TechnologySpec
    from citysim.results import ActionResult
    from citysim.roles.resource_pool import ResourcePool


@dataclass(slots=True)
class ResearchProject:
    """Progress of the technology currently being researched."""

    tech_id: str
    points: float = 0.0
    days: float = 0.0
    building_hours: dict[str, float] = field(default_factory=dict)
    consumed: dict[str, float] = field(default_factory=dict)


@dataclass(slots=True)
class ResearchState:
    """
    Pure *state* container for research.

    Starting, advancing and completing projects lives in
    :mod:`citysim.systems.research`.

    Attributes
    ----------
    technologies : dict[str, TechnologySpec]
        The tech tree.
    completed : list[str]
        Completed technology ids in completion order.
    failed : list[str]
        Technologies whose last attempt failed the success roll.
    attempts : dict[str, int]
        Number of started attempts per technology.
    active : ResearchProject | None
        The single project in progress.
    rate : float
        Research points per simulated second.
    retry_bonus : float
        Success chance added per earlier attempt.
    """

    technologies: dict[str, TechnologySpec] = field(default_factory=dict)
    completed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    attempts: dict[str, int] = field(default_factory=dict)
    active: ResearchProject | None = None
    rate: float = 0.1
    retry_bonus: float = 0.1

    @classmethod
    def from_catalog(
        cls, catalog: Catalog, *, rate: float = 0.1, retry_bonus: float = 0.1
    ) -> ResearchState:
        return cls(technologies=dict(catalog.technologies), rate=rate, retry_bonus=retry_bonus)

    def start(self, tech_id: str, pool: ResourcePool) -> ActionResult:
        from citysim.systems.research import start_research

        return start_research(self, pool, tech_id)

    def is_completed(self, tech_id: str) -> bool:
        return tech_id in self.completed

    def prerequisites_met(self, tech_id: str) -> bool:
        tech = self.technologies.get(tech_id)
        if tech is None:
            return False
        return all(req in self.completed for req in tech.prerequisites)

    def available(self) -> list[str]:
        """Technologies not yet completed whose prerequisites are."""
        return [
            tid
            for tid in self.technologies
            if not self.is_completed(tid) and self.prerequisites_met(tid)
        ]

    def success_chance(self, tech_id: str) -> float:
        """Base success rate plus ``retry_bonus`` per earlier attempt, capped at 1."""
        tech = self.technologies[tech_id]
        earlier = max(0, self.attempts.get(tech_id, 1) - 1)
        return min(1.0, tech.success_rate + earlier * self.retry_bonus)

    def effect_value(self, kind: str, target: str | None = None) -> float:
        """
        Combined multiplier of every completed effect of *kind* on *target*.

        Effects without a target apply to every target. Returns 1.0 when
        nothing applies.
        """
        value = 1.0
        for tid in self.completed:
            for effect in self.technologies[tid].effects:
                if effect.kind != kind:
                    continue
                if effect.target is None or effect.target == target:
                    value *= effect.value
        return value

    def progress(self) -> dict[str, Any]:
        """Progress of the active project for dashboards."""
        if self.active is None:
            return {"active": False}
        project = self.active
        tech = self.technologies[project.tech_id]
        parts = [_ratio(project.points, tech.points), _ratio(project.days, tech.days)]
        hours = {}
        for btype, required in tech.building_hours.items():
            current = project.building_hours.get(btype, 0.0)
            hours[btype] = {"current": current, "required": required}
            parts.append(_ratio(current, required))
        return {
            "active": True,
            "id": project.tech_id,
            "name": tech.name,
            "points": {"current": project.points, "required": tech.points},
            "days": {"current": project.days, "required": tech.days},
            "building_hours": hours,
            "consumed": dict(project.consumed),
            "total_progress": sum(parts) / len(parts),
            "success_chance": self.success_chance(project.tech_id),
            "attempts": self.attempts.get(project.tech_id, 0),
        }

    def stats(self) -> dict[str, Any]:
        return {
            "completed": list(self.completed),
            "failed": list(self.failed),
            "available": self.available(),
            "active": self.active.tech_id if self.active is not None else None,
        }


def _ratio(current: float, required: float) -> float:
    if required <= 0:
        return 1.0
    return min(1.0, current / required)
