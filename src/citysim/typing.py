"""
Type aliases for citysim.

Examples
--------
>>> from citysim.typing import ResourceMap
>>> cost: ResourceMap = {"magic_ore": 20, "enchanted_wood": 10}
"""

from typing import Literal, Mapping, TypeAlias

import numpy as np

ResourceId: TypeAlias = str
"""Identifier of a resource in the pool (e.g. ``"magic_ore"``)."""

ResourceMap: TypeAlias = Mapping[str, float]
"""Resource id to amount; used for recipes, costs and deltas."""

WorkerMap: TypeAlias = Mapping[str, int]
"""Profession id to head count; used for worker requirements."""

Priority: TypeAlias = Literal["high", "medium", "low"]

ClassName: TypeAlias = str
"""Social class id (``"lower"``, ``"middle"``, ``"upper"`` by default)."""

Rng: TypeAlias = np.random.Generator

PRIORITIES: tuple[Priority, ...] = ("high", "medium", "low")

TECH_EFFECT_KINDS: tuple[str, ...] = (
    "production_multiplier",
    "building_efficiency",
    "production_speed",
    "resource_consumption",
    "storage_cap",
)
"""Effect kinds a technology may carry."""
