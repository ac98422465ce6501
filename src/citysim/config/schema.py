"""
Configuration dataclass for simulation parameters.

This module defines the Config dataclass, which groups all simulation
tunables in one immutable object. Config instances are created by
Simulation.init() after merging defaults, user config, and kwargs.

Design Notes
------------
- Immutable (frozen=True) to prevent accidental modification
- Memory-efficient (slots=True)
- Catalog data (resources, buildings, professions, goods) is not part
  of Config; it lives in :class:`citysim.catalog.Catalog`
- No validation logic here - validation happens in ConfigValidator

See Also
--------
ConfigValidator : Centralized validation for configuration parameters
citysim.simulation.Simulation.init : Creates Config from merged parameters
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Mapping


def _default_tier_caps() -> dict[int, float]:
    return {1: 1000.0, 2: 500.0, 3: 200.0, 4: 100.0}


@dataclass(slots=True, frozen=True)
class Config:
    """
    Immutable configuration for the city simulation.

    Parameters
    ----------
    time_scale : float
        Multiplier applied to every real delta before it reaches a subsystem.
    day_length : float
        Simulated milliseconds per game day.
    days_per_month, months_per_year : int
        Calendar geometry; month boundaries trigger taxation.
    tier_caps : dict[int, float]
        Default resource cap per tier (1=raw ... 4=end-product).
    history_days : int
        Number of daily samples kept per resource for trend detection.
    trend_threshold : float
        Relative change beyond which a resource trend is reported.
    upgrade_cost_factor : float
        Per-level cost growth: cost * (1 + level * factor).
    upgrade_efficiency_step : float
        Added to a building's base efficiency on each upgrade.
    upgrade_output_multiplier : float
        Applied (ceil) to every recipe output on each upgrade.
    research_rate : float
        Research points accrued per simulated second on the active project.
    research_retry_bonus : float
        Success chance added for each earlier attempt at a technology.
    initial_housing_capacity : int
        Housing available before any housing building exists.
    happiness_interval : float
        Period of happiness recomputation (ms).
    experience_interval, class_check_interval, migration_interval : float
        Periods of experience accrual, promotion/demotion checks and
        migration/mobility checks (ms).
    experience_rate : float
        Experience gained per assigned worker per experience interval.
    market_blend, overall_blend : float
        Smoothing rates of the market factor and of overall happiness.
    market_impact_scale : float
        Converts a class's summed consumption impact into market factor
        points around the neutral value 50.
    loss_threshold, demotion_threshold : float
        Class happiness below which population loss / class demotion
        becomes possible.
    demotion_happiness : float
        Overall happiness below which profession demotion is rolled.
    overcrowding_threshold, overcrowding_demotion_bonus : float
        Occupancy ratio above which upper-class professions get the bonus
        demotion chance.
    mobility_threshold_lower, mobility_threshold_middle : float
        Class happiness enabling upward mobility.
    immigration_threshold, immigration_capacity_ratio : float
        Overall happiness enabling immigration, and the occupancy ratio
        under which immigrants still arrive.
    max_loss_ratio, max_demotion_ratio, max_mobility_ratio,
    max_immigration_ratio : float
        Upper bounds of the share of a class (or of the population) moved
        by one migration event.
    immigrant_happiness : float
        Happiness carried by units bulk-added to a class.
    growth_rate : float
        Natural growth per second at overall happiness 50.
    price_fluctuation_interval, consumption_interval,
    random_event_interval : float
        Periods of the market cycles (ms).
    random_event_chance : float
        Probability of a random local event per event interval.
    market_inventory_init, market_capacity : float
        Market-side stock per good at start, and its maximum.
    bulk_reference_amount : float
        Amount at which bulk trade price adjustment reaches its bound.
    tax_rate : float
        Share of monthly revenue collected as tax.
    inflation_history_size, transaction_history_size, tax_history_size : int
        Ring buffer lengths.
    paused : bool
        When True no simulated time elapses.
    seed : int | None
        Seed for the random generator.
    pipeline_path : str | None
        Custom pipeline YAML; None uses the default pipeline.
    logging : dict
        ``{"default_level": str, "events": {name: level}}``.
    """

    # clock
    time_scale: float = 1.0
    day_length: float = 5000.0
    days_per_month: int = 30
    months_per_year: int = 12

    # resource pool
    tier_caps: dict[int, float] = field(default_factory=_default_tier_caps)
    history_days: int = 5
    trend_threshold: float = 0.05

    # buildings
    upgrade_cost_factor: float = 0.5
    upgrade_efficiency_step: float = 0.2
    upgrade_output_multiplier: float = 1.2

    # research
    research_rate: float = 0.1
    research_retry_bonus: float = 0.1

    # population & labor
    initial_housing_capacity: int = 20
    happiness_interval: float = 1000.0
    experience_interval: float = 10000.0
    experience_rate: float = 1.0
    class_check_interval: float = 30000.0
    migration_interval: float = 60000.0
    market_blend: float = 0.3
    overall_blend: float = 0.1
    market_impact_scale: float = 2.5
    loss_threshold: float = 20.0
    demotion_threshold: float = 35.0
    demotion_happiness: float = 30.0
    overcrowding_threshold: float = 0.9
    overcrowding_demotion_bonus: float = 0.01
    mobility_threshold_lower: float = 75.0
    mobility_threshold_middle: float = 85.0
    immigration_threshold: float = 70.0
    immigration_capacity_ratio: float = 0.9
    max_loss_ratio: float = 0.08
    max_demotion_ratio: float = 0.05
    max_mobility_ratio: float = 0.03
    max_immigration_ratio: float = 0.03
    immigrant_happiness: float = 80.0
    growth_rate: float = 0.001

    # trade market
    price_fluctuation_interval: float = 60000.0
    consumption_interval: float = 30000.0
    random_event_interval: float = 30000.0
    random_event_chance: float = 0.1
    market_inventory_init: float = 100.0
    market_capacity: float = 1000.0
    bulk_reference_amount: float = 1000.0
    tax_rate: float = 0.05
    inflation_history_size: int = 100
    transaction_history_size: int = 100
    tax_history_size: int = 120

    # misc
    paused: bool = False
    seed: int | None = None
    pipeline_path: str | None = None
    logging: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, cfg: Mapping[str, Any]) -> Config:
        """Build a Config from a merged mapping, ignoring unknown keys."""
        names = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in cfg.items() if k in names}
        if "tier_caps" in kwargs:
            kwargs["tier_caps"] = {
                int(k): float(v) for k, v in kwargs["tier_caps"].items()
            }
        return cls(**kwargs)
