"""Tests for default pipeline builder."""

import citysim.events  # noqa: F401 - needed to register events
from citysim.core.default_pipeline import create_default_pipeline

EXPECTED_ORDER = [
    "update_resource_pool",
    "update_research",
    "buildings_update_production",
    "labor_reevaluate_assignments",
    "labor_accumulate_experience",
    "population_growth",
    "update_happiness",
    "check_promotions",
    "check_demotions",
    "check_migration",
    "purge_local_events",
    "trigger_random_events",
    "fluctuate_prices",
    "process_population_consumption",
    "advance_calendar",
]


def test_create_default_pipeline():
    """Default pipeline holds one instance of every built-in event."""
    pipeline = create_default_pipeline()
    assert len(pipeline) == len(EXPECTED_ORDER)


def test_default_pipeline_order():
    pipeline = create_default_pipeline()
    assert [e.name for e in pipeline.events] == EXPECTED_ORDER


def test_production_runs_before_labor_and_calendar_last():
    names = [e.name for e in create_default_pipeline().events]
    assert names.index("update_resource_pool") < names.index("buildings_update_production")
    assert names.index("buildings_update_production") < names.index(
        "labor_reevaluate_assignments"
    )
    assert names[-1] == "advance_calendar"


def test_default_pipelines_are_independent():
    first = create_default_pipeline()
    second = create_default_pipeline()
    first.remove("advance_calendar")
    assert len(second) == len(EXPECTED_ORDER)
