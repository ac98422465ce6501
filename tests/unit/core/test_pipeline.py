"""Unit tests for Pipeline class."""

import pytest

from citysim.core.pipeline import Pipeline
from citysim.events.market import FluctuatePrices


def test_pipeline_from_event_list_basic():
    """Pipeline can be built from event name list."""
    pipeline = Pipeline.from_event_list(
        [
            "update_resource_pool",
            "buildings_update_production",
            "labor_reevaluate_assignments",
        ]
    )

    assert len(pipeline) == 3
    assert pipeline.events[0].name == "update_resource_pool"


def test_pipeline_preserves_order():
    """Pipeline preserves the exact order of events provided."""
    pipeline = Pipeline.from_event_list(
        [
            "advance_calendar",  # Out of logical order - but preserved
            "update_resource_pool",
            "update_happiness",
        ]
    )

    assert [e.name for e in pipeline.events] == [
        "advance_calendar",
        "update_resource_pool",
        "update_happiness",
    ]


def test_pipeline_unknown_event_raises():
    with pytest.raises(KeyError):
        Pipeline.from_event_list(["no_such_event"])


def test_pipeline_rejects_duplicate_event():
    """An event listed twice would see the same elapsed time twice."""
    with pytest.raises(ValueError, match="already in the pipeline"):
        Pipeline.from_event_list(["buildings_update_production"] * 3)


def test_insert_after_rejects_event_already_present():
    pipeline = Pipeline.from_event_list(["update_resource_pool", "update_happiness"])
    with pytest.raises(ValueError, match="already in the pipeline"):
        pipeline.insert_after("update_resource_pool", "update_happiness")
    assert len(pipeline) == 2


def test_replace_with_same_name_is_allowed():
    pipeline = Pipeline.from_event_list(["update_resource_pool", "fluctuate_prices"])
    pipeline.replace("fluctuate_prices", FluctuatePrices())
    assert [e.name for e in pipeline.events] == ["update_resource_pool", "fluctuate_prices"]
    with pytest.raises(ValueError, match="already in the pipeline"):
        pipeline.replace("fluctuate_prices", "update_resource_pool")


def test_pipeline_insert_after():
    """Can insert event after specified event."""
    pipeline = Pipeline.from_event_list(["update_resource_pool", "update_happiness"])

    pipeline.insert_after("update_resource_pool", "buildings_update_production")

    assert len(pipeline) == 3
    assert pipeline.events[1].name == "buildings_update_production"


def test_pipeline_insert_after_accepts_instance():
    pipeline = Pipeline.from_event_list(["update_resource_pool"])
    pipeline.insert_after("update_resource_pool", FluctuatePrices())
    assert pipeline.events[-1].name == "fluctuate_prices"


def test_pipeline_insert_after_missing_target():
    pipeline = Pipeline.from_event_list(["update_resource_pool"])
    with pytest.raises(ValueError, match="not found"):
        pipeline.insert_after("nope", "update_happiness")


def test_pipeline_remove():
    pipeline = Pipeline.from_event_list(["update_resource_pool", "update_happiness"])

    pipeline.remove("update_happiness")

    assert len(pipeline) == 1
    with pytest.raises(ValueError):
        pipeline.remove("update_happiness")


def test_pipeline_replace():
    pipeline = Pipeline.from_event_list(["update_resource_pool", "update_happiness"])

    pipeline.replace("update_happiness", "check_migration")

    assert [e.name for e in pipeline.events] == ["update_resource_pool", "check_migration"]
    with pytest.raises(ValueError):
        pipeline.replace("update_happiness", "check_migration")


def test_pipeline_execute_runs_in_order():
    order = []

    class Step:
        def __init__(self, name):
            self.name = name

        def execute(self, sim):
            order.append(self.name)

    pipeline = Pipeline(events=[Step("a"), Step("b"), Step("c")])  # type: ignore[list-item]
    pipeline.execute(None)  # type: ignore[arg-type]

    assert order == ["a", "b", "c"]


def test_pipeline_repr():
    pipeline = Pipeline.from_event_list(["update_resource_pool"])
    assert repr(pipeline) == "Pipeline(n_events=1)"
