"""Tests for building pipelines from YAML files."""

import pytest

from citysim.core.pipeline import Pipeline


def _write(tmp_path, text):
    path = tmp_path / "pipeline.yml"
    path.write_text(text)
    return path


def test_from_yaml_simple(tmp_path):
    path = _write(
        tmp_path,
        """
events:
  - update_resource_pool
  - buildings_update_production
""",
    )
    pipeline = Pipeline.from_yaml(path)
    assert [e.name for e in pipeline.events] == [
        "update_resource_pool",
        "buildings_update_production",
    ]


def test_from_yaml_rejects_repeated_event(tmp_path):
    path = _write(
        tmp_path,
        "events:\n  - buildings_update_production\n  - buildings_update_production\n",
    )
    with pytest.raises(ValueError, match="already in the pipeline"):
        Pipeline.from_yaml(path)


def test_from_yaml_has_no_repeat_syntax(tmp_path):
    path = _write(tmp_path, "events:\n  - buildings_update_production x 3\n")
    with pytest.raises(KeyError):
        Pipeline.from_yaml(path)


def test_from_yaml_missing_events_key(tmp_path):
    path = _write(tmp_path, "steps:\n  - update_resource_pool\n")
    with pytest.raises(ValueError, match="events"):
        Pipeline.from_yaml(path)


def test_from_yaml_non_mapping_root(tmp_path):
    path = _write(tmp_path, "- update_resource_pool\n")
    with pytest.raises(ValueError):
        Pipeline.from_yaml(path)


def test_from_yaml_unknown_event(tmp_path):
    path = _write(tmp_path, "events:\n  - not_a_real_event\n")
    with pytest.raises(KeyError):
        Pipeline.from_yaml(path)

