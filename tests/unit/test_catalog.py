"""Tests for the static catalog."""

import pytest

from citysim.catalog import Catalog
from citysim.simulation import _package_defaults
from tests.helpers.factories import mock_catalog


@pytest.fixture(scope="module")
def default_catalog() -> Catalog:
    return Catalog.from_mapping(_package_defaults()["catalog"])


def test_empty_catalog():
    catalog = Catalog.from_mapping(None)
    assert len(catalog.resources) == 0
    assert catalog.class_order() == []


def test_bare_catalog_defaults():
    """A catalog built without arguments gets its own empty mappings."""
    a, b = Catalog(), Catalog()
    assert dict(a.resources) == {} and dict(a.services) == {}
    assert a.resources is not b.resources
    assert a.building_type("anything") is None


def test_default_catalog_content(default_catalog):
    assert default_catalog.resources["magic_ore"].initial == 50
    assert default_catalog.resources["arcane_essence"].tier == 2
    assert default_catalog.professions["peasant"].count == 10
    assert default_catalog.goods["mana"].base_price == 5


def test_class_order_by_rank(default_catalog):
    assert default_catalog.class_order() == ["lower", "middle", "upper"]
    assert default_catalog.professions_in("lower") == ["peasant"]


def test_building_type_recipe(default_catalog):
    forge = default_catalog.building_type("magic_forge")
    assert forge is not None
    assert forge.input == {"magic_ore": 2.0}
    assert forge.output == {"arcane_essence": 1.0}
    assert forge.interval == 3000
    assert forge.workers == {"craftsman": 1, "peasant": 1}
    assert forge.is_producer


def test_housing_is_not_producer(default_catalog):
    cottage = default_catalog.building_type("cottage")
    assert cottage is not None
    assert not cottage.is_producer
    assert cottage.housing_capacity == 5


def test_unknown_building_type(default_catalog):
    assert default_catalog.building_type("castle") is None


def test_production_variants_parsed(default_catalog):
    refinery = default_catalog.building_type("crystal_refinery")
    assert [m.id for m in refinery.production_methods] == ["basic", "advanced"]
    assert refinery.production_methods[1].input_modifiers == {"arcane_crystal": 1.0, "mana": 2.0}
    assert [w.id for w in refinery.work_modes] == ["standard", "overtime"]
    assert refinery.work_modes[1].worker_modifier == 1.5


def test_method_worker_override():
    catalog = mock_catalog()
    enchanter = catalog.building_type("wood_enchanter")
    tools = enchanter.production_methods[1]
    assert tools.workers == {"woodcutter": 1}
    assert enchanter.production_methods[0].workers is None


def test_promotion_paths(default_catalog):
    first = default_catalog.promotion_paths[0]
    assert (first.source, first.target) == ("peasant", "miner")
    assert first.resources == {"magic_ore": 10.0, "enchanted_wood": 5.0}


def test_demands_and_services(default_catalog):
    lower = {d.id: d for d in default_catalog.demands["lower"]}
    assert lower["basic_food"].resources == ("mana",)
    assert default_catalog.services["transport"].daily_recovery == 8


def test_catalog_is_read_only(default_catalog):
    with pytest.raises(TypeError):
        default_catalog.goods["gold"] = None  # type: ignore[index]


def test_default_technologies(default_catalog):
    techs = default_catalog.technologies
    assert len(techs) == 13
    metallurgy = techs["arcane_metallurgy"]
    assert metallurgy.prerequisites == ("improved_mining",)
    assert metallurgy.cost == {"research_point": 20}
    effect = metallurgy.effects[0]
    assert (effect.kind, effect.target) == ("building_efficiency", "magic_forge")
    assert effect.value == 1.25
    assert techs["arcane_mastery"].success_rate == 0.6
