"""Integration tests for the ``Simulation`` facade."""

import pytest

from citysim import Simulation
from citysim.roles import LaborMarket, ResourcePool, TradeMarket


class TestInit:
    def test_keyword_overrides_win(self) -> None:
        sim = Simulation.init({"tax_rate": 0.1, "time_scale": 3.0}, tax_rate=0.2)
        assert sim.config.tax_rate == 0.2
        assert sim.config.time_scale == 3.0
        assert sim.market.tax_rate == 0.2

    def test_yaml_file(self, tmp_path) -> None:
        path = tmp_path / "city.yml"
        path.write_text("tax_rate: 0.07\ninitial_housing_capacity: 40\n")
        sim = Simulation.init(path)
        assert sim.market.tax_rate == 0.07
        assert sim.labor.housing_capacity == 40

    def test_catalog_sections_merge(self) -> None:
        sim = Simulation.init(
            catalog={"goods": {"magic_ore": {"base_price": 99, "volatility": 0.0}}}
        )
        assert list(sim.market.goods) == ["magic_ore"]
        assert "wizard" in sim.labor.professions

    def test_invalid_value_rejected(self) -> None:
        with pytest.raises(ValueError):
            Simulation.init(tax_rate=-1)


class TestClock:
    def test_time_scale(self, tiny_city) -> None:
        tiny_city.set_time_scale(2.0)
        tiny_city.step(100)
        assert tiny_city.now == 200
        assert tiny_city.delta == 200

    def test_pause_resume(self, tiny_city) -> None:
        tiny_city.pause()
        tiny_city.run(5)
        assert tiny_city.now == 0
        assert tiny_city.t == 0
        tiny_city.resume()
        tiny_city.run(5)
        assert tiny_city.now == 500

    def test_absolute_now(self, tiny_city) -> None:
        tiny_city.step(100, now=12_345)
        assert tiny_city.now == 12_345

    def test_negative_values_rejected(self, tiny_city) -> None:
        with pytest.raises(ValueError):
            tiny_city.step(-1)
        with pytest.raises(ValueError):
            tiny_city.set_time_scale(-0.5)


class TestBuildings:
    def test_construct_charges_cost(self, tiny_city) -> None:
        stone = tiny_city.pool.value("stone")
        result = tiny_city.construct_building("magic_mine")
        assert result.success
        assert result.details["building_id"] == "magic_mine_1"
        assert tiny_city.pool.value("stone") == stone - 10

    def test_construct_failures(self, tiny_city) -> None:
        assert not tiny_city.construct_building("dragon_lair").success
        tiny_city.construct_building("magic_mine", "m")
        assert not tiny_city.construct_building("magic_mine", "m").success

        result = tiny_city.construct_building("construct_workshop")
        assert not result.success
        assert result.details["missing"]["enchanted_artifact"] == 5

    def test_free_construction(self, tiny_city) -> None:
        assert tiny_city.construct_building("construct_workshop", free=True).success

    def test_housing_and_storage(self, tiny_city) -> None:
        housing = tiny_city.labor.housing_capacity
        cap = tiny_city.pool.resources["magic_ore"].cap

        tiny_city.construct_building("cottage", "home")
        tiny_city.construct_building("storage_vault", "vault")
        assert tiny_city.labor.housing_capacity == housing + 5
        assert tiny_city.pool.resources["magic_ore"].cap == cap + 200

        tiny_city.remove_building("home")
        tiny_city.remove_building("vault")
        assert tiny_city.labor.housing_capacity == housing
        assert tiny_city.pool.resources["magic_ore"].cap == cap

    def test_remove_unknown(self, tiny_city) -> None:
        assert not tiny_city.remove_building("nope").success

    def test_upgrade(self, tiny_city) -> None:
        tiny_city.construct_building("magic_mine", "mine")
        stone = tiny_city.pool.value("stone")

        result = tiny_city.upgrade_building("mine")

        assert result.success
        assert result.details["level"] == 2
        assert result.details["cost"] == {"stone": 15, "enchanted_wood": 8}
        assert tiny_city.pool.value("stone") == stone - 15
        assert tiny_city.pool.chains["mine"].output == {"magic_ore": 3}

    def test_configure(self, tiny_city) -> None:
        tiny_city.construct_building("wood_enchanter", "we")

        bad = tiny_city.configure_building("we", production_method="laser")
        assert not bad.success
        assert tiny_city.buildings["we"].current_method == "manual"

        good = tiny_city.configure_building("we", production_method="tools", priority="high")
        assert good.success
        assert good.details["info"]["production_method"] == "tools"
        entry = tiny_city.labor.assignments["we"]
        assert entry.requirement == {"woodcutter": 1}
        assert entry.priority == "high"
        assert tiny_city.labor.needs_reevaluation


class TestPopulationAndMarket:
    def test_train_workers(self, tiny_city) -> None:
        labor = tiny_city.labor
        peasants, miners = labor.professions["peasant"].count, labor.professions["miner"].count

        assert tiny_city.train_workers("miner", 2).success

        assert labor.professions["peasant"].count == peasants - 2
        assert labor.professions["miner"].count == miners + 2

    def test_buy_then_sell(self, tiny_city) -> None:
        bought = tiny_city.buy_resource("stone", 10, gold=1000)
        assert bought.success
        sold = tiny_city.sell_resource("stone", 10, gold=bought.remaining_gold)
        assert sold.success
        assert sold.remaining_gold < 1000

    def test_buy_service(self, tiny_city) -> None:
        tiny_city.market.services["transport"].market_inventory = 50
        assert tiny_city.buy_service("transport", 10, gold=10_000).success

    def test_local_event_reprices_immediately(self, tiny_city) -> None:
        before = tiny_city.market.goods["magic_ore"].current_price
        tiny_city.add_local_event({"magic_ore": 3.0}, duration=1000)
        assert tiny_city.market.goods["magic_ore"].current_price > before


class TestResearch:
    def test_research_lifecycle(self, tiny_city) -> None:
        tiny_city.pool.resources["research_point"].value = 20
        assert "arcane_metallurgy" not in tiny_city.available_technologies()
        assert not tiny_city.start_research("arcane_metallurgy").success

        assert tiny_city.start_research("improved_mining").success
        assert tiny_city.research_progress()["id"] == "improved_mining"
        assert tiny_city.pool.value("research_point") == 10

        tiny_city.run(3, delta=tiny_city.config.day_length)

        assert tiny_city.research.is_completed("improved_mining")
        assert tiny_city.research_progress() == {"active": False}
        assert "arcane_metallurgy" in tiny_city.available_technologies()
        assert tiny_city.stats()["research"]["completed"] == ["improved_mining"]

    def test_new_buildings_get_completed_effects(self, tiny_city) -> None:
        tiny_city.research.completed.append("improved_mining")
        tiny_city.construct_building("magic_mine", "mine", free=True)
        assert tiny_city.buildings["mine"].research_output == {"magic_ore": pytest.approx(1.2)}

    def test_get_role(self, tiny_city) -> None:
        assert tiny_city.get_role("research") is tiny_city.research


class TestLookup:
    def test_get_role(self, tiny_city) -> None:
        assert isinstance(tiny_city.get_role("ResourcePool"), ResourcePool)
        assert isinstance(tiny_city.get_role("labor"), LaborMarket)
        assert isinstance(tiny_city.get_role("trade_market"), TradeMarket)
        with pytest.raises(ValueError, match="not found"):
            tiny_city.get_role("Bank")

    def test_get_event(self, tiny_city) -> None:
        assert tiny_city.get_event("fluctuate_prices").name == "fluctuate_prices"
        with pytest.raises(KeyError):
            tiny_city.get_event("nonexistent_event")

    def test_stats(self, tiny_city) -> None:
        tiny_city.construct_building("magic_mine", "mine")
        stats = tiny_city.stats()
        assert set(stats) >= {"time", "calendar", "resources", "population", "market"}
        assert stats["buildings"]["mine"]["type"] == "magic_mine"
