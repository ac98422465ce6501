"""Unit tests for market events."""

import pytest

import citysim.events  # noqa: F401 - register all events for Simulation.init()
from citysim.core import get_event
from citysim.simulation import Simulation


def _tick(sim: Simulation, delta: float) -> None:
    sim.delta = delta
    sim.now += delta
    sim.market.now = sim.now


@pytest.mark.parametrize(
    "name",
    [
        "purge_local_events",
        "trigger_random_events",
        "fluctuate_prices",
        "process_population_consumption",
    ],
)
def test_market_event_executes(name):
    """Every market event runs on a fresh city."""
    sim = Simulation.init(seed=42)
    _tick(sim, 100_000)
    get_event(name)().execute(sim)


def test_purge_reprices_after_expiry():
    sim = Simulation.init(seed=42)
    sim.market.goods["magic_ore"].volatility = 0.0
    sim.add_local_event({"magic_ore": 3.0}, duration=1000, start_time=0)
    boosted = sim.market.goods["magic_ore"].current_price

    _tick(sim, 1500)
    get_event("purge_local_events")().execute(sim)

    assert sim.market.events == []
    assert sim.market.goods["magic_ore"].current_price == pytest.approx(boosted / 3, abs=1)


def test_purge_reprices_when_scheduled_event_starts():
    sim = Simulation.init(seed=42)
    sim.market.goods["stone"].volatility = 0.0
    sim.add_local_event({"stone": 2.0}, duration=10_000, start_time=500)
    base = sim.market.goods["stone"].current_price

    _tick(sim, 600)
    get_event("purge_local_events")().execute(sim)

    assert len(sim.market.events) == 1
    assert sim.market.goods["stone"].current_price > base


def test_random_events_respect_chance():
    sim = Simulation.init(seed=42, random_event_interval=1, random_event_chance=0.0)
    _tick(sim, 10)
    get_event("trigger_random_events")().execute(sim)
    assert sim.market.events == []

    sim = Simulation.init(seed=42, random_event_interval=1, random_event_chance=1.0)
    _tick(sim, 10)
    get_event("trigger_random_events")().execute(sim)
    assert len(sim.market.events) == 1


def test_fluctuation_updates_inflation_history():
    sim = Simulation.init(seed=42, price_fluctuation_interval=1000)
    _tick(sim, 1000)
    get_event("fluctuate_prices")().execute(sim)
    assert len(sim.market.inflation.history) == 1
    assert all(g.current_price >= 1 for g in sim.market.goods.values())


def test_consumption_feeds_revenue_and_happiness():
    sim = Simulation.init(seed=42, consumption_interval=1000)
    mana = sim.pool.value("mana")
    _tick(sim, 1000)

    get_event("process_population_consumption")().execute(sim)

    assert sim.pool.value("mana") < mana
    assert sim.market.monthly_revenue > 0
    assert set(sim.last_consumption) == {"lower", "middle"}
    assert sim.market.services["transport"].market_inventory < 100
