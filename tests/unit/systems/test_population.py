# tests/unit/systems/test_population.py
from __future__ import annotations

import pytest

from citysim.config import Config
from citysim.roles.market import ClassConsumption
from citysim.systems.labor import assign_workers
from citysim.systems.population import (
    add_population_to_class,
    apply_immigration,
    apply_market_results,
    apply_unhappy_effects,
    apply_upward_mobility,
    check_demotions,
    check_promotions,
    grow_population,
    promote_worker,
    remove_population_from_class,
    train_workers,
    update_happiness,
)
from tests.helpers.factories import mock_labor, mock_pool
from tests.helpers.fixed_rng import FixedRNG


# ── happiness ────────────────────────────────────────────────────────────
def test_update_happiness_weighted_factors() -> None:
    labor = mock_labor(housing_capacity=20, peasant=10)

    overall = update_happiness(labor, overall_blend=0.1)

    lower = labor.classes["lower"]
    assert lower.housing == pytest.approx(75.0)
    assert lower.happiness == pytest.approx(57.5)
    assert overall == pytest.approx(50.75)


def test_crowding_penalty_applies_under_cutoff() -> None:
    labor = mock_labor(housing_capacity=10, peasant=9)
    update_happiness(labor, overall_blend=0.1)
    assert labor.classes["upper"].housing == pytest.approx((50 + 0.1 * 70) * 0.7)
    assert labor.classes["middle"].housing == pytest.approx(50 + 0.1 * 50)


def test_overcrowding_clamps_housing_factor() -> None:
    labor = mock_labor(housing_capacity=1, peasant=10)
    update_happiness(labor, overall_blend=1.0)
    assert labor.classes["lower"].housing == 0.0
    assert 0.0 <= labor.overall_happiness <= 100.0


def test_apply_market_results_blends_toward_target() -> None:
    labor = mock_labor(peasant=10)
    outcome = ClassConsumption(class_id="lower", total_impact=4.0)

    apply_market_results(labor, {"lower": outcome, "serfs": outcome}, blend=0.3, scale=2.5)

    assert labor.classes["lower"].market == pytest.approx(53.0)


# ── moving people ────────────────────────────────────────────────────────
def test_add_population_blends_happiness() -> None:
    labor = mock_labor(peasant=10)
    labor.classes["lower"].happiness = 50.0
    add_population_to_class(labor, "lower", 10, incoming_happiness=80.0)
    assert labor.professions["peasant"].count == 20
    assert labor.classes["lower"].happiness == pytest.approx(65.0)
    assert labor.classes["lower"].market == pytest.approx(65.0)


def test_incoming_happiness_survives_recompute() -> None:
    blended = mock_labor(peasant=10)
    add_population_to_class(blended, "lower", 10, incoming_happiness=80.0)
    plain = mock_labor(peasant=20)

    update_happiness(blended, overall_blend=0.1)
    update_happiness(plain, overall_blend=0.1)

    assert blended.classes["lower"].market == pytest.approx(65.0)
    gap = blended.classes["lower"].happiness - plain.classes["lower"].happiness
    assert gap == pytest.approx(0.5 * 15.0)


def test_add_population_spreads_over_professions() -> None:
    labor = mock_labor()
    assert add_population_to_class(labor, "middle", 5) == 5
    counts = [labor.professions[p].count for p in ("miner", "woodcutter", "craftsman")]
    assert counts == [3, 1, 1]


def test_remove_population_prefers_idle() -> None:
    labor = mock_labor(peasant=3)
    assign_workers(labor, "a", "t", {"peasant": 2})

    assert remove_population_from_class(labor, "lower", 1) == 1
    assert labor.professions["peasant"].count == 2
    assert labor.assignments["a"].workers == {"peasant": 2}


def test_remove_population_shrinks_assignments() -> None:
    labor = mock_labor(peasant=3)
    assign_workers(labor, "a", "t", {"peasant": 1}, priority="high")
    assign_workers(labor, "b", "t", {"peasant": 2}, priority="low")

    assert remove_population_from_class(labor, "lower", 2) == 2

    prof = labor.professions["peasant"]
    assert prof.count == 1
    assert prof.assigned == 1
    assert labor.assignments["b"].workers == {}


def test_remove_population_never_below_zero() -> None:
    labor = mock_labor(peasant=2)
    assert remove_population_from_class(labor, "lower", 5) == 2
    assert labor.professions["peasant"].count == 0


# ── unhappiness, mobility, immigration ───────────────────────────────────
def test_population_loss_when_very_unhappy() -> None:
    labor = mock_labor(peasant=10)
    labor.classes["lower"].happiness = 10.0
    rng = FixedRNG([0.1])

    result = apply_unhappy_effects(labor, rng, Config())

    assert result == {"lost": {"lower": 1}, "demoted": {}}
    assert labor.professions["peasant"].count == 9


def test_no_loss_when_roll_fails() -> None:
    labor = mock_labor(peasant=10)
    labor.classes["lower"].happiness = 10.0
    result = apply_unhappy_effects(labor, FixedRNG([0.9]), Config())
    assert result == {"lost": {}, "demoted": {}}
    assert labor.professions["peasant"].count == 10


def test_class_demotion_when_unhappy() -> None:
    labor = mock_labor(miner=10)
    labor.classes["middle"].happiness = 30.0

    result = apply_unhappy_effects(labor, FixedRNG([0.01]), Config())

    assert result["demoted"] == {"middle": 1}
    assert labor.professions["miner"].count == 9
    assert labor.professions["peasant"].count == 1
    assert labor.classes["lower"].happiness == pytest.approx(30.0)


def test_upward_mobility_when_happy() -> None:
    labor = mock_labor(peasant=10)
    labor.classes["lower"].happiness = 90.0

    moved = apply_upward_mobility(labor, FixedRNG([0.1]), Config())

    assert moved == {"lower": 1}
    assert labor.professions["peasant"].count == 9
    assert labor.professions["miner"].count == 1


def test_no_mobility_below_threshold() -> None:
    labor = mock_labor(peasant=10, miner=5)
    labor.classes["lower"].happiness = 70.0
    labor.classes["middle"].happiness = 80.0
    assert apply_upward_mobility(labor, FixedRNG([]), Config()) == {}


def test_immigration() -> None:
    labor = mock_labor(housing_capacity=20, peasant=10)
    labor.overall_happiness = 90.0

    added = apply_immigration(labor, FixedRNG([0.1]), Config())

    assert added == 1
    assert labor.professions["peasant"].count == 11


def test_no_immigration_when_housing_is_nearly_full() -> None:
    labor = mock_labor(housing_capacity=10, peasant=9)
    labor.overall_happiness = 95.0
    assert apply_immigration(labor, FixedRNG([]), Config()) == 0


# ── professions ──────────────────────────────────────────────────────────
def test_check_promotions() -> None:
    labor = mock_labor(peasant=2)
    labor.professions["peasant"].experience = 10
    labor.overall_happiness = 60
    pool = mock_pool(magic_ore=10)

    promoted = check_promotions(labor, pool, FixedRNG([0.0]))

    assert promoted == [("peasant", "miner")]
    assert labor.professions["miner"].count == 1
    assert labor.professions["peasant"].count == 1
    assert labor.professions["peasant"].experience == 0
    assert pool.value("magic_ore") == 0


@pytest.mark.parametrize(
    "experience, happiness, ore",
    [(9, 60, 10), (10, 59, 10), (10, 60, 9)],
)
def test_check_promotions_requirements(experience, happiness, ore) -> None:
    labor = mock_labor(peasant=2)
    labor.professions["peasant"].experience = experience
    labor.overall_happiness = happiness
    rng = FixedRNG([])

    assert check_promotions(labor, mock_pool(magic_ore=ore), rng) == []
    assert rng.used == 0


def test_check_demotions_when_unhappy() -> None:
    labor = mock_labor(miner=1)
    labor.overall_happiness = 20.0

    demoted = check_demotions(labor, FixedRNG([0.1, 0]), Config())

    assert demoted == [("miner", "peasant")]
    assert labor.professions["peasant"].count == 1


def test_no_demotions_when_content() -> None:
    labor = mock_labor(miner=1)
    labor.overall_happiness = 60.0
    assert check_demotions(labor, FixedRNG([]), Config()) == []


def test_grow_population() -> None:
    labor = mock_labor(peasant=10)
    born = grow_population(labor, delta=1000, growth_rate=0.1)
    assert born == 1
    assert labor.professions["peasant"].count == 11


def test_growth_accumulates_fractions() -> None:
    labor = mock_labor(peasant=10)
    for _ in range(9):
        assert grow_population(labor, delta=100, growth_rate=0.1) == 0
    assert grow_population(labor, delta=150, growth_rate=0.1) == 1


def test_growth_bounded_by_housing() -> None:
    labor = mock_labor(housing_capacity=10, peasant=10)
    assert grow_population(labor, delta=10_000, growth_rate=0.1) == 0
    assert labor.professions["peasant"].count == 10


# ── player commands ──────────────────────────────────────────────────────
def test_train_workers() -> None:
    labor = mock_labor(peasant=3)
    pool = mock_pool(magic_ore=10)

    result = train_workers(labor, "miner", 2, pool)

    assert result.success
    assert result.details["cost"] == {"magic_ore": 10}
    assert labor.professions["miner"].count == 2
    assert labor.professions["peasant"].count == 1
    assert pool.value("magic_ore") == 0
    assert labor.needs_reevaluation


@pytest.mark.parametrize(
    "profession, count, peasants, ore, message",
    [
        ("dragon_tamer", 1, 3, 10, "Unknown"),
        ("miner", 0, 3, 10, "positive"),
        ("peasant", 1, 3, 10, "no training"),
        ("miner", 4, 3, 100, "idle"),
        ("miner", 2, 3, 9, "resources"),
    ],
)
def test_train_workers_failures(profession, count, peasants, ore, message) -> None:
    labor = mock_labor(peasant=peasants)
    pool = mock_pool(magic_ore=ore)
    result = train_workers(labor, profession, count, pool)
    assert not result.success
    assert message in result.message
    assert pool.value("magic_ore") == ore


def test_promote_worker() -> None:
    labor = mock_labor(peasant=1)
    labor.professions["peasant"].experience = 12
    labor.overall_happiness = 70
    pool = mock_pool(magic_ore=15)

    result = promote_worker(labor, "peasant", "miner", pool)

    assert result.success
    assert labor.professions["miner"].count == 1
    assert pool.value("magic_ore") == 5


def test_promote_worker_failures() -> None:
    labor = mock_labor(peasant=1)
    pool = mock_pool(magic_ore=15)

    assert "No promotion path" in promote_worker(labor, "peasant", "scholar", pool).message
    result = promote_worker(labor, "peasant", "miner", pool)
    assert not result.success
    assert result.details["experience"] == 0.0

    labor.professions["peasant"].experience = 10
    result = promote_worker(labor, "peasant", "miner", pool)
    assert "Happiness" in result.message
