"""
Population dynamics: happiness, migration, promotion and growth.

All stochastic functions draw from the injected ``numpy.random.Generator``
and return a summary of what changed so events can log it.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Mapping

from numpy.random import Generator

from citysim.results import ActionResult
from citysim.systems.labor import shrink_assignments

if TYPE_CHECKING:
    from citysim.config import Config
    from citysim.roles.labor import LaborMarket, WorkerProfession
    from citysim.roles.market import ClassConsumption
    from citysim.roles.resource_pool import ResourcePool

log = logging.getLogger(__name__)

# Share of immigrants per class rank (lowest class first)
IMMIGRANT_SHARES = (0.7, 0.25, 0.05)


def _clamp(value: float, lo: float = 0.0, hi: float = 100.0) -> float:
    return max(lo, min(hi, value))


# ── happiness ────────────────────────────────────────────────────────────
def update_happiness(labor: LaborMarket, overall_blend: float) -> float:
    """
    Recompute class happiness from its factors and smooth overall happiness.

    Housing factor: ``50 + density * slope`` with ``density = 1 - occupancy``
    (clamped to [-1, 1]); classes with a crowding cutoff are further
    penalised when density falls under it.

    Returns
    -------
    float
        The new overall happiness.
    """
    density = max(-1.0, min(1.0, 1.0 - labor.occupancy()))

    for cls in labor.classes.values():
        housing = 50.0 + density * cls.housing_slope
        if density < cls.crowding_cutoff:
            housing *= cls.crowding_penalty
        cls.housing = _clamp(housing)
        w = cls.weights
        cls.happiness = _clamp(
            w.get("housing", 0.0) * cls.housing
            + w.get("market", 0.0) * cls.market
            + w.get("base", 0.0) * cls.base
        )

    total = labor.total_population
    if total > 0:
        target = (
            sum(labor.class_population(cid) * cls.happiness for cid, cls in labor.classes.items())
            / total
        )
        labor.overall_happiness = _clamp(
            labor.overall_happiness + (target - labor.overall_happiness) * overall_blend
        )
    return labor.overall_happiness


def apply_market_results(
    labor: LaborMarket,
    results: Mapping[str, ClassConsumption],
    *,
    blend: float,
    scale: float,
) -> None:
    """
    Feed consumption outcomes into each class's market factor.

    The summed impact is mapped around the neutral value 50
    (``50 + impact * scale``) and the factor moves toward it by *blend*.
    """
    for cid, outcome in results.items():
        cls = labor.classes.get(cid)
        if cls is None:
            log.warning("Consumption result for unknown class '%s'", cid)
            continue
        target = _clamp(50.0 + outcome.total_impact * scale)
        cls.market = _clamp(cls.market + (target - cls.market) * blend)
        cls.demand_satisfaction = dict(outcome.demands)


# ── moving people ────────────────────────────────────────────────────────
def add_population_to_class(
    labor: LaborMarket,
    class_id: str,
    amount: int,
    incoming_happiness: float | None = None,
) -> int:
    """
    Spread *amount* new units evenly over the professions of a class.

    The remainder goes to the first profession. When *incoming_happiness*
    is given, the class happiness and its market factor both become the
    population-weighted mean of their current value and the incoming value.
    The market factor persists across happiness updates, so newcomers keep
    shaping the class mood until consumption outcomes blend it away.

    Returns
    -------
    int
        Units added.
    """
    if amount <= 0:
        return 0
    profs = labor.professions_in(class_id)
    if not profs:
        log.warning("Class '%s' has no professions; cannot add population", class_id)
        return 0

    existing = labor.class_population(class_id)
    share, rest = divmod(amount, len(profs))
    for i, prof in enumerate(profs):
        prof.count += share + (rest if i == 0 else 0)

    if incoming_happiness is not None:
        cls = labor.classes[class_id]
        total = existing + amount
        cls.happiness = _clamp((existing * cls.happiness + amount * incoming_happiness) / total)
        cls.market = _clamp((existing * cls.market + amount * incoming_happiness) / total)
    return amount


def _remove_from_profession(labor: LaborMarket, prof: WorkerProfession, n: int) -> int:
    n = min(n, prof.count)
    if n <= 0:
        return 0
    prof.count -= n
    excess = prof.assigned - prof.count
    if excess > 0:
        shrink_assignments(labor, prof.id, excess)
    return n


def remove_population_from_class(labor: LaborMarket, class_id: str, amount: int) -> int:
    """
    Remove up to *amount* units from a class, idle workers first.

    Assigned workers are only taken when no idle ones remain; their
    buildings lose them through :func:`shrink_assignments`.

    Returns
    -------
    int
        Units removed.
    """
    removed = 0
    profs = labor.professions_in(class_id)

    for prof in sorted(profs, key=lambda p: p.available, reverse=True):
        if removed >= amount:
            break
        take = min(prof.available, amount - removed)
        removed += _remove_from_profession(labor, prof, take)

    for prof in sorted(profs, key=lambda p: p.count, reverse=True):
        if removed >= amount:
            break
        removed += _remove_from_profession(labor, prof, amount - removed)

    return removed


def move_between_classes(
    labor: LaborMarket, source: str, target: str, amount: int, happiness: float | None = None
) -> int:
    moved = remove_population_from_class(labor, source, amount)
    add_population_to_class(labor, target, moved, happiness)
    return moved


def move_units(
    labor: LaborMarket, source: WorkerProfession, target: WorkerProfession, n: int = 1
) -> int:
    moved = _remove_from_profession(labor, source, n)
    target.count += moved
    return moved


# ── low and high happiness effects ───────────────────────────────────────
def apply_unhappy_effects(
    labor: LaborMarket, rng: Generator, cfg: Config
) -> dict[str, dict[str, int]]:
    """
    Roll population loss and class demotion for unhappy classes.

    - happiness < ``loss_threshold``: chance ``(loss_threshold + 10 - h) / 100``
      to lose ``ceil(pop * min(max_loss_ratio, chance / 1.5))`` units.
    - otherwise happiness < ``demotion_threshold`` (not the lowest class):
      chance ``(demotion_threshold + 5 - h) / 200`` to move
      ``ceil(pop * min(max_demotion_ratio, chance))`` units one class down.

    Returns
    -------
    dict
        ``{"lost": {class: n}, "demoted": {class: n}}``.
    """
    lost: dict[str, int] = {}
    demoted: dict[str, int] = {}

    for cid in labor.class_order():
        pop = labor.class_population(cid)
        if pop <= 0:
            continue
        h = labor.classes[cid].happiness
        below = labor.class_below(cid)

        if h < cfg.loss_threshold:
            chance = max(0.0, (cfg.loss_threshold + 10.0 - h) / 100.0)
            if rng.random() < chance:
                n = math.ceil(pop * min(cfg.max_loss_ratio, chance / 1.5))
                lost[cid] = remove_population_from_class(labor, cid, n)
        elif h < cfg.demotion_threshold and below is not None:
            chance = max(0.0, (cfg.demotion_threshold + 5.0 - h) / 200.0)
            if rng.random() < chance:
                n = math.ceil(pop * min(cfg.max_demotion_ratio, chance))
                demoted[cid] = move_between_classes(labor, cid, below, n, h)

    if lost or demoted:
        log.info("Unhappiness: lost %s, demoted %s", lost, demoted)
    return {"lost": lost, "demoted": demoted}


def _mobility_threshold(labor: LaborMarket, class_id: str, cfg: Config) -> float:
    if labor.classes[class_id].rank == 0:
        return cfg.mobility_threshold_lower
    return cfg.mobility_threshold_middle


def apply_upward_mobility(
    labor: LaborMarket, rng: Generator, cfg: Config
) -> dict[str, int]:
    """
    Roll upward class mobility for happy classes.

    Chance ``(h - threshold + 5) / 100``; moves
    ``ceil(pop * min(max_mobility_ratio, chance / 2))`` units one class up.

    Returns
    -------
    dict[str, int]
        Units moved up per source class.
    """
    moved: dict[str, int] = {}
    # iterate top-down so a unit moves at most one class per check
    for cid in reversed(labor.class_order()):
        above = labor.class_above(cid)
        if above is None:
            continue
        pop = labor.class_population(cid)
        if pop <= 0:
            continue
        h = labor.classes[cid].happiness
        threshold = _mobility_threshold(labor, cid, cfg)
        if h < threshold:
            continue
        chance = min(1.0, (h - threshold + 5.0) / 100.0)
        if rng.random() < chance:
            n = math.ceil(pop * min(cfg.max_mobility_ratio, chance / 2))
            moved[cid] = move_between_classes(labor, cid, above, n, h)

    if moved:
        log.info("Upward mobility: %s", moved)
    return moved


def apply_immigration(labor: LaborMarket, rng: Generator, cfg: Config) -> int:
    """
    Attract immigrants while overall happiness is high and housing is free.

    Returns
    -------
    int
        Number of immigrants added.
    """
    h = labor.overall_happiness
    total = labor.total_population
    capacity = labor.housing_capacity
    if h <= cfg.immigration_threshold or total >= capacity * cfg.immigration_capacity_ratio:
        return 0

    chance = (h - cfg.immigration_threshold) / 100.0
    if rng.random() >= chance:
        return 0

    ratio = min(cfg.max_immigration_ratio, chance / 2)
    amount = min(max(1, math.ceil(total * ratio)), capacity - total)
    if amount <= 0:
        return 0

    order = labor.class_order()
    split = [math.floor(amount * share) for share in IMMIGRANT_SHARES[: len(order)]]
    split += [0] * (len(order) - len(split))
    split[0] += amount - sum(split)

    added = 0
    for cid, n in zip(order, split):
        added += add_population_to_class(labor, cid, n, cfg.immigrant_happiness)

    log.info("Immigration: %d newcomers (happiness %.1f)", added, h)
    return added


# ── professions ──────────────────────────────────────────────────────────
def check_promotions(
    labor: LaborMarket, pool: ResourcePool, rng: Generator
) -> list[tuple[str, str]]:
    """
    Roll promotions along every catalog path.

    A path fires when the source profession has at least one unit, enough
    experience, the overall happiness requirement is met, the resources are
    held, and ``rng.random() < promotion_chance``. One unit moves, the
    resources are spent and the source experience resets.

    Returns
    -------
    list[tuple[str, str]]
        ``(source, target)`` of every promotion that happened.
    """
    promoted = []
    for path in labor.promotion_paths:
        src = labor.professions.get(path.source)
        dst = labor.professions.get(path.target)
        if src is None or dst is None:
            log.warning("Promotion path %s -> %s has unknown profession", path.source, path.target)
            continue
        if src.count < 1 or src.experience < path.experience:
            continue
        if labor.overall_happiness < path.happiness:
            continue
        if not pool.has_resources(path.resources):
            continue
        if rng.random() >= src.promotion_chance:
            continue

        pool.consume_resources(path.resources)
        move_units(labor, src, dst, 1)
        src.experience = 0.0
        promoted.append((src.id, dst.id))
        log.info("Promoted one %s to %s", src.id, dst.id)
    return promoted


def check_demotions(
    labor: LaborMarket, rng: Generator, cfg: Config
) -> list[tuple[str, str]]:
    """
    Roll profession demotions under low happiness or overcrowding.

    Each non-lowest-class profession with units rolls its ``demotion_chance``
    while overall happiness is below ``demotion_happiness``; professions of
    the top class add ``overcrowding_demotion_bonus`` while occupancy exceeds
    ``overcrowding_threshold``. A demoted unit joins a random profession of
    the class below.
    """
    unhappy = labor.overall_happiness < cfg.demotion_happiness
    crowded = labor.occupancy() > cfg.overcrowding_threshold
    if not (unhappy or crowded):
        return []

    order = labor.class_order()
    top = order[-1] if order else None
    demoted = []
    for prof in list(labor.professions.values()):
        if prof.count < 1:
            continue
        below = labor.class_below(prof.social_class)
        if below is None:
            continue
        chance = prof.demotion_chance if unhappy else 0.0
        if crowded and prof.social_class == top:
            chance += cfg.overcrowding_demotion_bonus
        if chance <= 0 or rng.random() >= chance:
            continue
        candidates = labor.professions_in(below)
        if not candidates:
            continue
        target = candidates[int(rng.integers(len(candidates)))]
        move_units(labor, prof, target, 1)
        demoted.append((prof.id, target.id))
        log.info("Demoted one %s to %s", prof.id, target.id)
    return demoted


def grow_population(labor: LaborMarket, delta: float, growth_rate: float) -> int:
    """
    Natural growth into the lowest class, bounded by housing.

    ``growth = total * growth_rate * seconds * overall_happiness / 50``;
    fractional growth accumulates until a whole unit is born.
    """
    total = labor.total_population
    order = labor.class_order()
    if total <= 0 or not order or delta <= 0:
        return 0

    labor.growth_progress += (
        total * growth_rate * (delta / 1000.0) * (labor.overall_happiness / 50.0)
    )
    whole = math.floor(labor.growth_progress)
    if whole <= 0:
        return 0
    labor.growth_progress -= whole

    room = labor.housing_capacity - total
    born = min(whole, max(0, room))
    if born <= 0:
        return 0
    profs = labor.professions_in(order[0])
    if not profs:
        return 0
    profs[0].count += born
    log.debug("Population grew by %d", born)
    return born


def train_workers(
    labor: LaborMarket, profession_id: str, count: int, pool: ResourcePool
) -> ActionResult:
    """
    Convert idle lowest-class units into *profession_id* for its training cost.
    """
    prof = labor.professions.get(profession_id)
    if prof is None:
        log.warning("Unknown profession '%s'", profession_id)
        return ActionResult.fail(f"Unknown profession '{profession_id}'")
    if count <= 0:
        return ActionResult.fail("Training count must be positive")

    order = labor.class_order()
    lowest = order[0] if order else None
    if prof.social_class == lowest:
        return ActionResult.fail(f"{profession_id} needs no training")

    idle = labor.class_available(lowest) if lowest is not None else 0
    if idle < count:
        return ActionResult.fail(
            "Not enough idle workers to train", available_amount=idle
        )

    cost = {rid: amount * count for rid, amount in prof.training_cost.items()}
    if not pool.has_resources(cost):
        return ActionResult.fail(
            f"Not enough resources to train {profession_id}",
            cost=cost,
            missing=pool.missing(cost),
        )

    pool.consume_resources(cost)
    remaining = count
    for src in sorted(labor.professions_in(lowest), key=lambda p: p.available, reverse=True):
        take = min(src.available, remaining)
        src.count -= take
        remaining -= take
        if remaining == 0:
            break
    prof.count += count
    labor.needs_reevaluation = True
    log.info("Trained %d %s", count, profession_id)
    return ActionResult.ok(f"Trained {count} {profession_id}", cost=cost, count=count)


def promote_worker(
    labor: LaborMarket, source: str, target: str, pool: ResourcePool
) -> ActionResult:
    """Manually promote one unit along a catalog path, skipping the random roll."""
    path = next(
        (p for p in labor.promotion_paths if p.source == source and p.target == target),
        None,
    )
    if path is None:
        log.warning("No promotion path %s -> %s", source, target)
        return ActionResult.fail(f"No promotion path from {source} to {target}")

    src = labor.professions.get(source)
    dst = labor.professions.get(target)
    if src is None or dst is None:
        return ActionResult.fail(f"Unknown profession in path {source} -> {target}")
    if src.count < 1:
        return ActionResult.fail(f"No {source} to promote")
    if src.experience < path.experience:
        return ActionResult.fail(
            f"{source} needs {path.experience:g} experience",
            experience=src.experience,
        )
    if labor.overall_happiness < path.happiness:
        return ActionResult.fail(
            f"Happiness must be at least {path.happiness:g}",
            happiness=labor.overall_happiness,
        )
    if not pool.has_resources(path.resources):
        return ActionResult.fail(
            "Not enough resources for promotion",
            cost=dict(path.resources),
            missing=pool.missing(path.resources),
        )

    pool.consume_resources(path.resources)
    move_units(labor, src, dst, 1)
    src.experience = 0.0
    log.info("Manually promoted one %s to %s", source, target)
    return ActionResult.ok(f"Promoted one {source} to {target}", cost=dict(path.resources))
