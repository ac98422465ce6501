"""
Labor allocation: assigning, releasing and re-balancing workers.

Professions inside one social class are substitutable. A building's
request is first served from the requested professions, then backfilled
from the same-class profession with the most idle workers. Allocation is
all-or-nothing; when a full re-pass cannot staff every building, a
proportional fallback spreads the remaining workers per priority tier.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from citysim.results import ActionResult
from citysim.roles.labor import Assignment
from citysim.typing import PRIORITIES, WorkerMap

if TYPE_CHECKING:
    from citysim.roles.building import Building
    from citysim.roles.labor import LaborMarket

log = logging.getLogger(__name__)

PRIORITY_RANK = {p: i for i, p in enumerate(PRIORITIES)}


def _clean_requirement(labor: LaborMarket, requirement: WorkerMap) -> dict[str, int]:
    clean = {}
    for pid, n in requirement.items():
        if pid not in labor.professions:
            log.warning("Unknown profession '%s' in worker requirement", pid)
            continue
        if n > 0:
            clean[pid] = int(n)
    return clean


def _class_needs(labor: LaborMarket, requirement: WorkerMap) -> dict[str, int]:
    needs: dict[str, int] = {}
    for pid, n in requirement.items():
        cid = labor.professions[pid].social_class
        needs[cid] = needs.get(cid, 0) + n
    return needs


def _rollback(labor: LaborMarket, committed: dict[str, int]) -> None:
    for pid, n in committed.items():
        labor.professions[pid].assigned -= n


def allocate(
    labor: LaborMarket, requirement: WorkerMap
) -> tuple[dict[str, int] | None, dict[str, int]]:
    """
    Reserve workers for *requirement*.

    Parameters
    ----------
    labor : LaborMarket
        Labor state; ``assigned`` counters are updated on success.
    requirement : WorkerMap
        Head count per profession (already cleaned of unknown ids).

    Returns
    -------
    tuple
        ``(committed, shortfall)``. *committed* maps profession to head
        count, or is None when the request cannot be served in full; in
        that case nothing was reserved and *shortfall* gives the missing
        head count per social class.
    """
    needs = _class_needs(labor, requirement)

    # class-level availability decides, not profession-level
    shortfall = {
        cid: need - labor.class_available(cid)
        for cid, need in needs.items()
        if need > labor.class_available(cid)
    }
    if shortfall:
        return None, shortfall

    committed: dict[str, int] = {}
    remainder: dict[str, int] = {}

    # 1. requested professions from their own pool
    for pid, n in requirement.items():
        prof = labor.professions[pid]
        take = min(n, prof.available)
        if take > 0:
            prof.assigned += take
            committed[pid] = committed.get(pid, 0) + take
        if n > take:
            remainder[prof.social_class] = remainder.get(prof.social_class, 0) + n - take

    # 2. backfill from the same class, most surplus first
    for cid, rem in remainder.items():
        donors = sorted(labor.professions_in(cid), key=lambda p: p.available, reverse=True)
        for donor in donors:
            if rem <= 0:
                break
            take = min(rem, donor.available)
            if take <= 0:
                continue
            donor.assigned += take
            committed[donor.id] = committed.get(donor.id, 0) + take
            rem -= take
        if rem > 0:
            _rollback(labor, committed)
            return None, {cid: rem}

    return committed, {}


def assign_workers(
    labor: LaborMarket,
    building_id: str,
    building_type: str,
    requirement: WorkerMap | None = None,
    priority: str = "medium",
) -> ActionResult:
    """
    Staff a building in full or not at all.

    The building is registered even when staffing fails, so that the next
    re-evaluation can give it a proportional share.

    Returns
    -------
    ActionResult
        ``details["workers"]`` holds the committed mapping on success,
        ``details["shortfall"]`` the missing head count per class on
        failure.
    """
    if requirement is None:
        requirement = labor.building_requirements.get(building_type, {})
    requirement = _clean_requirement(labor, requirement)
    if priority not in PRIORITY_RANK:
        log.warning("Invalid priority '%s' for %s, using medium", priority, building_id)
        priority = "medium"

    previous = labor.assignments.get(building_id)
    order = previous.order if previous is not None else labor.next_order()
    if previous is not None:
        release_workers(labor, building_id)

    entry = Assignment(
        building_id=building_id,
        building_type=building_type,
        requirement=requirement,
        priority=priority,
        order=order,
    )
    labor.assignments[building_id] = entry

    if not requirement:
        return ActionResult.ok("No workers required", workers={})

    committed, shortfall = allocate(labor, requirement)
    if committed is None:
        labor.needs_reevaluation = True
        log.info("Not enough workers for %s (%s): short %s", building_id, building_type, shortfall)
        return ActionResult.fail(
            f"Not enough workers for {building_type}",
            shortfall=shortfall,
            requirement=dict(requirement),
        )

    entry.workers = committed
    log.debug("Assigned %s to %s", committed, building_id)
    return ActionResult.ok(f"Workers assigned to {building_type}", workers=dict(committed))


def _unstaff(labor: LaborMarket, entry: Assignment) -> dict[str, int]:
    released = entry.workers
    for pid, n in released.items():
        prof = labor.professions.get(pid)
        if prof is None:
            continue
        prof.assigned = max(0, prof.assigned - n)
    entry.workers = {}
    return released


def release_workers(labor: LaborMarket, building_id: str) -> dict[str, int]:
    """
    Release a building's labor and forget its registration.

    Returns
    -------
    dict[str, int]
        The head count returned per profession.
    """
    entry = labor.assignments.pop(building_id, None)
    if entry is None:
        log.debug("No labor recorded for %s", building_id)
        return {}
    released = _unstaff(labor, entry)
    log.debug("Released %s from %s", released, building_id)
    return released


def shrink_assignments(labor: LaborMarket, profession_id: str, excess: int) -> int:
    """
    Withdraw *excess* assigned workers of one profession from buildings.

    Lowest-priority, most recently registered buildings lose workers first.
    Used when population loss would otherwise leave ``assigned > count``.

    Returns
    -------
    int
        Number of workers withdrawn.
    """
    withdrawn = 0
    entries = sorted(
        labor.assignments.values(),
        key=lambda e: (PRIORITY_RANK.get(e.priority, 1), e.order),
        reverse=True,
    )
    prof = labor.professions[profession_id]
    for entry in entries:
        if withdrawn >= excess:
            break
        have = entry.workers.get(profession_id, 0)
        if have <= 0:
            continue
        take = min(have, excess - withdrawn)
        if take == have:
            del entry.workers[profession_id]
        else:
            entry.workers[profession_id] = have - take
        prof.assigned -= take
        withdrawn += take
    if withdrawn:
        labor.needs_reevaluation = True
    return withdrawn


def reevaluate_assignments(labor: LaborMarket) -> dict[str, float]:
    """
    Re-staff every registered building from scratch.

    Buildings are served in priority order (high, medium, low; then by
    registration order). Buildings that cannot be fully staffed get a
    proportional share per priority tier: for each class,
    ``ratio = min(1, available / required)`` and each profession need is
    scaled by the ratio and floored.

    Returns
    -------
    dict[str, float]
        Staffing share per building id.
    """
    entries = sorted(
        labor.assignments.values(),
        key=lambda e: (PRIORITY_RANK.get(e.priority, 1), e.order),
    )
    for entry in entries:
        _unstaff(labor, entry)

    for prof in labor.professions.values():
        if prof.assigned != 0:
            log.error(
                "Profession %s kept %d assigned workers after release; resetting",
                prof.id,
                prof.assigned,
            )
            prof.assigned = 0

    unfulfilled: list[Assignment] = []
    for entry in entries:
        if not entry.requirement:
            continue
        committed, _ = allocate(labor, entry.requirement)
        if committed is None:
            unfulfilled.append(entry)
        else:
            entry.workers = committed

    if unfulfilled:
        _proportional_fallback(labor, unfulfilled)

    labor.needs_reevaluation = False
    staffing = {e.building_id: e.staffing for e in entries}
    if log.isEnabledFor(logging.DEBUG):
        partial = {bid: round(s, 2) for bid, s in staffing.items() if s < 1.0}
        log.debug(
            "Re-evaluated %d buildings, %d partially staffed: %s",
            len(entries),
            len(partial),
            partial,
        )
    return staffing


def _proportional_fallback(labor: LaborMarket, unfulfilled: Iterable[Assignment]) -> None:
    pending = list(unfulfilled)
    for tier in PRIORITIES:
        group = [e for e in pending if e.priority == tier]
        if not group:
            continue

        required: dict[str, int] = {}
        for entry in group:
            for cid, n in _class_needs(labor, entry.requirement).items():
                required[cid] = required.get(cid, 0) + n

        available = {
            cid: min(labor.class_available(cid), need) for cid, need in required.items()
        }

        # integer floor shares, then leftovers in registration order
        shares: list[dict[str, int]] = []
        leftover = dict(available)
        for entry in group:
            share = {}
            for pid, n in entry.requirement.items():
                cid = labor.professions[pid].social_class
                k = n * available[cid] // required[cid] if required[cid] > 0 else 0
                share[pid] = k
                leftover[cid] -= k
            shares.append(share)
        for entry, share in zip(group, shares):
            for pid, n in entry.requirement.items():
                cid = labor.professions[pid].social_class
                extra = min(n - share[pid], leftover[cid])
                if extra > 0:
                    share[pid] += extra
                    leftover[cid] -= extra

        for entry, share in zip(group, shares):
            scaled = {pid: k for pid, k in share.items() if k > 0}
            if not scaled:
                continue
            committed, _ = allocate(labor, scaled)
            if committed is not None:
                entry.workers = committed


def needs_reevaluation(labor: LaborMarket) -> bool:
    """True when allocations are stale or could improve with idle workers."""
    if labor.needs_reevaluation:
        return True
    for prof in labor.professions.values():
        if prof.assigned > prof.count:
            return True
    for entry in labor.assignments.values():
        if entry.staffing >= 1.0:
            continue
        for cid in _class_needs(labor, entry.requirement):
            if labor.class_available(cid) > 0:
                return True
    return False


def accumulate_experience(labor: LaborMarket, rate: float) -> None:
    """Every assigned worker gains *rate* experience for its profession."""
    for prof in labor.professions.values():
        if prof.assigned > 0:
            prof.experience += prof.assigned * rate


def apply_staffing(labor: LaborMarket, buildings: Iterable[Building]) -> None:
    """Push labor sufficiency and efficiency into each building."""
    for building in buildings:
        if not building.is_producer:
            continue
        active = labor.has_sufficient_workers(building.id)
        building.set_active(active, labor.get_efficiency_multiplier(building.id))
