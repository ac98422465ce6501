"""
Clock event: day and month boundaries.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from citysim.core.decorators import event

if TYPE_CHECKING:
    from citysim.simulation import Simulation


@event
class AdvanceCalendar:
    """
    Advance the calendar; services recover once per new day, and the month
    signal (from the injected provider when there is one) drives taxation.
    """

    def execute(self, sim: Simulation) -> None:
        from citysim.systems.consumption import recover_services

        change = sim.calendar.advance(sim.delta)
        for _ in range(change.days):
            recover_services(sim.market)

        if sim.month_provider is not None:
            sim.notify_month(sim.month_provider())
        elif change.month_changed:
            sim.notify_month(sim.calendar.total_months)
