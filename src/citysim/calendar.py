"""Game calendar derived from accumulated simulated time."""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple

SEASONS = ("spring", "summer", "autumn", "winter")


class CalendarChange(NamedTuple):
    """Which boundaries were crossed by one :meth:`Calendar.advance` call."""

    days: int
    month_changed: bool
    year_changed: bool

    @property
    def day_changed(self) -> bool:
        return self.days > 0


@dataclass(slots=True)
class Calendar:
    """
    Day, month and year counters for the simulated clock.

    Parameters
    ----------
    day_length : float
        Simulated milliseconds per day.
    days_per_month, months_per_year : int
        Calendar geometry.
    elapsed : float
        Simulated milliseconds since the start of the game.

    Examples
    --------
    >>> cal = Calendar(day_length=5000.0, days_per_month=30)
    >>> cal.advance(5000.0 * 30).month_changed
    True
    >>> cal.month, cal.day
    (2, 1)
    """

    day_length: float = 5000.0
    days_per_month: int = 30
    months_per_year: int = 12
    elapsed: float = 0.0

    @property
    def total_days(self) -> int:
        return int(self.elapsed // self.day_length)

    @property
    def total_months(self) -> int:
        """Months completed since the start; the month-change signal."""
        return self.total_days // self.days_per_month

    @property
    def day(self) -> int:
        """Day of the month, 1-based."""
        return self.total_days % self.days_per_month + 1

    @property
    def month(self) -> int:
        """Month of the year, 1-based."""
        return self.total_months % self.months_per_year + 1

    @property
    def year(self) -> int:
        return self.total_months // self.months_per_year + 1

    @property
    def season(self) -> str:
        per_season = max(1, self.months_per_year // len(SEASONS))
        return SEASONS[min(len(SEASONS) - 1, (self.month - 1) // per_season)]

    @property
    def day_progress(self) -> float:
        """Fraction of the current day already elapsed."""
        return (self.elapsed % self.day_length) / self.day_length

    def advance(self, delta: float) -> CalendarChange:
        """Add *delta* ms and report the boundaries crossed."""
        if delta <= 0:
            return CalendarChange(0, False, False)
        days, months, years = self.total_days, self.total_months, self.year
        self.elapsed += delta
        return CalendarChange(
            days=self.total_days - days,
            month_changed=self.total_months != months,
            year_changed=self.year != years,
        )

    def as_dict(self) -> dict[str, object]:
        return {
            "day": self.day,
            "month": self.month,
            "year": self.year,
            "season": self.season,
            "total_days": self.total_days,
        }
