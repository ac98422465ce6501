"""Interval gating shared by the periodic events."""

from __future__ import annotations

from typing import Any


def interval_elapsed(state: Any, timer: str, delta: float, interval: float) -> bool:
    """
    Add *delta* to ``state.<timer>`` and report whether *interval* was reached.

    On firing the interval is subtracted, so leftover time carries over; a
    single call fires at most once.
    """
    value = getattr(state, timer) + delta
    if value < interval:
        setattr(state, timer, value)
        return False
    setattr(state, timer, value - interval)
    return True
