"""
Structured outcomes of domain operations.

Operations that can fail for an expected reason (not enough resources,
labor, market stock or gold) return one of these objects instead of
raising. Callers branch on ``success``.

Examples
--------
>>> result = sim.market.player_buy_resource("magic_ore", 100, sim.pool, gold=500)
>>> if not result.success:
...     print(result.message, result.available_amount)

The ``*_frame`` helpers export histories to pandas DataFrames. pandas is
an optional dependency, only needed for those helpers
(``pip install citysim[pandas]``).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover
    from pandas import DataFrame

    from citysim.roles.market import TradeMarket
    from citysim.roles.resource_pool import ResourcePool


@dataclass(slots=True)
class ActionResult:
    """
    Outcome of a construction, upgrade, assignment, training or promotion.

    Attributes
    ----------
    success : bool
    message : str
    details : dict
        Operation specific context (cost paid, missing resources,
        shortfall per class, the created building, ...).
    """

    success: bool
    message: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, message: str = "", **details: Any) -> ActionResult:
        return cls(True, message, details)

    @classmethod
    def fail(cls, message: str, **details: Any) -> ActionResult:
        return cls(False, message, details)


@dataclass(slots=True)
class TradeResult:
    """
    Outcome of a player trade with the market.

    Only the context fields relevant to the failure (or success) are set.
    """

    success: bool
    message: str = ""
    amount: float = 0.0
    unit_price: float = 0.0
    cost: float = 0.0
    profit: float = 0.0
    remaining_gold: float | None = None
    available_amount: float | None = None
    max_amount: float | None = None
    max_affordable_amount: float | None = None

    def __bool__(self) -> bool:
        return self.success

    def to_dict(self) -> dict[str, Any]:
        """Plain dict without unset context fields."""
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(slots=True, frozen=True)
class TaxReport:
    """Monthly tax emitted to whoever owns the player's balance."""

    tax_amount: int
    revenue: float
    month: int | None = None


# ── DataFrame export ─────────────────────────────────────────────────────
def _import_pandas() -> Any:
    """
    Lazily import pandas with helpful error message if not installed.

    Raises
    ------
    ImportError
        If pandas is not installed.
    """
    try:
        import pandas as pd

        return pd
    except ImportError:  # pragma: no cover
        raise ImportError(
            "pandas is required for DataFrame export. Install it with: pip install pandas"
        ) from None


def resource_history_frame(pool: ResourcePool) -> DataFrame:
    """
    Daily resource samples, one column per resource.

    Rows are ordered oldest first; the last row is the latest sample.
    """
    pd = _import_pandas()
    frame = pd.DataFrame(
        {rid: pd.Series(list(res.history), dtype=float) for rid, res in pool.resources.items()}
    )
    frame.index.name = "sample"
    return frame


def transactions_frame(market: TradeMarket) -> DataFrame:
    """Recent market transactions with ``time``, ``resource``, ``amount``, ``price``, ``kind``."""
    pd = _import_pandas()
    columns = ["time", "resource", "amount", "price", "kind"]
    return pd.DataFrame([asdict(t) for t in market.transactions], columns=columns)


def tax_frame(market: TradeMarket) -> DataFrame:
    """Monthly tax reports indexed by month."""
    pd = _import_pandas()
    frame = pd.DataFrame(
        [asdict(r) for r in market.tax_history], columns=["month", "tax_amount", "revenue"]
    )
    return frame.set_index("month")
