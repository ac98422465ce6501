"""Monthly taxation of market revenue."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from citysim.results import TaxReport

if TYPE_CHECKING:
    from citysim.roles.market import TradeMarket

log = logging.getLogger(__name__)


def process_monthly_tax(market: TradeMarket, month: int | None = None) -> TaxReport:
    """
    Collect ``floor(revenue * tax_rate)`` and reset the revenue accumulator.

    The tax is reported, not re-invested into the market.

    Parameters
    ----------
    market : TradeMarket
        Market holding the monthly revenue.
    month : int, optional
        Month index the report belongs to.

    Returns
    -------
    TaxReport
    """
    revenue = market.monthly_revenue
    tax = int(math.floor(revenue * market.tax_rate))
    market.monthly_revenue = 0.0
    report = TaxReport(tax_amount=tax, revenue=revenue, month=month)
    market.tax_history.append(report)
    log.info("Monthly tax: %d from revenue %.1f", tax, revenue)
    return report
