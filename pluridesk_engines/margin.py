"""
Module: pluridesk_engines.margin
Responsibility:
    Profit margin of a job against its subcontracting costs.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - margin = (revenue - sum(costs)) / revenue.
    - The margin is undefined (None), not zero, when revenue is zero.
    - The margin is undefined (None) when any cost is in a different
      currency from the revenue: there is no conversion to fall back on.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from pluridesk_engines.tracer import traced_engine
from pluridesk_kernel.domain.values import Money


@dataclass(frozen=True)
class MarginResult:
    """Revenue, costs and margin of one job.

    ``cost`` and ``profit`` are None when the costs span other currencies.
    """
    revenue: Money
    cost: Money | None
    profit: Money | None
    margin: Decimal | None
    foreign_cost_currencies: tuple[str, ...] = ()

    @property
    def is_defined(self) -> bool:
        return self.margin is not None


@traced_engine("margin", "1.0")
def compute_margin(revenue: Money, costs: Sequence[Money]) -> MarginResult:
    """Compute the profit margin of ``revenue`` after ``costs``."""
    foreign = sorted({c.currency.code for c in costs if c.currency != revenue.currency})
    if foreign:
        return MarginResult(
            revenue=revenue,
            cost=None,
            profit=None,
            margin=None,
            foreign_cost_currencies=tuple(foreign),
        )

    cost = Money.zero(revenue.currency)
    for c in costs:
        cost = cost + c
    profit = revenue - cost

    margin = None if revenue.is_zero else profit.amount / revenue.amount
    return MarginResult(revenue=revenue, cost=cost, profit=profit, margin=margin)
