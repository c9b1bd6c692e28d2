"""
Module: pluridesk_engines.aggregation
Responsibility:
    Fold a sequence of monetary records into per-currency totals.  Every
    dashboard figure and report in the engine goes through this fold.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Amounts in different currencies are never added together.  A set
      of records in three currencies yields three independent totals.
    - A record with an amount but no currency is a data-integrity error,
      never a silent default.
    - Output order is by absolute magnitude descending (then by code) and
      is for display only.

Failure modes:
    - MissingCurrencyError for a record whose currency is absent.
    - InvalidCurrencyError for a record in an unsupported currency.

Usage:
    from pluridesk_engines.aggregation import aggregate

    totals = aggregate(
        invoices,
        amount_of=lambda inv: inv.total,
        currency_of=lambda inv: inv.currency,
    )  # {"USD": Decimal("800"), "EUR": Decimal("120")}
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from decimal import Decimal
from typing import Any, TypeVar

from pluridesk_engines.tracer import traced_engine
from pluridesk_kernel.domain.currency import CurrencyRegistry
from pluridesk_kernel.domain.values import Money
from pluridesk_kernel.exceptions import MissingCurrencyError

T = TypeVar("T")


class CurrencyAggregator:
    """
    Stateless per-currency summation.

    Contract:
        ``aggregate`` never combines two currencies and never converts.
    Non-goals:
        - Does not filter records; callers select what to sum.
    """

    def aggregate(
        self,
        records: Iterable[T],
        amount_of: Callable[[T], Decimal | None],
        currency_of: Callable[[T], str | None],
    ) -> dict[str, Decimal]:
        """
        Sum ``amount_of(record)`` per ``currency_of(record)``.

        Records whose amount is None contribute nothing.

        Raises:
            MissingCurrencyError: If a record with an amount has no currency.
            InvalidCurrencyError: If a currency code is not supported.
        """
        totals: dict[str, Decimal] = {}
        for record in records:
            amount = amount_of(record)
            if amount is None:
                continue
            currency = currency_of(record)
            if currency is None or not str(currency).strip():
                raise MissingCurrencyError(
                    type(record).__name__, _record_id(record)
                )
            code = CurrencyRegistry.validate(str(currency).strip().upper())
            totals[code] = totals.get(code, Decimal("0")) + Decimal(str(amount))
        return self.sort_for_display(totals)

    @staticmethod
    def sort_for_display(totals: dict[str, Decimal]) -> dict[str, Decimal]:
        """Order totals by magnitude descending, ties broken by currency code."""
        ordered = sorted(totals.items(), key=lambda kv: (-abs(kv[1]), kv[0]))
        return dict(ordered)

    @staticmethod
    def as_money(totals: dict[str, Decimal]) -> list[Money]:
        """Totals as Money values, in the same display order."""
        return [Money.of(amount, code) for code, amount in totals.items()]


def _record_id(record: Any) -> str | None:
    record_id = getattr(record, "id", None)
    return str(record_id) if record_id is not None else None


_default_aggregator = CurrencyAggregator()


@traced_engine("aggregation", "1.0")
def aggregate(
    records: Iterable[T],
    amount_of: Callable[[T], Decimal | None],
    currency_of: Callable[[T], str | None],
) -> dict[str, Decimal]:
    """Module-level shortcut for ``CurrencyAggregator().aggregate``."""
    return _default_aggregator.aggregate(records, amount_of, currency_of)
