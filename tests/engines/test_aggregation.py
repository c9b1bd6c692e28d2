"""
Tests for per-currency aggregation.

Validates:
- Totals are never combined across currencies
- Records without amounts are skipped; amounts without currency raise
- Display order is by magnitude descending
"""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
from hypothesis import given
from hypothesis import strategies as st

from pluridesk_engines.aggregation import CurrencyAggregator, aggregate
from pluridesk_kernel.exceptions import InvalidCurrencyError, MissingCurrencyError


@dataclass(frozen=True)
class Row:
    amount: Decimal | None
    currency: str | None
    id: UUID = None


def _sum(rows):
    return aggregate(rows, amount_of=lambda r: r.amount, currency_of=lambda r: r.currency)


rows_strategy = st.lists(
    st.builds(
        Row,
        amount=st.decimals(min_value=Decimal("-10000"), max_value=Decimal("10000"), places=2),
        currency=st.sampled_from(["USD", "EUR", "GBP", "CAD", "MAD"]),
    ),
    max_size=40,
)


class TestAggregate:

    def test_three_currencies_three_totals(self):
        totals = _sum([
            Row(Decimal("100"), "USD"),
            Row(Decimal("50"), "EUR"),
            Row(Decimal("700"), "USD"),
            Row(Decimal("20"), "MAD"),
        ])
        assert totals == {"USD": Decimal("800"), "EUR": Decimal("50"), "MAD": Decimal("20")}

    def test_display_order_by_magnitude(self):
        totals = _sum([Row(Decimal("5"), "EUR"), Row(Decimal("-90"), "GBP"), Row(Decimal("40"), "USD")])
        assert list(totals) == ["GBP", "USD", "EUR"]

    def test_codes_are_normalized(self):
        assert _sum([Row(Decimal("1"), "usd"), Row(Decimal("2"), " USD ")]) == {"USD": Decimal("3")}

    def test_none_amount_skipped(self):
        assert _sum([Row(None, None), Row(Decimal("1"), "EUR")]) == {"EUR": Decimal("1")}

    def test_missing_currency_raises(self):
        row_id = uuid4()
        with pytest.raises(MissingCurrencyError) as exc_info:
            _sum([Row(Decimal("1"), None, row_id)])
        assert exc_info.value.entity_id == str(row_id)

    def test_unknown_currency_raises(self):
        with pytest.raises(InvalidCurrencyError):
            _sum([Row(Decimal("1"), "BTC")])

    def test_empty(self):
        assert _sum([]) == {}

    @given(rows=rows_strategy)
    def test_per_currency_totals_are_independent(self, rows):
        totals = _sum(rows)
        for code, total in totals.items():
            assert total == sum((r.amount for r in rows if r.currency == code), Decimal("0"))
        assert set(totals) == {r.currency for r in rows}

    def test_as_money(self):
        money = CurrencyAggregator.as_money({"USD": Decimal("2"), "EUR": Decimal("1")})
        assert [m.currency.code for m in money] == ["USD", "EUR"]
