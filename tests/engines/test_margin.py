"""
Tests for job margin.

Validates:
- margin = (revenue - costs) / revenue
- Undefined, not zero, for zero revenue or foreign-currency costs
"""

from decimal import Decimal

from pluridesk_engines.margin import compute_margin
from pluridesk_kernel.domain.values import Money


class TestComputeMargin:

    def test_margin(self):
        result = compute_margin(
            Money.of("1000", "USD"), [Money.of("300", "USD"), Money.of("100", "USD")]
        )
        assert result.cost == Money.of("400", "USD")
        assert result.profit == Money.of("600", "USD")
        assert result.margin == Decimal("0.6")
        assert result.is_defined

    def test_no_costs(self):
        assert compute_margin(Money.of("500", "EUR"), []).margin == Decimal("1")

    def test_zero_revenue_is_undefined(self):
        result = compute_margin(Money.zero("USD"), [Money.of("10", "USD")])
        assert result.margin is None
        assert result.profit == Money.of("-10", "USD")

    def test_foreign_costs_are_undefined(self):
        result = compute_margin(
            Money.of("1000", "USD"), [Money.of("100", "EUR"), Money.of("50", "USD")]
        )
        assert result.margin is None
        assert result.cost is None
        assert result.foreign_cost_currencies == ("EUR",)

    def test_negative_margin(self):
        result = compute_margin(Money.of("100", "GBP"), [Money.of("150", "GBP")])
        assert result.margin == Decimal("-0.5")
