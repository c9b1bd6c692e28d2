"""
Module: pluridesk_engines.pricing
Responsibility:
    Derive a job's billable total from its pricing parameters.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import pluridesk_kernel domain values and exceptions.

Invariants enforced:
    - Unit-priced totals (per_word, per_hour) are exactly quantity * rate.
      No rounding is applied; the stored Numeric(38, 9) column holds the
      exact product.
    - A flat fee is taken as supplied; quantity and rate are informational.
    - Decimal-only arithmetic.

Failure modes:
    - InvalidPricingInputError when a unit-priced job lacks a positive
      quantity or rate, or a flat fee is missing or negative.
    - MissingCurrencyError / InvalidCurrencyError from Money construction.

Usage:
    from pluridesk_engines.pricing import PricingType, compute_total

    total = compute_total(
        pricing_type=PricingType.PER_WORD,
        quantity=Decimal("2000"),
        rate=Decimal("0.08"),
        flat_amount=None,
        currency="EUR",
    )  # Money(Decimal("160.00"), Currency("EUR"))
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from enum import Enum

from pluridesk_engines.tracer import traced_engine
from pluridesk_kernel.domain.values import Currency, Money
from pluridesk_kernel.exceptions import InvalidPricingInputError


class PricingType(Enum):
    """How a job's total is derived."""
    PER_WORD = "per_word"
    PER_HOUR = "per_hour"
    FLAT_FEE = "flat_fee"

    @property
    def is_unit_priced(self) -> bool:
        return self is not PricingType.FLAT_FEE


# Billing unit implied by each pricing type
PRICING_UNITS: dict[PricingType, str] = {
    PricingType.PER_WORD: "word",
    PricingType.PER_HOUR: "hour",
    PricingType.FLAT_FEE: "project",
}


def unit_for(pricing_type: PricingType | str) -> str:
    """Billing unit for a pricing type (``word``, ``hour`` or ``project``)."""
    return PRICING_UNITS[PricingType(pricing_type)]


def _as_decimal(
    value: Decimal | int | str | None,
    pricing_type: PricingType,
    field: str,
) -> Decimal | None:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        raise InvalidPricingInputError(pricing_type.value, field, "float amounts are not accepted")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise InvalidPricingInputError(
            pricing_type.value, field, f"not a number: {value!r}"
        ) from exc


@traced_engine("pricing", "1.0", fingerprint_fields=("pricing_type", "quantity", "rate", "flat_amount", "currency"))
def compute_total(
    pricing_type: PricingType | str,
    quantity: Decimal | int | str | None,
    rate: Decimal | int | str | None,
    flat_amount: Decimal | int | str | None,
    currency: Currency | str | None,
) -> Money:
    """
    Compute the billable total of a job.

    Preconditions:
        - For PER_WORD / PER_HOUR: quantity > 0 and rate > 0.
        - For FLAT_FEE: flat_amount >= 0.

    Postconditions:
        - Unit pricing returns Money(quantity * rate, currency) exactly.
        - Flat fee returns Money(flat_amount, currency).

    Raises:
        InvalidPricingInputError: On a missing or out-of-range input.
        ValueError: If ``pricing_type`` is not a known pricing type.
    """
    ptype = PricingType(pricing_type)

    if ptype.is_unit_priced:
        qty = _as_decimal(quantity, ptype, "quantity")
        unit_rate = _as_decimal(rate, ptype, "rate")
        if qty is None:
            raise InvalidPricingInputError(ptype.value, "quantity", "required for unit pricing")
        if unit_rate is None:
            raise InvalidPricingInputError(ptype.value, "rate", "required for unit pricing")
        if qty <= 0:
            raise InvalidPricingInputError(ptype.value, "quantity", "must be positive")
        if unit_rate <= 0:
            raise InvalidPricingInputError(ptype.value, "rate", "must be positive")
        return Money.of(qty * unit_rate, currency)

    amount = _as_decimal(flat_amount, ptype, "total_amount")
    if amount is None:
        raise InvalidPricingInputError(ptype.value, "total_amount", "required for a flat fee")
    if amount < 0:
        raise InvalidPricingInputError(ptype.value, "total_amount", "cannot be negative")
    return Money.of(amount, currency)
