"""
Currency and Money value objects.

Every amount the engine computes with travels as ``Money``: a Decimal
amount bound to one of the registry's currency codes.  The two halves are
never separated inside domain logic; ORM rows store them as two columns and
rebuild a ``Money`` on the way out.

Invariants enforced:
    - Amounts are Decimal, never float.
    - A currency is always present and always one of the supported codes.
    - Money in two different currencies cannot be added, subtracted or
      compared.  The engine has no exchange rates, so this is a
      programming error and fails loudly with CurrencyMismatchError.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from pluridesk_kernel.domain.currency import CurrencyRegistry
from pluridesk_kernel.exceptions import (
    CurrencyMismatchError,
    InvalidCurrencyError,
    MissingCurrencyError,
)


@dataclass(frozen=True, slots=True)
class Currency:
    """A supported ISO 4217 code, upper-cased on construction."""

    code: str

    def __post_init__(self) -> None:
        if not isinstance(self.code, str) or not self.code.strip():
            raise MissingCurrencyError("Currency")
        normalized = self.code.strip().upper()
        if not CurrencyRegistry.is_valid(normalized):
            raise InvalidCurrencyError(self.code)
        object.__setattr__(self, "code", normalized)

    @property
    def decimal_places(self) -> int:
        return CurrencyRegistry.get_decimal_places(self.code)

    def __str__(self) -> str:
        return self.code


@dataclass(frozen=True, slots=True)
class Money:
    """
    An exact amount in one currency.

    Multiplying by a quantity or rate keeps full Decimal precision; nothing
    is rounded unless ``round()`` is called.
    """

    amount: Decimal
    currency: Currency

    def __post_init__(self) -> None:
        if self.amount is None:
            raise ValueError("Money amount is required")
        if isinstance(self.amount, float):
            raise TypeError("Money amount must be Decimal, int or str, not float")
        if not isinstance(self.amount, Decimal):
            try:
                object.__setattr__(self, "amount", Decimal(str(self.amount)))
            except InvalidOperation as exc:
                raise ValueError(f"Invalid amount: {self.amount!r}") from exc

        if self.currency is None:
            raise MissingCurrencyError("Money")
        if isinstance(self.currency, str):
            object.__setattr__(self, "currency", Currency(self.currency))
        elif not isinstance(self.currency, Currency):
            raise TypeError(f"currency must be Currency or str, got {type(self.currency).__name__}")

    @classmethod
    def of(cls, amount: Decimal | str | int, currency: str | Currency | None) -> Money:
        """
        Build Money from loose inputs.

        Raises:
            MissingCurrencyError: ``currency`` is None or blank.
            InvalidCurrencyError: ``currency`` is not supported.
        """
        return cls(amount=amount, currency=currency)

    @classmethod
    def zero(cls, currency: str | Currency) -> Money:
        return cls(amount=Decimal("0"), currency=currency)

    @property
    def is_zero(self) -> bool:
        return self.amount == 0

    def round(self, rounding: str = ROUND_HALF_UP) -> Money:
        """Round to the currency's minor unit (cents for every supported code)."""
        places = self.currency.decimal_places
        exponent = Decimal(1).scaleb(-places)
        return Money(self.amount.quantize(exponent, rounding=rounding), self.currency)

    def _same_currency(self, other: Money, operation: str) -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(self.currency.code, other.currency.code, operation)

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._same_currency(other, "add")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._same_currency(other, "subtract")
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, factor: Decimal | int) -> Money:
        if isinstance(factor, int):
            factor = Decimal(factor)
        if not isinstance(factor, Decimal):
            return NotImplemented
        return Money(self.amount * factor, self.currency)

    __rmul__ = __mul__

    def __lt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._same_currency(other, "compare")
        return self.amount < other.amount

    def __le__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._same_currency(other, "compare")
        return self.amount <= other.amount

    def __str__(self) -> str:
        return f"{self.amount} {self.currency.code}"
