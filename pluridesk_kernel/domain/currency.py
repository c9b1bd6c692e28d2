"""The closed set of currencies the engine accepts."""

from dataclasses import dataclass
from typing import ClassVar

from pluridesk_kernel.exceptions import InvalidCurrencyError


@dataclass(frozen=True)
class CurrencyInfo:
    code: str
    decimal_places: int
    name: str
    symbol: str


class CurrencyRegistry:
    """
    Currencies jobs, invoices, quotes and expenses may be denominated in.

    A code outside this set is rejected; it is never mapped to a fallback.
    """

    _CURRENCIES: ClassVar[dict[str, CurrencyInfo]] = {
        "USD": CurrencyInfo("USD", 2, "US Dollar", "$"),
        "EUR": CurrencyInfo("EUR", 2, "Euro", "€"),
        "GBP": CurrencyInfo("GBP", 2, "British Pound", "£"),
        "CAD": CurrencyInfo("CAD", 2, "Canadian Dollar", "CA$"),
        "MAD": CurrencyInfo("MAD", 2, "Moroccan Dirham", "MAD"),
    }

    @staticmethod
    def _normalize(code: str | None) -> str:
        return code.strip().upper() if isinstance(code, str) else ""

    @classmethod
    def is_valid(cls, code: str | None) -> bool:
        return cls._normalize(code) in cls._CURRENCIES

    @classmethod
    def require(cls, code: str) -> CurrencyInfo:
        """Info for ``code``, or ``InvalidCurrencyError``."""
        info = cls._CURRENCIES.get(cls._normalize(code))
        if info is None:
            raise InvalidCurrencyError(str(code))
        return info

    @classmethod
    def validate(cls, code: str) -> str:
        """The normalized (upper-case) form of a supported code."""
        return cls.require(code).code

    @classmethod
    def get_decimal_places(cls, code: str) -> int:
        return cls.require(code).decimal_places

    @classmethod
    def all_codes(cls) -> frozenset[str]:
        return frozenset(cls._CURRENCIES)
