"""
Currency checks at the persistence boundary.

Every amount column is ``Numeric(38, 9)`` (see ``Base.type_annotation_map``)
and sits next to a ``String(3)`` currency column on the same row; there is
no table-wide or global currency.  Services pass each currency through
``validate_currency`` before assigning it to a row.
"""

from pluridesk_kernel.domain.currency import CurrencyRegistry
from pluridesk_kernel.exceptions import MissingCurrencyError


def validate_currency(currency: str | None, entity: str = "record") -> str:
    """
    Normalize a currency code for storage.

    Raises:
        MissingCurrencyError: ``currency`` is None or blank.
        InvalidCurrencyError: ``currency`` is not supported.
    """
    if currency is None or (isinstance(currency, str) and not currency.strip()):
        raise MissingCurrencyError(entity)
    return CurrencyRegistry.validate(currency)
