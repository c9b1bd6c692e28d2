"""
Quotes Module (``pluridesk_modules.quotes``).

Priced offers to clients, convertible into flat-fee jobs.
"""

from pluridesk_modules.quotes.models import Quote, QuoteConversionResult, QuoteStatus
from pluridesk_modules.quotes.service import QuoteService
from pluridesk_modules.quotes.workflows import QUOTE_WORKFLOW

__all__ = [
    "QUOTE_WORKFLOW",
    "Quote",
    "QuoteConversionResult",
    "QuoteService",
    "QuoteStatus",
]
