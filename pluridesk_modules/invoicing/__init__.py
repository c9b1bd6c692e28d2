"""
Invoicing Module (``pluridesk_modules.invoicing``).

Generates client invoices from finished work and tracks their payment
status.  Generation is the only way a job becomes ``invoiced``.
"""

from pluridesk_modules.invoicing.models import (
    Invoice,
    InvoiceGenerationResult,
    InvoiceStatus,
    LineItem,
    LineItemInput,
)
from pluridesk_modules.invoicing.service import InvoiceService
from pluridesk_modules.invoicing.workflows import INVOICE_WORKFLOW

__all__ = [
    "INVOICE_WORKFLOW",
    "Invoice",
    "InvoiceGenerationResult",
    "InvoiceService",
    "InvoiceStatus",
    "LineItem",
    "LineItemInput",
]
