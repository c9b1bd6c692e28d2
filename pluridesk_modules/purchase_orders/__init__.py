"""
Purchase Orders Module (``pluridesk_modules.purchase_orders``).

Numbered orders grouping one supplier's outsourcing records.
"""

from pluridesk_modules.purchase_orders.models import PurchaseOrder
from pluridesk_modules.purchase_orders.service import PurchaseOrderService

__all__ = [
    "PurchaseOrder",
    "PurchaseOrderService",
]
