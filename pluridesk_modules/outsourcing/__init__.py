"""
Outsourcing Module (``pluridesk_modules.outsourcing``).

Subcontracts of jobs to suppliers, and the confirmed delivery that books
the supplier's payable.
"""

from pluridesk_modules.outsourcing.models import (
    OPEN_STATUSES,
    DeliveryResult,
    OutsourcingRecord,
    OutsourcingStatus,
    OutsourcingTerms,
    PendingExpenseConfirmation,
)
from pluridesk_modules.outsourcing.service import OutsourcingService, terms_from_dict
from pluridesk_modules.outsourcing.workflows import OUTSOURCING_WORKFLOW

__all__ = [
    "OPEN_STATUSES",
    "OUTSOURCING_WORKFLOW",
    "DeliveryResult",
    "OutsourcingRecord",
    "OutsourcingService",
    "OutsourcingStatus",
    "OutsourcingTerms",
    "PendingExpenseConfirmation",
    "terms_from_dict",
]
