"""
Invoice Workflow (``pluridesk_modules.invoicing.workflows``).

    draft -> sent -> paid
    sent -> overdue -> paid
    draft -> paid                 (paid on the spot)
    sent -> draft, overdue -> sent, paid -> sent   (corrections)

No state is terminal: an invoice leaves the system only by being voided,
which returns its jobs to ``finished``.
"""

from pluridesk_kernel.domain.workflow import Transition, Workflow
from pluridesk_kernel.logging_config import get_logger
from pluridesk_modules.invoicing.models import InvoiceStatus

logger = get_logger("modules.invoicing.workflows")

_DRAFT = InvoiceStatus.DRAFT.value
_SENT = InvoiceStatus.SENT.value
_PAID = InvoiceStatus.PAID.value
_OVERDUE = InvoiceStatus.OVERDUE.value

INVOICE_WORKFLOW = Workflow(
    name="invoice",
    description="Client invoice payment lifecycle",
    initial_state=_DRAFT,
    states=tuple(s.value for s in InvoiceStatus),
    transitions=(
        Transition(_DRAFT, _SENT, action="send"),
        Transition(_DRAFT, _PAID, action="record_payment"),
        Transition(_SENT, _PAID, action="record_payment"),
        Transition(_SENT, _OVERDUE, action="mark_overdue"),
        Transition(_OVERDUE, _PAID, action="record_payment"),
        Transition(_SENT, _DRAFT, action="recall"),
        Transition(_OVERDUE, _SENT, action="extend"),
        Transition(_PAID, _SENT, action="reverse_payment"),
    ),
)

logger.info(
    "invoice_workflow_defined",
    extra={
        "workflow": INVOICE_WORKFLOW.name,
        "states": len(INVOICE_WORKFLOW.states),
        "transitions": len(INVOICE_WORKFLOW.transitions),
    },
)
