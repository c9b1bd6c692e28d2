"""
Quote Workflow (``pluridesk_modules.quotes.workflows``).

    draft -> sent -> accepted | rejected
    rejected -> draft, sent -> draft     (revise and resend)

``accepted`` is terminal and entered only by ``convert_to_job``.
"""

from pluridesk_kernel.domain.workflow import Guard, Transition, Workflow
from pluridesk_kernel.logging_config import get_logger
from pluridesk_modules.quotes.models import QuoteStatus

logger = get_logger("modules.quotes.workflows")

CONVERTED_TO_JOB = Guard(
    name="converted_to_job",
    description="Acceptance creates the job; it is never set on its own",
)

_DRAFT = QuoteStatus.DRAFT.value
_SENT = QuoteStatus.SENT.value
_ACCEPTED = QuoteStatus.ACCEPTED.value
_REJECTED = QuoteStatus.REJECTED.value

QUOTE_WORKFLOW = Workflow(
    name="quote",
    description="Client quote lifecycle",
    initial_state=_DRAFT,
    states=tuple(s.value for s in QuoteStatus),
    transitions=(
        Transition(_DRAFT, _SENT, action="send"),
        Transition(_SENT, _DRAFT, action="revise"),
        Transition(_SENT, _REJECTED, action="reject"),
        Transition(_REJECTED, _DRAFT, action="revise"),
        Transition(_DRAFT, _ACCEPTED, action="convert", guard=CONVERTED_TO_JOB, internal=True),
        Transition(_SENT, _ACCEPTED, action="convert", guard=CONVERTED_TO_JOB, internal=True),
    ),
    terminal_states=(_ACCEPTED,),
)

logger.info(
    "quote_workflow_defined",
    extra={
        "workflow": QUOTE_WORKFLOW.name,
        "states": len(QUOTE_WORKFLOW.states),
        "transitions": len(QUOTE_WORKFLOW.transitions),
    },
)
