"""
Outsourcing Workflow (``pluridesk_modules.outsourcing.workflows``).

Declares the subcontract state machine.  A subcontract's status follows the
supplier's real progress and may be corrected in any direction, so every
status is reachable from every other one and none is terminal.

Moves into ``delivered`` are the exception: they carry the
``DELIVERY_CONFIRMED`` guard and are ``internal``.  They are applied only
by ``OutsourcingService.confirm_delivery``, never by a plain status change,
because delivery books a payable.
"""

from itertools import permutations

from pluridesk_kernel.domain.workflow import Guard, Transition, Workflow
from pluridesk_kernel.logging_config import get_logger
from pluridesk_modules.outsourcing.models import OutsourcingStatus

logger = get_logger("modules.outsourcing.workflows")


DELIVERY_CONFIRMED = Guard(
    name="delivery_confirmed",
    description="Caller confirmed the payable expense booked on delivery",
)

_ACTIONS = {
    OutsourcingStatus.PENDING: "reset",
    OutsourcingStatus.ASSIGNED: "assign",
    OutsourcingStatus.IN_PROGRESS: "start",
    OutsourcingStatus.DELIVERED: "deliver",
    OutsourcingStatus.COMPLETED: "complete",
    OutsourcingStatus.CANCELLED: "cancel",
}


def _transition(source: OutsourcingStatus, target: OutsourcingStatus) -> Transition:
    delivery = target is OutsourcingStatus.DELIVERED
    return Transition(
        source.value,
        target.value,
        action=_ACTIONS[target],
        guard=DELIVERY_CONFIRMED if delivery else None,
        internal=delivery,
    )


OUTSOURCING_WORKFLOW = Workflow(
    name="outsourcing",
    description="Subcontract lifecycle from assignment to delivery",
    initial_state=OutsourcingStatus.PENDING.value,
    states=tuple(s.value for s in OutsourcingStatus),
    transitions=tuple(
        _transition(source, target) for source, target in permutations(OutsourcingStatus, 2)
    ),
)

logger.info(
    "outsourcing_workflow_defined",
    extra={
        "workflow": OUTSOURCING_WORKFLOW.name,
        "states": len(OUTSOURCING_WORKFLOW.states),
        "transitions": len(OUTSOURCING_WORKFLOW.transitions),
    },
)
