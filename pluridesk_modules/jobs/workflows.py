"""
Job Workflow (``pluridesk_modules.jobs.workflows``).

Responsibility
--------------
Declares the job status state machine.  Guards express the preconditions
``JobService`` checks before applying a transition; ``internal=True``
marks the transitions into ``invoiced`` that only invoice generation may
perform.

Graph
-----
    created -> in_progress -> finished -> invoiced
    finished -> in_progress                      (reopen)
    {created, in_progress, finished} -> on_hold  (remembers the prior state)
    on_hold -> prior state only
    any non-terminal -> cancelled

Terminal states: ``cancelled`` and ``invoiced``.  An invoiced job returns
to ``finished`` only when its invoice is voided or deleted.
"""

from pluridesk_kernel.domain.workflow import Guard, Transition, Workflow
from pluridesk_kernel.logging_config import get_logger
from pluridesk_modules.jobs.models import JobStatus

logger = get_logger("modules.jobs.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

RETURNS_TO_HELD_STATE = Guard(
    name="returns_to_held_state",
    description="A held job resumes only the status it was held from",
)

INVOICE_GENERATION_ONLY = Guard(
    name="invoice_generation_only",
    description="Jobs become invoiced only through invoice generation",
)


# -----------------------------------------------------------------------------
# Job Workflow
# -----------------------------------------------------------------------------

_CREATED = JobStatus.CREATED.value
_IN_PROGRESS = JobStatus.IN_PROGRESS.value
_FINISHED = JobStatus.FINISHED.value
_INVOICED = JobStatus.INVOICED.value
_CANCELLED = JobStatus.CANCELLED.value
_ON_HOLD = JobStatus.ON_HOLD.value

_WORKING_STATES = (_CREATED, _IN_PROGRESS, _FINISHED)

JOB_WORKFLOW = Workflow(
    name="job",
    description="Job lifecycle from creation to invoicing",
    initial_state=_CREATED,
    states=tuple(s.value for s in JobStatus),
    transitions=(
        Transition(_CREATED, _IN_PROGRESS, action="start"),
        Transition(_IN_PROGRESS, _FINISHED, action="finish"),
        Transition(_FINISHED, _IN_PROGRESS, action="reopen"),
        *(Transition(s, _ON_HOLD, action="hold") for s in _WORKING_STATES),
        *(
            Transition(_ON_HOLD, s, action="resume", guard=RETURNS_TO_HELD_STATE)
            for s in _WORKING_STATES
        ),
        *(
            Transition(s, _CANCELLED, action="cancel")
            for s in (*_WORKING_STATES, _ON_HOLD)
        ),
        *(
            Transition(s, _INVOICED, action="invoice", guard=INVOICE_GENERATION_ONLY, internal=True)
            for s in (*_WORKING_STATES, _ON_HOLD)
        ),
    ),
    terminal_states=(_CANCELLED, _INVOICED),
)

logger.info(
    "job_workflow_defined",
    extra={
        "workflow": JOB_WORKFLOW.name,
        "states": len(JOB_WORKFLOW.states),
        "transitions": len(JOB_WORKFLOW.transitions),
    },
)
