"""
Jobs Module (``pluridesk_modules.jobs``).

Billable work for a client: pricing, status lifecycle and the cancel
cascade to outsourcing.
"""

from pluridesk_modules.jobs.models import FINANCIAL_FIELDS, Job, JobStatus, JobTransitionResult
from pluridesk_modules.jobs.service import JobService
from pluridesk_modules.jobs.workflows import JOB_WORKFLOW

__all__ = [
    "FINANCIAL_FIELDS",
    "JOB_WORKFLOW",
    "Job",
    "JobService",
    "JobStatus",
    "JobTransitionResult",
]
