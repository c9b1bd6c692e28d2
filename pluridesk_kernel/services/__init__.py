"""Kernel services (write side)."""

from pluridesk_kernel.services.sequence_service import SequenceCounter, SequenceService

__all__ = [
    "SequenceCounter",
    "SequenceService",
]
