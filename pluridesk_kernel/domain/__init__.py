"""Pure domain layer: currency registry, Money, clock and workflow value objects."""

from pluridesk_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from pluridesk_kernel.domain.currency import CurrencyInfo, CurrencyRegistry
from pluridesk_kernel.domain.values import Currency, Money
from pluridesk_kernel.domain.workflow import Guard, Transition, Workflow

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "CurrencyInfo",
    "CurrencyRegistry",
    "Currency",
    "Money",
    "Guard",
    "Transition",
    "Workflow",
]
