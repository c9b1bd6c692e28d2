"""
Module: pluridesk_engines
Responsibility:
    Package entrypoint that re-exports the pure calculation engines:
    job pricing, currency aggregation, expense classification and job
    margin.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import pluridesk_kernel domain values and exceptions.
    MUST NOT import pluridesk_modules.

Invariants enforced:
    - Purity: engines NEVER read the clock; dates are passed in.
    - Decimal-only arithmetic; floats are rejected.
    - Determinism: identical inputs always produce identical outputs.
"""

from pluridesk_engines.aggregation import CurrencyAggregator, aggregate
from pluridesk_engines.classification import ExpenseStatus, classify
from pluridesk_engines.margin import MarginResult, compute_margin
from pluridesk_engines.pricing import PRICING_UNITS, PricingType, compute_total, unit_for
from pluridesk_engines.tracer import traced_engine

__all__ = [
    "CurrencyAggregator",
    "aggregate",
    "ExpenseStatus",
    "classify",
    "MarginResult",
    "compute_margin",
    "PRICING_UNITS",
    "PricingType",
    "compute_total",
    "unit_for",
    "traced_engine",
]
