"""
Engine configuration schema (``pluridesk_config.schema``).

Defines the typed, self-validating configuration consumed by the services:
document numbering, payment terms, the category used for expenses booked
on outsourcing delivery, and the expense categories offered for manual
entry.  YAML files are parsed into these types by the loader; services
receive an ``EngineConfig`` by injection.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pluridesk_kernel.logging_config import get_logger

logger = get_logger("config.schema")


# Manual expense categories
DEFAULT_EXPENSE_CATEGORIES: tuple[str, ...] = (
    "Software",
    "Hardware",
    "Office Supplies",
    "Marketing",
    "Travel",
    "Training",
    "Legal",
    "Accounting",
    "Insurance",
    "Utilities",
    "Rent",
    "Outsourcing",
    "Other",
)


@dataclass(frozen=True)
class NumberingConfig:
    """Document number format: ``{prefix}-{year}-{sequence}``.

    Contract: prefixes are non-empty and distinct; padding in [1, 12].
    """
    invoice_prefix: str = "INV"
    job_prefix: str = "JOB"
    quote_prefix: str = "QT"
    purchase_order_prefix: str = "PO"
    padding: int = 4

    def __post_init__(self) -> None:
        prefixes = (
            self.invoice_prefix,
            self.job_prefix,
            self.quote_prefix,
            self.purchase_order_prefix,
        )
        for prefix in prefixes:
            if not prefix or not prefix.strip():
                raise ValueError("numbering prefixes cannot be empty")
        if len(set(prefixes)) != len(prefixes):
            raise ValueError("numbering prefixes must be distinct")
        if not 1 <= self.padding <= 12:
            raise ValueError("padding must be between 1 and 12")

    def format(self, prefix: str, year: int, sequence: int) -> str:
        return f"{prefix}-{year}-{sequence:0{self.padding}d}"


@dataclass(frozen=True)
class EngineConfig:
    """
    Runtime configuration for the lifecycle engine.

    Field defaults match the packaged ``sets/default.yaml``.  Override at
    instantiation in tests:

        config = EngineConfig(default_payment_terms_days=45)
    """

    config_id: str = "default"
    version: int = 1

    numbering: NumberingConfig = field(default_factory=NumberingConfig)

    # Invoice due date = invoice date + terms (client terms win when set)
    default_payment_terms_days: int = 30
    quote_validity_days: int = 30

    # Expense booked on outsourcing delivery
    outsourcing_expense_category: str = "Outsourcing"
    outsourcing_payment_terms_days: int = 30

    # Days past due before an unpaid expense counts as overdue
    overdue_grace_days: int = 0

    expense_categories: tuple[str, ...] = DEFAULT_EXPENSE_CATEGORIES

    def __post_init__(self) -> None:
        if self.default_payment_terms_days < 0:
            raise ValueError("default_payment_terms_days cannot be negative")
        if self.quote_validity_days < 0:
            raise ValueError("quote_validity_days cannot be negative")
        if self.outsourcing_payment_terms_days < 0:
            raise ValueError("outsourcing_payment_terms_days cannot be negative")
        if self.overdue_grace_days < 0:
            raise ValueError("overdue_grace_days cannot be negative")
        if not self.outsourcing_expense_category.strip():
            raise ValueError("outsourcing_expense_category cannot be empty")
        if self.outsourcing_expense_category not in self.expense_categories:
            raise ValueError(
                f"outsourcing_expense_category {self.outsourcing_expense_category!r} "
                "must be one of expense_categories"
            )
        logger.debug(
            "engine_config_initialized",
            extra={
                "config_id": self.config_id,
                "version": self.version,
                "default_payment_terms_days": self.default_payment_terms_days,
                "outsourcing_expense_category": self.outsourcing_expense_category,
            },
        )
