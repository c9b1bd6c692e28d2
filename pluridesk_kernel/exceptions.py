"""
Typed Exception Hierarchy for the PluriDesk engine.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (HTTP handlers, CLI tools, tests) must react to a failure by its
*kind*, not by parsing its message.  Every exception therefore has:
  1. A TYPED class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (job ids, currencies, field names)

Example:
    try:
        generator.generate(job_ids, client_id)
    except MixedCurrencySelectionError as e:
        return {"error": e.code, "currencies": e.currencies}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PlurideskError (base)
    |
    +-- ValidationError                   malformed input, reported per field
    |   +-- InvalidPricingInputError
    |
    +-- InvariantViolationError           caller broke a business rule
    |   +-- MixedClientSelectionError
    |   +-- MixedCurrencySelectionError
    |   +-- InvoicedJobLockedError
    |   +-- IllegalTransitionError
    |   +-- StaleConfirmationError
    |
    +-- NotFoundError                     missing or not owned by the caller
    |
    +-- AtomicityFailureError             multi-write operation rolled back
    |   +-- ExpenseCreationFailedError
    |   +-- InvoiceGenerationFailedError
    |
    +-- CurrencyError
        +-- InvalidCurrencyError
        +-- CurrencyMismatchError
        +-- MissingCurrencyError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | VALIDATION_ERROR            | Missing/invalid field
                | INVALID_PRICING_INPUT       | Unit pricing without quantity/rate
----------------|-----------------------------|-----------------------------------------
Invariant       | MIXED_CLIENT_SELECTION      | Invoice jobs from another client
                | MIXED_CURRENCY_SELECTION    | Invoice jobs in several currencies
                | INVOICED_JOB_LOCKED         | Financial edit of an invoiced job
                | ILLEGAL_TRANSITION          | Target status unreachable
                | STALE_CONFIRMATION          | Delivery token no longer matches record
----------------|-----------------------------|-----------------------------------------
Not found       | NOT_FOUND                   | Unknown id or foreign owner
----------------|-----------------------------|-----------------------------------------
Atomicity       | EXPENSE_CREATION_FAILED     | Delivery expense write failed
                | INVOICE_GENERATION_FAILED   | Invoice insert / job update failed
----------------|-----------------------------|-----------------------------------------
Currency        | INVALID_CURRENCY            | Code outside the supported set
                | CURRENCY_MISMATCH           | Arithmetic across currencies
                | MISSING_CURRENCY            | Monetary value without currency

Nothing in the engine retries automatically; retry is a caller policy.
"""


class PlurideskError(Exception):
    """
    Base exception for all engine errors.

    All subclasses must define a ``code`` class attribute.
    """

    code: str = "PLURIDESK_ERROR"


# Validation


class ValidationError(PlurideskError):
    """Malformed input.  Reported with the offending field; never retried."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class InvalidPricingInputError(ValidationError):
    """Unit-priced job is missing a usable quantity or rate."""

    code: str = "INVALID_PRICING_INPUT"

    def __init__(self, pricing_type: str, field: str, reason: str):
        self.pricing_type = pricing_type
        super().__init__(field, f"{reason} (pricing_type={pricing_type})")


# Invariant violations


class InvariantViolationError(PlurideskError):
    """Base for business-rule violations caused by the caller."""

    code: str = "INVARIANT_VIOLATION"


class MixedClientSelectionError(InvariantViolationError):
    """Jobs selected for one invoice do not all belong to the target client."""

    code: str = "MIXED_CLIENT_SELECTION"

    def __init__(self, client_id: str, foreign_job_ids: list[str]):
        self.client_id = client_id
        self.foreign_job_ids = foreign_job_ids
        super().__init__(
            f"All jobs must belong to client {client_id}; "
            f"foreign jobs: {', '.join(foreign_job_ids)}"
        )


class MixedCurrencySelectionError(InvariantViolationError):
    """Records selected for one document are denominated in more than one currency."""

    code: str = "MIXED_CURRENCY_SELECTION"

    def __init__(self, currencies: list[str], subject: str = "jobs"):
        self.currencies = currencies
        self.subject = subject
        super().__init__(
            f"All {subject} must share one currency; found {', '.join(currencies)}"
        )


class InvoicedJobLockedError(InvariantViolationError):
    """An invoiced job cannot be changed except through its invoice."""

    code: str = "INVOICED_JOB_LOCKED"

    def __init__(self, job_id: str, fields: list[str] | None = None):
        self.job_id = job_id
        self.fields = fields or []
        detail = f" (fields: {', '.join(self.fields)})" if self.fields else ""
        super().__init__(f"Job {job_id} is invoiced and locked{detail}")


class IllegalTransitionError(InvariantViolationError):
    """Target status is not reachable from the current status."""

    code: str = "ILLEGAL_TRANSITION"

    def __init__(self, entity: str, entity_id: str, from_status: str, to_status: str, reason: str = ""):
        self.entity = entity
        self.entity_id = entity_id
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        message = f"{entity} {entity_id}: cannot move from {from_status} to {to_status}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class StaleConfirmationError(InvariantViolationError):
    """A delivery confirmation token no longer matches the record it was issued for."""

    code: str = "STALE_CONFIRMATION"

    def __init__(self, record_id: str, expected_status: str, actual_status: str):
        self.record_id = record_id
        self.expected_status = expected_status
        self.actual_status = actual_status
        super().__init__(
            f"Outsourcing record {record_id} changed since confirmation was requested: "
            f"expected {expected_status}, found {actual_status}"
        )


# Not found


class NotFoundError(PlurideskError):
    """Referenced id does not exist or is not owned by the caller."""

    code: str = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


# Atomicity failures


class AtomicityFailureError(PlurideskError):
    """A multi-write operation failed and was rolled back as a whole."""

    code: str = "ATOMICITY_FAILURE"


class ExpenseCreationFailedError(AtomicityFailureError):
    """The payable expense for a delivery could not be written."""

    code: str = "EXPENSE_CREATION_FAILED"

    def __init__(self, record_id: str, reason: str):
        self.record_id = record_id
        self.reason = reason
        super().__init__(
            f"Delivery of outsourcing record {record_id} rolled back: {reason}"
        )


class InvoiceGenerationFailedError(AtomicityFailureError):
    """Invoice insert or job back-reference update failed."""

    code: str = "INVOICE_GENERATION_FAILED"

    def __init__(self, job_ids: list[str], reason: str):
        self.job_ids = job_ids
        self.reason = reason
        super().__init__(f"Invoice generation rolled back: {reason}")


# Currency


class CurrencyError(PlurideskError):
    """Base exception for currency-related errors."""

    code: str = "CURRENCY_ERROR"


class InvalidCurrencyError(CurrencyError):
    """Currency code is not one of the supported currencies."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Unsupported currency code: {currency!r}")


class CurrencyMismatchError(CurrencyError):
    """Arithmetic or comparison attempted across two currencies."""

    code: str = "CURRENCY_MISMATCH"

    def __init__(self, left: str, right: str, operation: str = "combine"):
        self.left = left
        self.right = right
        self.operation = operation
        super().__init__(
            f"Cannot {operation} Money with different currencies: {left} and {right}"
        )


class MissingCurrencyError(CurrencyError):
    """A monetary value was stored or supplied without its currency."""

    code: str = "MISSING_CURRENCY"

    def __init__(self, entity: str, entity_id: str | None = None):
        self.entity = entity
        self.entity_id = entity_id
        suffix = f" {entity_id}" if entity_id else ""
        super().__init__(f"{entity}{suffix} carries an amount without a currency")
