"""
Typed Exception Hierarchy for the billing kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the billing engines (request handlers, sweeps, scripts) must be
able to react to a failure without parsing message text:

    try:
        invoice = engine.raise_reminder(invoice, fee, as_of=today)
    except MaxRemindersExceededError as e:
        escalate_to_collections(e.document_id, e.max_level)

Every exception therefore has:
  1. A TYPED class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured ATTRIBUTES carrying the context of the failure

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BillingError (base)
    |
    +-- ValidationError
    |   +-- InvalidAmountError
    |   |   +-- InvalidTaxRateError
    |   +-- InvalidDocumentError
    |   +-- EmptyDocumentError
    |
    +-- WorkflowError
    |   +-- InvalidTransitionError
    |   +-- MaxRemindersExceededError
    |
    +-- NumberingError
    |   +-- ExhaustedSequenceError
    |
    +-- ConcurrencyError
    |   +-- VersionConflictError
    |
    +-- DocumentNotFoundError

All errors are recoverable by the caller; none leave a document partially
updated because every engine operation returns a new immutable document.
"""


class BillingError(Exception):
    """
    Base exception for all billing kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "BILLING_ERROR"


# Validation


class ValidationError(BillingError):
    """Base exception for rejected input values."""

    code: str = "VALIDATION_ERROR"


class InvalidAmountError(ValidationError):
    """A quantity, price, discount or payment amount is out of range."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field} {value!r}: {reason}")


class InvalidTaxRateError(InvalidAmountError):
    """Tax rate is not a member of the configured rate set."""

    code: str = "INVALID_TAX_RATE"

    def __init__(self, rate: object, allowed: tuple):
        self.allowed = allowed
        super().__init__(
            "tax_rate",
            rate,
            f"must be one of {', '.join(str(r) for r in allowed)}",
        )


class InvalidDocumentError(ValidationError):
    """A document-level field (dates, references, terms) is inconsistent."""

    code: str = "INVALID_DOCUMENT"

    def __init__(self, document_type: str, field: str, reason: str):
        self.document_type = document_type
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {document_type} {field}: {reason}")


class EmptyDocumentError(ValidationError):
    """Invoice recalculation was requested without any line items."""

    code: str = "EMPTY_DOCUMENT"

    def __init__(self, document_type: str, document_id: str):
        self.document_type = document_type
        self.document_id = document_id
        super().__init__(
            f"{document_type} {document_id} has no line items"
        )


# Workflow


class WorkflowError(BillingError):
    """Base exception for state machine violations."""

    code: str = "WORKFLOW_ERROR"


class InvalidTransitionError(WorkflowError):
    """Requested action is not permitted from the document's current status."""

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        document_type: str,
        document_id: str,
        from_status: str,
        action: str,
        reason: str | None = None,
    ):
        self.document_type = document_type
        self.document_id = document_id
        self.from_status = from_status
        self.action = action
        self.reason = reason
        message = (
            f"Cannot {action} {document_type} {document_id} "
            f"in status {from_status}"
        )
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class MaxRemindersExceededError(WorkflowError):
    """Dunning escalation beyond the highest reminder level."""

    code: str = "MAX_REMINDERS_EXCEEDED"

    def __init__(self, document_id: str, current_level: int, max_level: int):
        self.document_id = document_id
        self.current_level = current_level
        self.max_level = max_level
        super().__init__(
            f"Invoice {document_id} already at reminder level "
            f"{current_level} (max {max_level})"
        )


# Numbering


class NumberingError(BillingError):
    """Base exception for document number generation."""

    code: str = "NUMBERING_ERROR"


class ExhaustedSequenceError(NumberingError):
    """The per-type, per-year counter ran past the six-digit range."""

    code: str = "EXHAUSTED_SEQUENCE"

    def __init__(self, document_type: str, year: int, value: int, maximum: int):
        self.document_type = document_type
        self.year = year
        self.value = value
        self.maximum = maximum
        super().__init__(
            f"Number sequence for {document_type} {year} exhausted: "
            f"{value} > {maximum}"
        )


# Concurrency


class ConcurrencyError(BillingError):
    """Base exception for concurrency conflicts."""

    code: str = "CONCURRENCY_ERROR"


class VersionConflictError(ConcurrencyError):
    """Document was modified by another writer since it was loaded."""

    code: str = "VERSION_CONFLICT"

    def __init__(
        self,
        document_type: str,
        document_id: str,
        expected_version: int,
        actual_version: int | None,
    ):
        self.document_type = document_type
        self.document_id = document_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"{document_type} {document_id} was modified concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )


# Lookup


class DocumentNotFoundError(BillingError):
    """No stored document with the given type and id."""

    code: str = "NOT_FOUND"

    def __init__(self, document_type: str, document_id: str):
        self.document_type = document_type
        self.document_id = document_id
        super().__init__(f"{document_type} not found: {document_id}")
