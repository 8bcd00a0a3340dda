"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the ledger (review screens, intake forms, batch scripts) must
react differently to "you typed a bad amount" and "somebody already
approved this".  Parsing messages is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example - RIGHT way:
    try:
        payments.approve(request_id, reviewer)
    except StateConflictError as e:
        show(f"Request already {e.current_status}")

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerKernelError (base)
    |
    +-- ValidationError
    |   +-- DuplicateCounterpartyError
    |
    +-- NotFoundError
    |   +-- ClientNotFoundError
    |   +-- RequestNotFoundError
    |   +-- CounterpartyNotFoundError
    |   +-- CaseNotFoundError
    |
    +-- StateConflictError
    |
    +-- NoChangeError
    |
    +-- DownstreamError
    |   +-- NetworkError
    |
    +-- UnknownError
    |
    +-- AuditError
        +-- AuditChainBrokenError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                     | When Raised
-------------|--------------------------|---------------------------------------
Validation   | VALIDATION_ERROR         | Missing/non-numeric/non-positive amount,
             |                          | month outside [1, tenure], bad payload
             | DUPLICATE_COUNTERPARTY   | Registry name already exists
-------------|--------------------------|---------------------------------------
Not found    | CLIENT_NOT_FOUND         | Unknown client id
             | REQUEST_NOT_FOUND        | Unknown payment / ops request id
             | COUNTERPARTY_NOT_FOUND   | Name did not resolve to a registry row
             | CASE_NOT_FOUND           | Unknown case record id
-------------|--------------------------|---------------------------------------
State        | STATE_CONFLICT           | approve/reject on a decided request
             | NO_CHANGE                | Edit carries no field differences
-------------|--------------------------|---------------------------------------
Downstream   | DOWNSTREAM_ERROR         | Notification/document dispatch failed
             | NETWORK_ERROR            | Dispatch failed at the transport
             | UNKNOWN_ERROR            | Unexpected failure (logged, not retried)
-------------|--------------------------|---------------------------------------
Audit        | AUDIT_CHAIN_BROKEN       | Hash chain validation failed

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Validation and state conflicts propagate synchronously to the caller.
2. Downstream errors are caught by the module service after the ledger
   transaction has committed, logged, and surfaced as a message on the
   returned outcome.  They are never retried.
3. NoChangeError means nothing was written; the caller shows
   "No changes detected".
"""


class LedgerKernelError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_KERNEL_ERROR"


# Validation


class ValidationError(LedgerKernelError):
    """Input failed validation before anything was stored."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str, value: object = None):
        self.field = field
        self.reason = reason
        self.value = value
        super().__init__(f"Invalid {field}: {reason}")


class DuplicateCounterpartyError(ValidationError):
    """A registry entry with the same canonical name already exists."""

    code: str = "DUPLICATE_COUNTERPARTY"

    def __init__(self, name: str):
        self.name = name
        super().__init__("name", f"counterparty '{name}' already exists", name)


# Not found


class NotFoundError(LedgerKernelError):
    """Base exception for unknown identifiers."""

    code: str = "NOT_FOUND"


class ClientNotFoundError(NotFoundError):
    """Client with given ID was not found."""

    code: str = "CLIENT_NOT_FOUND"

    def __init__(self, client_id: str):
        self.client_id = client_id
        super().__init__(f"Client not found: {client_id}")


class RequestNotFoundError(NotFoundError):
    """Payment or ops request with given ID was not found."""

    code: str = "REQUEST_NOT_FOUND"

    def __init__(self, request_id: str, request_kind: str = "request"):
        self.request_id = request_id
        self.request_kind = request_kind
        super().__init__(f"{request_kind} not found: {request_id}")


class CounterpartyNotFoundError(NotFoundError):
    """Freeform name did not resolve to any registry entry."""

    code: str = "COUNTERPARTY_NOT_FOUND"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No counterparty matches '{name}'")


class CaseNotFoundError(NotFoundError):
    """Case record with given ID was not found."""

    code: str = "CASE_NOT_FOUND"

    def __init__(self, case_id: str):
        self.case_id = case_id
        super().__init__(f"Case record not found: {case_id}")


# State


class StateConflictError(LedgerKernelError):
    """
    Transition attempted on a request that is no longer in its initial state.

    Approved and Rejected are terminal for transitions.  The record may
    still be edited, but never re-approved or re-rejected.
    """

    code: str = "STATE_CONFLICT"

    def __init__(self, request_id: str, current_status: str, attempted: str):
        self.request_id = request_id
        self.current_status = current_status
        self.attempted = attempted
        super().__init__(
            f"Cannot {attempted} request {request_id}: "
            f"status is already {current_status}"
        )


class NoChangeError(LedgerKernelError):
    """An edit was submitted whose values equal the stored values."""

    code: str = "NO_CHANGE"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"No changes detected for {entity_type} {entity_id}")


# Downstream


class DownstreamError(LedgerKernelError):
    """A collaborator (document generation, notification) failed."""

    code: str = "DOWNSTREAM_ERROR"

    def __init__(self, collaborator: str, reason: str):
        self.collaborator = collaborator
        self.reason = reason
        super().__init__(f"{collaborator} failed: {reason}")


class NetworkError(DownstreamError):
    """The collaborator could not be reached."""

    code: str = "NETWORK_ERROR"


class UnknownError(LedgerKernelError):
    """Unexpected failure.  Logged, surfaced, never retried."""

    code: str = "UNKNOWN_ERROR"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Unexpected failure during {operation}: {reason}")


# Audit


class AuditError(LedgerKernelError):
    """Base exception for audit-related errors."""

    code: str = "AUDIT_ERROR"


class AuditChainBrokenError(AuditError):
    """Audit hash chain validation failed."""

    code: str = "AUDIT_CHAIN_BROKEN"

    def __init__(self, audit_event_id: str, expected_hash: str, actual_hash: str):
        self.audit_event_id = audit_event_id
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Audit chain broken at event {audit_event_id}: "
            f"expected {expected_hash}, got {actual_hash}"
        )
