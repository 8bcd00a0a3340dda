"""
Approval domain types (``ledger_kernel.domain.approval``).

Responsibility
--------------
Pure value objects for the payment request workflow.  Defines the
three-state request lifecycle, the per-instantiation status
vocabularies, the two payload kinds (client payment, operational
expense), the generic ``ApprovalRequest[Payload]`` snapshot and the
explicit ``Actor`` that every mutating call carries.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, or outer layers.

Invariants enforced
-------------------
* ``REQUEST_TRANSITIONS`` defines the only valid status transitions.
  Approved and Rejected have no outgoing edges.
* Amounts are ``Decimal``, numeric, finite and strictly positive
  (``parse_amount``).
* Each status vocabulary maps one-to-one onto ``RequestState``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Generic, TypeVar
from uuid import UUID

from ledger_kernel.exceptions import ValidationError


# =========================================================================
# Request lifecycle
# =========================================================================


class RequestState(str, Enum):
    """Canonical request lifecycle states."""

    NOT_APPROVED = "not_approved"
    APPROVED = "approved"
    REJECTED = "rejected"


REQUEST_TRANSITIONS: dict[RequestState, frozenset[RequestState]] = {
    RequestState.NOT_APPROVED: frozenset({
        RequestState.APPROVED,
        RequestState.REJECTED,
    }),
    RequestState.APPROVED: frozenset(),
    RequestState.REJECTED: frozenset(),
}

TERMINAL_REQUEST_STATES: frozenset[RequestState] = frozenset({
    RequestState.APPROVED,
    RequestState.REJECTED,
})


def can_transition(current: RequestState, target: RequestState) -> bool:
    return target in REQUEST_TRANSITIONS[current]


@dataclass(frozen=True)
class StatusVocabulary:
    """Stored status strings for one workflow instantiation."""

    not_approved: str
    approved: str
    rejected: str

    def to_stored(self, state: RequestState) -> str:
        return {
            RequestState.NOT_APPROVED: self.not_approved,
            RequestState.APPROVED: self.approved,
            RequestState.REJECTED: self.rejected,
        }[state]

    def to_state(self, stored: str) -> RequestState:
        for state in RequestState:
            if self.to_stored(state) == stored:
                return state
        raise ValidationError("status", f"unknown stored status '{stored}'", stored)


PAYMENT_STATUSES = StatusVocabulary(
    not_approved="NotApproved",
    approved="Approved",
    rejected="Rejected",
)

EXPENSE_STATUSES = StatusVocabulary(
    not_approved="pending",
    approved="approved",
    rejected="rejected",
)


# =========================================================================
# Actors
# =========================================================================


class ActorRole(str, Enum):
    """Role an actor plays on a call. Informational; not an auth check."""

    STAFF = "staff"
    REVIEWER = "reviewer"
    ADMIN = "admin"
    SYSTEM = "system"


@dataclass(frozen=True)
class Actor:
    """Who is performing a mutating call."""

    name: str
    role: ActorRole = ActorRole.STAFF

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValidationError("actor", "actor name is required", self.name)


SYSTEM_ACTOR = Actor(name="system", role=ActorRole.SYSTEM)


# =========================================================================
# Amounts
# =========================================================================


def parse_amount(value: object, field: str = "amount") -> Decimal:
    """Coerce a user-entered amount to a positive Decimal.

    Accepts Decimal, int, or a numeric string (surrounding whitespace and
    thousands separators are tolerated).  Floats go through ``str`` so
    0.1 stays 0.1.

    Raises:
        ValidationError: missing, non-numeric, non-finite, or not > 0.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(field, "amount is required", value)

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            raise ValidationError(field, "amount is required", value)
        try:
            amount = Decimal(text)
        except InvalidOperation:
            raise ValidationError(field, "must be numeric", value) from None
    else:
        raise ValidationError(field, "must be numeric", value)

    if not amount.is_finite():
        raise ValidationError(field, "must be a finite number", value)
    if amount <= 0:
        raise ValidationError(field, "must be greater than zero", value)
    return amount


# =========================================================================
# Payloads
# =========================================================================


@dataclass(frozen=True)
class PaymentPayload:
    """A claim that a client paid toward one month of their schedule."""

    client_id: UUID
    month_number: int
    amount: Decimal
    notes: str = ""


class ExpenseSource(str, Enum):
    """Business line an operational expense is charged to."""

    CREDSETTLEE = "credsettlee"
    AMA = "ama"
    SETTLELOANS = "settleloans"
    BILLCUT = "billcut"


class ExpenseType(str, Enum):
    """Kind of operational expense."""

    CLIENT_VISIT = "Client visit"
    ARBITRATION = "Arbitration"
    FEES = "Fees"
    MISCELLANEOUS = "Miscellaneous"


@dataclass(frozen=True)
class ExpensePayload:
    """An operational expense awaiting approval."""

    name: str
    phone_number: str
    amount: Decimal
    source: ExpenseSource
    expense_type: ExpenseType
    miscellaneous_details: str | None = None


Payload = TypeVar("Payload", PaymentPayload, ExpensePayload)


@dataclass(frozen=True)
class ApprovalRequest(Generic[Payload]):
    """Immutable snapshot of a stored request and its decision."""

    request_id: UUID
    payload: Payload
    state: RequestState
    requested_by: str
    requested_at: datetime
    approved_by: str | None = None
    approved_at: datetime | None = None
    rejected_by: str | None = None
    rejected_at: datetime | None = None
    edited_by: str | None = None
    edited_at: datetime | None = None
    notification_sent: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_REQUEST_STATES
