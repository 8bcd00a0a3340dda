"""
Obligation schedule domain types (``ledger_kernel.domain.schedule``).

Responsibility
--------------
Pure value objects describing a client's funding plan and the monthly
obligations derived from it.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* ``FundingPlan`` has a positive fee and a tenure of at least one month.
* ``ObligationSnapshot.month_number`` is 1-based.
* ``ClientAggregates.pending_amount == total_obligation - paid_amount``
  (may go negative on overpayment).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from ledger_kernel.exceptions import ValidationError


class ObligationStatus(str, Enum):
    """Payment status of one month."""

    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"


class AllocationType(str, Enum):
    """Whether a staff member is the primary or secondary handler."""

    PRIMARY = "primary"
    SECONDARY = "secondary"


@dataclass(frozen=True)
class FundingPlan:
    """Fee, tenure and first due date of a client's installments."""

    monthly_fee: Decimal
    tenure_months: int
    start_date: date

    def __post_init__(self) -> None:
        if self.monthly_fee <= 0:
            raise ValidationError("monthly_fee", "must be greater than zero", self.monthly_fee)
        if self.tenure_months < 1:
            raise ValidationError("tenure_months", "must be at least 1", self.tenure_months)

    @property
    def total_obligation(self) -> Decimal:
        return self.monthly_fee * self.tenure_months


@dataclass(frozen=True)
class ObligationSnapshot:
    """One month of a schedule, persisted or synthesized."""

    client_id: UUID
    month_number: int
    due_date: date
    due_amount: Decimal
    paid_amount: Decimal
    status: ObligationStatus
    reminder_sent: bool = False
    persisted: bool = False

    @property
    def outstanding(self) -> Decimal:
        return max(self.due_amount - self.paid_amount, Decimal("0"))


@dataclass(frozen=True)
class ClientAggregates:
    """Derived totals kept on the client row."""

    paid_amount: Decimal
    pending_amount: Decimal
    payments_completed: int
    payments_pending: int


@dataclass(frozen=True)
class UpcomingDue:
    """An unpaid obligation falling inside a reminder window."""

    client_id: UUID
    client_name: str
    assigned_to: str | None
    obligation: ObligationSnapshot
