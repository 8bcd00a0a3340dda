"""
Client payment module value objects.

Outcomes handed back to callers of ClientPaymentService.  The stored
rows themselves live in ledger_kernel.models.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from ledger_kernel.domain.approval import RequestState
from ledger_kernel.domain.schedule import ObligationStatus


@dataclass(frozen=True)
class ApprovalOutcome:
    """Result of approving or rejecting a request.

    The ledger change is committed whenever an outcome is returned.
    ``notification_message`` is set only when dispatch was attempted and
    failed; the caller shows it, nothing retries it.
    """

    request_id: UUID
    state: RequestState
    notification_sent: bool = False
    notification_message: str | None = None
    month_status: ObligationStatus | None = None
    month_paid_amount: Decimal | None = None

    @property
    def has_warning(self) -> bool:
        return self.notification_message is not None


@dataclass(frozen=True)
class ClientLedgerSummary:
    """Client-level totals as shown on the payments screen."""

    client_id: UUID
    name: str
    monthly_fee: Decimal
    tenure_months: int
    total_obligation_amount: Decimal
    paid_amount: Decimal
    pending_amount: Decimal
    payments_completed: int
    payments_pending: int
    is_active: bool
