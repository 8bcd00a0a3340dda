"""
Module: ledger_kernel.models.payment_request
Responsibility: ORM persistence for client payment requests: a staff
    member's claim that a client paid toward one month, pending review.
Architecture position: Kernel > Models.

Invariants enforced:
    - requested_amount > 0 (check constraint; parse_amount upstream).
    - status is one of NotApproved / Approved / Rejected.
    - due_amount_snapshot and paid_amount_snapshot record the month as it
      stood when the request was submitted and never change afterwards.

Audit relevance:
    The same table serves both the per-client payment history view and
    the flat per-requester index.  Approval of a row is the only path by
    which money reaches MonthlyObligation.paid_amount.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase, UUIDString
from ledger_kernel.models.request_stamps import RequestStampsMixin


class PaymentRequest(RequestStampsMixin, TrackedBase):
    """A reviewer-gated claim of payment against one month."""

    __tablename__ = "payment_requests"

    __table_args__ = (
        CheckConstraint("requested_amount > 0", name="ck_payment_request_amount"),
        CheckConstraint("month_number >= 1", name="ck_payment_request_month"),
        CheckConstraint(
            "status IN ('NotApproved', 'Approved', 'Rejected')",
            name="ck_payment_request_status",
        ),
        Index("idx_payment_request_client", "client_id", "request_date"),
        Index("idx_payment_request_requester", "requested_by", "request_date"),
        Index("idx_payment_request_status", "status", "request_date"),
    )

    client_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("clients.id"), nullable=False,
    )
    month_number: Mapped[int] = mapped_column(Integer, nullable=False)
    requested_amount: Mapped[Decimal] = mapped_column(nullable=False)
    due_amount_snapshot: Mapped[Decimal] = mapped_column(nullable=False)
    paid_amount_snapshot: Mapped[Decimal] = mapped_column(nullable=False)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    request_date: Mapped[datetime] = mapped_column(nullable=False)
    requested_by: Mapped[str] = mapped_column(String(200), nullable=False)

    def __repr__(self) -> str:
        return (
            f"<PaymentRequest {self.id} client={self.client_id} "
            f"month={self.month_number} {self.requested_amount} {self.status}>"
        )
