"""
Module: ledger_kernel.models.ops_payment
Responsibility: ORM persistence for operational expense requests (client
    visits, arbitration, fees, miscellaneous) awaiting approval.
Architecture position: Kernel > Models.

Invariants enforced:
    - amount > 0.
    - status is one of pending / approved / rejected.
    - Approval has no effect on any client schedule.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.models.request_stamps import RequestStampsMixin


class OpsPaymentRequest(RequestStampsMixin, TrackedBase):
    """An operational expense submitted for approval."""

    __tablename__ = "ops_payment_requests"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_ops_payment_amount"),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_ops_payment_status",
        ),
        Index("idx_ops_payment_submitted", "submitted_at"),
        Index("idx_ops_payment_submitter", "submitted_by"),
        Index("idx_ops_payment_status", "status"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone_number: Mapped[str] = mapped_column(String(30), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    source: Mapped[str] = mapped_column(String(50), nullable=False)
    expense_type: Mapped[str] = mapped_column("type", String(50), nullable=False)
    miscellaneous_details: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_by: Mapped[str] = mapped_column(String(200), nullable=False)
    submitted_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<OpsPaymentRequest {self.id} {self.expense_type} {self.amount} {self.status}>"
