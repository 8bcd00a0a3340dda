"""
Module: ledger_kernel.models.obligation
Responsibility: ORM persistence for one month of a client's schedule.
Architecture position: Kernel > Models.

Invariants enforced:
    - UNIQUE(client_id, month_number): one row per month.
    - month_number >= 1 (check constraint; the upper bound is the client's
      tenure and is enforced by ObligationService).
    - Rows are only created when a write needs them.  Reads of a missing
      month synthesize the default without inserting.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString
from ledger_kernel.domain.schedule import ObligationSnapshot, ObligationStatus

if TYPE_CHECKING:
    from ledger_kernel.models.client import Client


class MonthlyObligation(TrackedBase):
    """A persisted month: due amount, paid so far, and status."""

    __tablename__ = "monthly_obligations"

    __table_args__ = (
        UniqueConstraint("client_id", "month_number", name="uq_obligation_client_month"),
        CheckConstraint("month_number >= 1", name="ck_obligation_month_positive"),
        CheckConstraint(
            "status IN ('pending', 'partial', 'paid')",
            name="ck_obligation_status",
        ),
        Index("idx_obligation_due", "due_date", "status"),
    )

    client_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("clients.id"), nullable=False,
    )
    month_number: Mapped[int] = mapped_column(Integer, nullable=False)
    due_date: Mapped[date] = mapped_column(nullable=False)
    due_amount: Mapped[Decimal] = mapped_column(nullable=False)
    paid_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ObligationStatus.PENDING.value,
    )
    reminder_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_payment_at: Mapped[datetime | None] = mapped_column(nullable=True)
    last_payment_by: Mapped[str | None] = mapped_column(String(200), nullable=True)

    client: Mapped["Client"] = relationship("Client", back_populates="obligations")

    def __repr__(self) -> str:
        return (
            f"<MonthlyObligation client={self.client_id} month={self.month_number} "
            f"{self.paid_amount}/{self.due_amount} {self.status}>"
        )

    def to_snapshot(self) -> ObligationSnapshot:
        return ObligationSnapshot(
            client_id=self.client_id,
            month_number=self.month_number,
            due_date=self.due_date,
            due_amount=self.due_amount,
            paid_amount=self.paid_amount,
            status=ObligationStatus(self.status),
            reminder_sent=self.reminder_sent,
            persisted=True,
        )
