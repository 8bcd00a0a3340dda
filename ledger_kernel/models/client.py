"""
Module: ledger_kernel.models.client
Responsibility: ORM persistence for clients and their funding plan, plus
    the derived payment aggregates kept on the client row.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ value objects only.

Invariants enforced:
    - monthly_fee > 0 and tenure_months >= 1 (DB check constraints).
    - total_obligation_amount == monthly_fee * tenure_months, set at
      onboarding and re-derived by ObligationService.update_client_plan().
    - paid_amount, pending_amount, payments_completed_count and
      payments_pending_count are written only by
      ObligationService.recompute_aggregates().
    - Clients are never deleted, only deactivated.

Audit relevance:
    Onboarding, plan edits, deactivation and every aggregate recompute
    produce audit events through AuditorService.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, CheckConstraint, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.domain.schedule import AllocationType, FundingPlan

if TYPE_CHECKING:
    from ledger_kernel.models.obligation import MonthlyObligation


class Client(TrackedBase):
    """A client paying a fixed monthly fee over a fixed tenure."""

    __tablename__ = "clients"

    __table_args__ = (
        CheckConstraint("monthly_fee > 0", name="ck_clients_fee_positive"),
        CheckConstraint("tenure_months >= 1", name="ck_clients_tenure_positive"),
        CheckConstraint(
            "allocation_type IN ('primary', 'secondary')",
            name="ck_clients_allocation_type",
        ),
        Index("idx_clients_assigned", "assigned_to"),
        Index("idx_clients_week", "week_of_month"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str | None] = mapped_column(String(254), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)

    monthly_fee: Mapped[Decimal] = mapped_column(nullable=False)
    tenure_months: Mapped[int] = mapped_column(Integer, nullable=False)
    total_obligation_amount: Mapped[Decimal] = mapped_column(nullable=False)
    start_date: Mapped[date] = mapped_column(nullable=False)

    allocation_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AllocationType.PRIMARY.value,
    )
    assigned_to: Mapped[str | None] = mapped_column(String(200), nullable=True)
    week_of_month: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    paid_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    pending_amount: Mapped[Decimal] = mapped_column(nullable=False)
    payments_completed_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    payments_pending_count: Mapped[int] = mapped_column(Integer, nullable=False)

    obligations: Mapped[list["MonthlyObligation"]] = relationship(
        "MonthlyObligation",
        back_populates="client",
        order_by="MonthlyObligation.month_number",
        lazy="select",
    )

    def __repr__(self) -> str:
        return f"<Client {self.name} fee={self.monthly_fee} x {self.tenure_months}>"

    def to_plan(self) -> FundingPlan:
        return FundingPlan(
            monthly_fee=self.monthly_fee,
            tenure_months=self.tenure_months,
            start_date=self.start_date,
        )
