"""
Module: ledger_kernel.models.case_record
Responsibility: ORM persistence for arbitration case records whose
    hearing email may already have gone out.
Architecture position: Kernel > Models.

Invariants enforced:
    - email_sent_by / email_sent_at are set iff email_sent is true.
    - Any real edit clears the email flag (InvalidationService), so a
      changed hearing is never mistaken for one already communicated.
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import JSON, Boolean, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase

CASE_MUTABLE_FIELDS: tuple[str, ...] = (
    "client_name",
    "bank_name",
    "case_type",
    "hearing_date",
    "hearing_time",
    "status",
    "meeting_link",
    "access_password",
    "vakalatnama",
    "online_link_letter",
    "team_emails",
    "remarks",
)

CASE_FLAG_FIELDS: tuple[str, ...] = ("vakalatnama", "online_link_letter")

DEFAULT_CASE_STATUS = "In progress"


class CaseRecord(TrackedBase):
    """An arbitration case and its hearing details."""

    __tablename__ = "case_records"

    __table_args__ = (
        Index("idx_case_hearing", "hearing_date"),
        Index("idx_case_status", "status"),
    )

    client_name: Mapped[str] = mapped_column(String(200), nullable=False)
    bank_name: Mapped[str] = mapped_column(String(200), nullable=False)
    case_type: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    hearing_date: Mapped[date | None] = mapped_column(nullable=True)
    hearing_time: Mapped[str] = mapped_column(String(10), nullable=False, default="")
    status: Mapped[str] = mapped_column(String(50), nullable=False, default=DEFAULT_CASE_STATUS)
    meeting_link: Mapped[str] = mapped_column(Text, nullable=False, default="")
    access_password: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    vakalatnama: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    online_link_letter: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    team_emails: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    remarks: Mapped[str] = mapped_column(Text, nullable=False, default="")

    email_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    email_sent_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    email_sent_at: Mapped[datetime | None] = mapped_column(nullable=True)

    last_modified_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    last_modified_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<CaseRecord {self.client_name} v {self.bank_name} on {self.hearing_date}>"
