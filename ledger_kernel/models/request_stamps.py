"""
Module: ledger_kernel.models.request_stamps
Responsibility: Columns shared by every request that goes through the
    approval workflow: stored status, decision stamps, edit stamps, the
    notification flag, and last-modified stamps.
Architecture position: Kernel > Models.  Plain mixin, no table of its own.

Invariants enforced:
    - At most one of (approved_by, rejected_by) is set.  Enforced by
      ApprovalWorkflow, which refuses any transition out of a terminal
      status.
    - notification_sent_by / notification_sent_at are set iff
      notification_sent is true.  Enforced by InvalidationService and
      the module services that stamp the flag.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column


class RequestStampsMixin:
    """Workflow bookkeeping columns for approvable requests."""

    status: Mapped[str] = mapped_column(String(20), nullable=False)

    approved_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejected_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(nullable=True)
    edited_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    edited_at: Mapped[datetime | None] = mapped_column(nullable=True)

    notification_sent: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    notification_sent_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    notification_sent_at: Mapped[datetime | None] = mapped_column(nullable=True)

    last_modified_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    last_modified_at: Mapped[datetime | None] = mapped_column(nullable=True)
