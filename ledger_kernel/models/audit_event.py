"""
Module: ledger_kernel.models.audit_event
Responsibility: ORM persistence for the tamper-evident audit hash chain.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Audit rows are append-only.  Nothing in the ledger updates or
      deletes them.
    - hash = H(entity_type | entity_id | action | payload_hash | prev_hash).
      Validated by AuditorService.validate_chain().
    - seq is strictly increasing.

Audit relevance:
    AuditEvent IS the audit trail.  Every ledger mutation (submission,
    decision, posting, edit, deletion, registry change) produces one.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, BigInteger, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base


class AuditAction(str, Enum):
    """Types of auditable actions."""

    # Client lifecycle
    CLIENT_ONBOARDED = "client_onboarded"
    CLIENT_DEACTIVATED = "client_deactivated"
    CLIENT_PLAN_UPDATED = "client_plan_updated"

    # Schedule
    PAYMENT_POSTED = "payment_posted"
    AGGREGATES_RECOMPUTED = "aggregates_recomputed"

    # Request lifecycle
    REQUEST_SUBMITTED = "request_submitted"
    REQUEST_APPROVED = "request_approved"
    REQUEST_REJECTED = "request_rejected"
    REQUEST_DELETED = "request_deleted"

    # Tracked record edits
    RECORD_EDITED = "record_edited"
    NOTIFICATION_SENT = "notification_sent"

    # Case records
    CASE_CREATED = "case_created"

    # Counterparty registry
    COUNTERPARTY_ADDED = "counterparty_added"
    COUNTERPARTY_UPDATED = "counterparty_updated"
    COUNTERPARTY_DELETED = "counterparty_deleted"


class AuditEvent(Base):
    """
    Audit event with hash chain for tamper evidence.

    Guarantees:
        - seq is unique and increasing.
        - prev_hash is None only for the genesis event.

    Non-goals:
        - Does NOT compute its own hash; AuditorService does.
    """

    __tablename__ = "audit_events"

    __table_args__ = (
        Index("idx_audit_entity", "entity_type", "entity_id"),
        Index("idx_audit_action", "action"),
        Index("idx_audit_occurred", "occurred_at"),
    )

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    actor: Mapped[str] = mapped_column(String(200), nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(nullable=False)
    payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    hash: Mapped[str] = mapped_column(String(64), nullable=False)

    def __repr__(self) -> str:
        return f"<AuditEvent #{self.seq} {self.action} on {self.entity_type}:{self.entity_id}>"

    @property
    def is_genesis(self) -> bool:
        return self.prev_hash is None
