"""
AuditorService -- tamper-evident audit trail and hash chain maintenance.

Responsibility:
    Creates append-only, hash-chained audit events for every ledger
    mutation.  Provides chain validation for tamper detection and trace
    queries for review.

Architecture position:
    Kernel > Services -- imperative shell, called by every mutating
    kernel service.

Invariants enforced:
    - Chain integrity: ``hash = H(entity_type | entity_id | action |
      payload_hash | prev_hash)``.  Every event links to its predecessor.
    - Payloads are stored in canonical JSON form, so re-hashing a loaded
      payload reproduces ``payload_hash``.
    - Append-only: this service never updates or deletes an event.

Failure modes:
    - AuditChainBrokenError from validate_chain() on any hash or link
      mismatch.
    - IntegrityError on a concurrent insert race for the next seq (the
      unique constraint on seq makes the loser fail rather than fork
      the chain).

Audit relevance:
    This IS the audit service.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ledger_kernel.domain.approval import Actor
from ledger_kernel.domain.clock import Clock
from ledger_kernel.exceptions import AuditChainBrokenError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.audit_event import AuditAction, AuditEvent
from ledger_kernel.services.base import BaseService
from ledger_kernel.utils.hashing import hash_audit_event, hash_payload, to_json_safe

logger = get_logger("services.auditor")


@dataclass(frozen=True)
class AuditTraceEntry:
    """A single entry in an audit trace."""

    seq: int
    action: str
    occurred_at: datetime
    actor: str
    payload: dict[str, Any]
    hash: str


@dataclass(frozen=True)
class AuditTrace:
    """All audit events of one entity in chronological order."""

    entity_type: str
    entity_id: str
    entries: tuple[AuditTraceEntry, ...]

    @property
    def is_empty(self) -> bool:
        return len(self.entries) == 0

    @property
    def actions(self) -> tuple[str, ...]:
        return tuple(e.action for e in self.entries)

    @property
    def last_action(self) -> str | None:
        return self.entries[-1].action if self.entries else None


class AuditorService(BaseService):
    """
    Creates and validates tamper-evident audit events.

    Non-goals:
        - Does NOT call ``session.commit()``; the caller controls boundaries.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)

    def _last_event(self) -> AuditEvent | None:
        return self.session.execute(
            select(AuditEvent).order_by(AuditEvent.seq.desc()).limit(1)
        ).scalar_one_or_none()

    def record(
        self,
        entity_type: str,
        entity_id: object,
        action: AuditAction,
        actor: Actor,
        payload: dict[str, Any] | None = None,
    ) -> AuditEvent:
        """
        Append one audit event linked to the current chain head.

        Postconditions:
            - The event is flushed with seq = previous seq + 1 and a
              valid chain link.
        """
        last = self._last_event()
        seq = (last.seq if last else 0) + 1
        prev_hash = last.hash if last else None

        payload_data = to_json_safe(payload or {})
        payload_hash = hash_payload(payload_data)
        event_hash = hash_audit_event(
            entity_type=entity_type,
            entity_id=str(entity_id),
            action=action.value,
            payload_hash=payload_hash,
            prev_hash=prev_hash,
        )

        event = AuditEvent(
            seq=seq,
            entity_type=entity_type,
            entity_id=str(entity_id),
            action=action.value,
            actor=actor.name,
            occurred_at=self.clock.now(),
            payload=payload_data,
            payload_hash=payload_hash,
            prev_hash=prev_hash,
            hash=event_hash,
        )
        self.session.add(event)
        self.session.flush()

        logger.debug(
            "audit_event_created",
            extra={
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "action": action.value,
                "seq": seq,
            },
        )
        return event

    def validate_chain(self) -> bool:
        """
        Validate the entire audit chain.

        Raises:
            AuditChainBrokenError: At the first event whose payload hash,
                own hash, or link to its predecessor does not check out.
        """
        events = self.session.execute(
            select(AuditEvent).order_by(AuditEvent.seq)
        ).scalars().all()

        prev: AuditEvent | None = None
        for event in events:
            expected_prev = prev.hash if prev else None
            if event.prev_hash != expected_prev:
                logger.critical("audit_chain_broken", extra={"seq": event.seq})
                raise AuditChainBrokenError(
                    str(event.id), expected_prev or "None", event.prev_hash or "None",
                )

            payload_hash = hash_payload(event.payload or {})
            if payload_hash != event.payload_hash:
                logger.critical("audit_chain_broken", extra={"seq": event.seq})
                raise AuditChainBrokenError(str(event.id), payload_hash, event.payload_hash)

            expected_hash = hash_audit_event(
                entity_type=event.entity_type,
                entity_id=event.entity_id,
                action=event.action,
                payload_hash=event.payload_hash,
                prev_hash=event.prev_hash,
            )
            if event.hash != expected_hash:
                logger.critical("audit_chain_broken", extra={"seq": event.seq})
                raise AuditChainBrokenError(str(event.id), expected_hash, event.hash)
            prev = event

        logger.info("audit_chain_valid", extra={"event_count": len(events)})
        return True

    def get_trace(self, entity_type: str, entity_id: object) -> AuditTrace:
        """All events recorded against one entity."""
        events = self.session.execute(
            select(AuditEvent)
            .where(
                AuditEvent.entity_type == entity_type,
                AuditEvent.entity_id == str(entity_id),
            )
            .order_by(AuditEvent.seq)
        ).scalars().all()
        return AuditTrace(
            entity_type=entity_type,
            entity_id=str(entity_id),
            entries=tuple(
                AuditTraceEntry(
                    seq=e.seq,
                    action=e.action,
                    occurred_at=e.occurred_at,
                    actor=e.actor,
                    payload=e.payload or {},
                    hash=e.hash,
                )
                for e in events
            ),
        )

    def count(self) -> int:
        return self.session.execute(select(func.count(AuditEvent.id))).scalar_one()
