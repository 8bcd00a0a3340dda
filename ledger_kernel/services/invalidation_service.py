"""
InvalidationService -- field-level edits of already-processed records.

Responsibility:
    Single wrapper every edit of a tracked record goes through (payment
    requests, ops requests, case records).  Compares each proposed field
    with the stored value, applies only the fields that differ, clears
    the record's "notification sent" flag and its stamps, stamps
    last-modified, and audits which fields changed.

Architecture position:
    Kernel > Services.  Delegates the comparison to
    ledger_engines.change_detection.  The record type only has to name
    its flag columns through a NotificationFlag.

Invariants enforced:
    - An edit with no differing field raises NoChangeError and leaves the
      record (flag included) untouched.
    - Any differing field clears flag, flag-by and flag-at together.
    - Only changed fields are written.

Failure modes:
    - NoChangeError when nothing differs.
    - ValidationError when a proposed field is not a known mutable field.

Audit relevance:
    RECORD_EDITED events carry the changed field names with old and new
    values and whether a sent notification was invalidated.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping
from typing import Any

from sqlalchemy.orm import Session

from ledger_engines.change_detection import detect_changes
from ledger_kernel.domain.approval import Actor
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.invalidation import ChangeSet, NotificationFlag
from ledger_kernel.exceptions import NoChangeError, ValidationError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.audit_event import AuditAction
from ledger_kernel.services.auditor_service import AuditorService
from ledger_kernel.services.base import BaseService

logger = get_logger("services.invalidation")


class InvalidationService(BaseService):
    """Applies edits and invalidates dependent notification flags."""

    def __init__(
        self,
        session: Session,
        auditor: AuditorService,
        clock: Clock | None = None,
    ):
        super().__init__(session, clock)
        self._auditor = auditor

    def apply_edit(
        self,
        record: Any,
        *,
        entity_type: str,
        changes: Mapping[str, Any],
        editor: Actor,
        flag: NotificationFlag,
        mutable_fields: Collection[str],
        extra_stamps: Mapping[str, Any] | None = None,
    ) -> ChangeSet:
        """Apply ``changes`` to ``record`` if any of them differ.

        Args:
            record: ORM instance being edited.
            entity_type: Audit entity name ("PaymentRequest", "CaseRecord").
            changes: Proposed values keyed by attribute name.
            editor: Who is editing.
            flag: Columns that make up the record's sent flag.
            mutable_fields: Attributes an edit may touch.
            extra_stamps: Additional columns written only when something
                changed (e.g. edited_by / edited_at).

        Returns:
            The ChangeSet that was applied.

        Raises:
            ValidationError: ``changes`` names a field outside ``mutable_fields``
                or one of the flag columns.
            NoChangeError: Every proposed value equals the stored one.
        """
        unknown = sorted(set(changes) - (set(mutable_fields) - set(flag.columns)))
        if unknown:
            raise ValidationError("changes", f"fields not editable: {', '.join(unknown)}", unknown)

        current = {name: getattr(record, name) for name in changes}
        diff = detect_changes(current, changes)
        if not diff:
            logger.info(
                "edit_rejected_no_change",
                extra={"entity_type": entity_type, "entity_id": str(record.id)},
            )
            raise NoChangeError(entity_type, str(record.id))

        for change in diff:
            value = change.new_value
            if isinstance(value, (tuple, set, frozenset)):
                value = list(value)
            setattr(record, change.field, value)

        was_sent = bool(getattr(record, flag.flag))
        for column, cleared in zip(flag.columns, (False, None, None)):
            setattr(record, column, cleared)

        now = self.clock.now()
        record.last_modified_by = editor.name
        record.last_modified_at = now
        record.updated_by = editor.name
        for column, value in (extra_stamps or {}).items():
            setattr(record, column, value)
        self.session.flush()

        change_set = ChangeSet(
            entity_type=entity_type,
            entity_id=str(record.id),
            changes=diff,
            notification_cleared=was_sent,
        )

        self._auditor.record(
            entity_type,
            record.id,
            AuditAction.RECORD_EDITED,
            editor,
            {
                "changed_fields": list(change_set.changed_fields),
                "changes": {
                    c.field: {"old": c.old_value, "new": c.new_value} for c in diff
                },
                "notification_cleared": was_sent,
            },
        )
        logger.info(
            "record_edited",
            extra={
                "entity_type": entity_type,
                "entity_id": str(record.id),
                "changed_fields": list(change_set.changed_fields),
                "notification_cleared": was_sent,
            },
        )
        return change_set

    def mark_sent(
        self,
        record: Any,
        *,
        entity_type: str,
        flag: NotificationFlag,
        actor: Actor,
    ) -> None:
        """Set the record's sent flag with actor and time stamps."""
        now = self.clock.now()
        setattr(record, flag.flag, True)
        setattr(record, flag.sent_by, actor.name)
        setattr(record, flag.sent_at, now)
        self.session.flush()

        self._auditor.record(
            entity_type,
            record.id,
            AuditAction.NOTIFICATION_SENT,
            actor,
            {"flag": flag.flag},
        )
        logger.info(
            "notification_flag_set",
            extra={"entity_type": entity_type, "entity_id": str(record.id), "flag": flag.flag},
        )
