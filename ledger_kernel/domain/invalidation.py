"""
Change-tracking domain types (``ledger_kernel.domain.invalidation``).

Responsibility
--------------
Describe which columns of a tracked record form its "notification sent"
flag, and what a field-level edit changed.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class NotificationFlag:
    """Column names of a record's sent flag and its actor/time stamps."""

    flag: str
    sent_by: str
    sent_at: str

    @property
    def columns(self) -> tuple[str, str, str]:
        return (self.flag, self.sent_by, self.sent_at)


PAYMENT_NOTIFICATION = NotificationFlag(
    flag="notification_sent",
    sent_by="notification_sent_by",
    sent_at="notification_sent_at",
)

CASE_EMAIL = NotificationFlag(
    flag="email_sent",
    sent_by="email_sent_by",
    sent_at="email_sent_at",
)


@dataclass(frozen=True)
class FieldChange:
    """One field whose proposed value differs from the stored value."""

    field: str
    old_value: Any
    new_value: Any


@dataclass(frozen=True)
class ChangeSet:
    """Result of applying an edit through the invalidation wrapper."""

    entity_type: str
    entity_id: str
    changes: tuple[FieldChange, ...]
    notification_cleared: bool

    @property
    def changed_fields(self) -> tuple[str, ...]:
        return tuple(c.field for c in self.changes)
