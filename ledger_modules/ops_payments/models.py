"""
Ops payment module value objects.

Filter criteria for the approval screen and the totals shown above it.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from ledger_kernel.domain.approval import ExpenseSource, ExpenseType, RequestState
from ledger_kernel.exceptions import ValidationError


class DateWindow(str, Enum):
    """Rolling window on ``submitted_at``."""

    ALL = "all"
    LAST_7_DAYS = "last7days"
    LAST_30_DAYS = "last30days"

    @property
    def days(self) -> int | None:
        return {DateWindow.LAST_7_DAYS: 7, DateWindow.LAST_30_DAYS: 30}.get(self)


@dataclass(frozen=True)
class CalendarMonth:
    """A calendar month, e.g. CalendarMonth(2024, 3)."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValidationError("month", "must be between 1 and 12", self.month)


@dataclass(frozen=True)
class OpsPaymentFilter:
    """All criteria are optional and combine with AND.

    ``search`` is matched case-insensitively against name, submitter and
    expense type, and as a plain substring against the phone number.
    """

    search: str = ""
    source: ExpenseSource | None = None
    status: RequestState | None = None
    submitted_by: str | None = None
    expense_type: ExpenseType | None = None
    window: DateWindow = DateWindow.ALL
    month: CalendarMonth | None = None


@dataclass(frozen=True)
class OpsPaymentTotals:
    """Counts per state and the amount of everything not rejected."""

    count: int
    pending: int
    approved: int
    rejected: int
    total_amount: Decimal
