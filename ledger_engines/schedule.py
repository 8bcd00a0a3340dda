"""
ledger_engines.schedule -- Pure installment schedule calculations.

Responsibility:
    Derive a client's monthly obligations from a funding plan, overlay
    stored rows on the synthesized defaults, derive month status from
    paid vs due, apply a payment to one month, and roll the months up
    into client-level aggregates.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import ledger_kernel/domain/ types.

Invariants enforced:
    - Month N is due on start_date + (N - 1) calendar months, clamped to
      the last day of shorter months (Jan 31 -> Feb 29 -> Mar 31).
    - status = paid if paid >= due, partial if 0 < paid < due, else pending.
    - Aggregates are always recomputed from the full month set, never
      incremented.

Failure modes:
    - ValidationError for a month number outside [1, tenure].
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from datetime import date
from decimal import Decimal
from uuid import UUID

from dateutil.relativedelta import relativedelta

from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.schedule import (
    ClientAggregates,
    FundingPlan,
    ObligationSnapshot,
    ObligationStatus,
)
from ledger_kernel.exceptions import ValidationError

ZERO = Decimal("0")


def due_date_for(start_date: date, month_number: int) -> date:
    """Due date of 1-based ``month_number`` for a schedule starting on ``start_date``."""
    return start_date + relativedelta(months=month_number - 1)


def week_of_month(day: date) -> int:
    """1-based week of the month, weeks starting on Sunday.

    The first partial week counts as week 1, so the 1st is always week 1
    and a month can span up to six weeks.
    """
    first = day.replace(day=1)
    offset = (first.weekday() + 1) % 7  # Sunday = 0
    return math.ceil((day.day + offset) / 7)


def validate_month(month_number: int, tenure_months: int) -> None:
    if isinstance(month_number, bool) or not isinstance(month_number, int):
        raise ValidationError("month_number", "must be an integer", month_number)
    if not 1 <= month_number <= tenure_months:
        raise ValidationError(
            "month_number",
            f"must be between 1 and {tenure_months}",
            month_number,
        )


def derive_status(paid_amount: Decimal, due_amount: Decimal) -> ObligationStatus:
    """Status of a month from its paid and due amounts."""
    if paid_amount >= due_amount and paid_amount > ZERO:
        return ObligationStatus.PAID
    if paid_amount > ZERO:
        return ObligationStatus.PARTIAL
    return ObligationStatus.PENDING


def synthesize_obligation(
    client_id: UUID,
    plan: FundingPlan,
    month_number: int,
) -> ObligationSnapshot:
    """The default month used when no row is stored."""
    validate_month(month_number, plan.tenure_months)
    return ObligationSnapshot(
        client_id=client_id,
        month_number=month_number,
        due_date=due_date_for(plan.start_date, month_number),
        due_amount=plan.monthly_fee,
        paid_amount=ZERO,
        status=ObligationStatus.PENDING,
        reminder_sent=False,
        persisted=False,
    )


@traced_engine("schedule", "1.0", fingerprint_fields=("client_id", "plan"))
def build_schedule(
    *,
    client_id: UUID,
    plan: FundingPlan,
    stored: Mapping[int, ObligationSnapshot] | None = None,
) -> tuple[ObligationSnapshot, ...]:
    """Produce ``plan.tenure_months`` ordered months.

    Stored rows win over synthesized defaults month by month.  Stored
    rows outside the tenure are ignored.

    Args:
        client_id: Owner of the schedule.
        plan: Fee, tenure and start date.
        stored: Persisted months keyed by month number.

    Returns:
        Months 1..tenure in order.
    """
    stored = stored or {}
    return tuple(
        stored.get(n) or synthesize_obligation(client_id, plan, n)
        for n in range(1, plan.tenure_months + 1)
    )


def apply_payment(
    obligation: ObligationSnapshot,
    amount: Decimal,
) -> ObligationSnapshot:
    """Return the month after adding ``amount`` to its paid total.

    Overpayment is allowed; the month is simply paid.
    """
    if amount <= ZERO:
        raise ValidationError("amount", "must be greater than zero", amount)
    paid = obligation.paid_amount + amount
    return ObligationSnapshot(
        client_id=obligation.client_id,
        month_number=obligation.month_number,
        due_date=obligation.due_date,
        due_amount=obligation.due_amount,
        paid_amount=paid,
        status=derive_status(paid, obligation.due_amount),
        reminder_sent=obligation.reminder_sent,
        persisted=True,
    )


def aggregate(
    total_obligation: Decimal,
    tenure_months: int,
    months: Iterable[ObligationSnapshot],
) -> ClientAggregates:
    """Client totals from the full set of months.

    ``pending_amount`` is ``total_obligation - paid`` and goes negative
    when the client has overpaid.
    """
    paid = ZERO
    completed = 0
    for month in months:
        paid += month.paid_amount
        if month.status == ObligationStatus.PAID:
            completed += 1
    return ClientAggregates(
        paid_amount=paid,
        pending_amount=total_obligation - paid,
        payments_completed=completed,
        payments_pending=tenure_months - completed,
    )


def upcoming(
    months: Iterable[ObligationSnapshot],
    as_of: date,
    within_days: int,
) -> list[ObligationSnapshot]:
    """Unpaid months due in ``[as_of, as_of + within_days]``."""
    horizon = as_of + relativedelta(days=within_days)
    return [
        m for m in months
        if m.status != ObligationStatus.PAID and as_of <= m.due_date <= horizon
    ]
