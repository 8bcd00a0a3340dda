"""
ObligationService -- client installment schedules and payment posting.

Responsibility:
    Onboards clients with a funding plan, serves their monthly schedule
    (persisted rows overlaid on synthesized defaults), posts approved
    payments into a month, and keeps the client-level aggregates in step
    with the months.

Architecture position:
    Kernel > Services -- imperative shell around ledger_engines.schedule.
    Called by the client payment workflow on approval and by module
    services for onboarding and reminder views.

Invariants enforced:
    - Reads never insert.  ``compute_schedule`` and ``get_obligation``
      synthesize missing months in memory only.
    - Writes materialize first.  ``post_payment`` inserts the month row
      (with the synthesized defaults) before changing it.
    - ``Client.paid_amount == sum(month.paid_amount)`` and
      ``Client.pending_amount == total_obligation_amount - paid_amount``
      after every post, because ``post_payment`` recomputes the
      aggregates from the full month set before returning.
    - A plan edit re-derives total_obligation_amount from fee x tenure
      and leaves materialized months as they are, so their stored due
      amounts act as overrides of the new plan.

Failure modes:
    - ClientNotFoundError for an unknown client.
    - ValidationError for a non-positive / non-numeric amount or a month
      outside [1, tenure].
    - NoChangeError for a plan edit that changes nothing.

Audit relevance:
    CLIENT_ONBOARDED, CLIENT_DEACTIVATED, CLIENT_PLAN_UPDATED,
    PAYMENT_POSTED and AGGREGATES_RECOMPUTED events record every change
    to a schedule.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_engines.change_detection import detect_changes
from ledger_engines.schedule import (
    aggregate,
    apply_payment,
    build_schedule,
    synthesize_obligation,
    upcoming,
    validate_month,
    week_of_month,
)
from ledger_kernel.domain.approval import SYSTEM_ACTOR, Actor, parse_amount
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.schedule import (
    AllocationType,
    ClientAggregates,
    FundingPlan,
    ObligationSnapshot,
    UpcomingDue,
)
from ledger_kernel.exceptions import ClientNotFoundError, NoChangeError, ValidationError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.audit_event import AuditAction
from ledger_kernel.models.client import Client
from ledger_kernel.models.obligation import MonthlyObligation
from ledger_kernel.services.auditor_service import AuditorService
from ledger_kernel.services.base import BaseService

logger = get_logger("services.obligation")

CLIENT_EDITABLE_FIELDS = (
    "name",
    "email",
    "phone",
    "monthly_fee",
    "tenure_months",
    "start_date",
    "week_of_month",
)


class ObligationService(BaseService):
    """Schedules, postings and aggregates for installment clients."""

    def __init__(
        self,
        session: Session,
        auditor: AuditorService,
        clock: Clock | None = None,
    ):
        super().__init__(session, clock)
        self._auditor = auditor

    # ------------------------------------------------------------------
    # Clients
    # ------------------------------------------------------------------

    def get_client(self, client_id: UUID) -> Client:
        client = self.session.get(Client, client_id)
        if client is None:
            raise ClientNotFoundError(str(client_id))
        return client

    def onboard_client(
        self,
        *,
        name: str,
        monthly_fee: object,
        tenure_months: int,
        start_date: date,
        actor: Actor,
        email: str | None = None,
        phone: str | None = None,
        allocation_type: AllocationType = AllocationType.PRIMARY,
        assigned_to: str | None = None,
    ) -> Client:
        """Create a client and materialize every month of their schedule.

        Raises:
            ValidationError: Blank name, non-positive fee or tenure.
        """
        if not name or not name.strip():
            raise ValidationError("name", "client name is required", name)
        if isinstance(tenure_months, bool) or not isinstance(tenure_months, int):
            raise ValidationError("tenure_months", "must be an integer", tenure_months)

        plan = FundingPlan(
            monthly_fee=parse_amount(monthly_fee, "monthly_fee"),
            tenure_months=tenure_months,
            start_date=start_date,
        )

        client = Client(
            name=name.strip(),
            email=email,
            phone=phone,
            monthly_fee=plan.monthly_fee,
            tenure_months=plan.tenure_months,
            total_obligation_amount=plan.total_obligation,
            start_date=plan.start_date,
            allocation_type=AllocationType(allocation_type).value,
            assigned_to=assigned_to,
            week_of_month=week_of_month(plan.start_date),
            is_active=True,
            paid_amount=Decimal("0"),
            pending_amount=plan.total_obligation,
            payments_completed_count=0,
            payments_pending_count=plan.tenure_months,
            created_by=actor.name,
        )
        self.session.add(client)
        self.session.flush()

        for month in build_schedule(client_id=client.id, plan=plan):
            self.session.add(self._row_from_snapshot(month, actor))
        self.session.flush()

        self._auditor.record(
            "Client",
            client.id,
            AuditAction.CLIENT_ONBOARDED,
            actor,
            {
                "name": client.name,
                "monthly_fee": plan.monthly_fee,
                "tenure_months": plan.tenure_months,
                "total_obligation_amount": plan.total_obligation,
                "start_date": plan.start_date,
                "week_of_month": client.week_of_month,
            },
        )
        logger.info(
            "client_onboarded",
            extra={
                "client_id": str(client.id),
                "monthly_fee": str(plan.monthly_fee),
                "tenure_months": plan.tenure_months,
            },
        )
        return client

    def deactivate_client(self, client_id: UUID, actor: Actor) -> Client:
        """Stop accepting new requests for a client.  Rows are kept."""
        client = self.get_client(client_id)
        if not client.is_active:
            logger.info("client_already_inactive", extra={"client_id": str(client_id)})
            return client

        client.is_active = False
        client.updated_by = actor.name
        self.session.flush()

        self._auditor.record("Client", client.id, AuditAction.CLIENT_DEACTIVATED, actor)
        logger.info("client_deactivated", extra={"client_id": str(client_id)})
        return client

    def _coerce_plan_change(self, field: str, value: object) -> object:
        if field == "name":
            if not isinstance(value, str) or not value.strip():
                raise ValidationError("name", "client name is required", value)
            return value.strip()
        if field == "monthly_fee":
            return parse_amount(value, "monthly_fee")
        if field in ("tenure_months", "week_of_month"):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValidationError(field, "must be an integer", value)
            if field == "week_of_month" and not 1 <= value <= 6:
                raise ValidationError(field, "must be between 1 and 6", value)
            return value
        if field == "start_date":
            if not isinstance(value, date):
                raise ValidationError(field, "must be a date", value)
            return value
        return value.strip() if isinstance(value, str) else value

    def update_client_plan(self, client_id: UUID, actor: Actor, **changes: object) -> Client:
        """Edit a client's contact details and funding plan.

        The total obligation is re-derived from the new fee and tenure, and
        the aggregates are recomputed against it.  Months that already have
        rows keep their stored due amount and due date; only months not yet
        materialized follow the new plan.  Extending the tenure materializes
        the new months.

        Raises:
            ClientNotFoundError: Unknown client.
            ValidationError: Unknown field, bad value, or a tenure that
                would drop a month with payments on it.
            NoChangeError: Every proposed value equals the stored one.
        """
        client = self.get_client(client_id)

        unknown = sorted(set(changes) - set(CLIENT_EDITABLE_FIELDS))
        if unknown:
            raise ValidationError(unknown[0], "field is not editable", changes[unknown[0]])

        proposed = {f: self._coerce_plan_change(f, v) for f, v in changes.items()}
        current = {f: getattr(client, f) for f in proposed}
        diff = detect_changes(current, proposed)
        if not diff:
            raise NoChangeError("Client", str(client.id))

        updated = {c.field: c.new_value for c in diff}
        if "start_date" in updated and "week_of_month" not in proposed:
            updated["week_of_month"] = week_of_month(updated["start_date"])

        plan = FundingPlan(
            monthly_fee=updated.get("monthly_fee", client.monthly_fee),
            tenure_months=updated.get("tenure_months", client.tenure_months),
            start_date=updated.get("start_date", client.start_date),
        )
        stored = self._stored_rows(client.id)
        dropped_paid = sorted(
            n for n, row in stored.items()
            if n > plan.tenure_months and row.paid_amount > 0
        )
        if dropped_paid:
            raise ValidationError(
                "tenure_months",
                f"month {dropped_paid[-1]} already has payments",
                plan.tenure_months,
            )

        previous_total = client.total_obligation_amount
        for field, value in updated.items():
            setattr(client, field, value)
        client.total_obligation_amount = plan.total_obligation
        client.updated_by = actor.name

        for n in range(1, plan.tenure_months + 1):
            if n not in stored:
                self.session.add(
                    self._row_from_snapshot(synthesize_obligation(client.id, plan, n), actor)
                )
        self.session.flush()

        self._auditor.record(
            "Client",
            client.id,
            AuditAction.CLIENT_PLAN_UPDATED,
            actor,
            {
                "changes": {
                    c.field: {"old": c.old_value, "new": updated[c.field]} for c in diff
                },
                "total_before": previous_total,
                "total_after": plan.total_obligation,
            },
        )
        logger.info(
            "client_plan_updated",
            extra={
                "client_id": str(client.id),
                "fields": sorted(updated),
                "total_obligation_amount": str(plan.total_obligation),
            },
        )

        self.recompute_aggregates(client.id, actor)
        return client

    # ------------------------------------------------------------------
    # Schedule reads
    # ------------------------------------------------------------------

    def _stored_rows(self, client_id: UUID) -> dict[int, MonthlyObligation]:
        rows = self.session.execute(
            select(MonthlyObligation).where(MonthlyObligation.client_id == client_id)
        ).scalars()
        return {row.month_number: row for row in rows}

    def _stored_row(self, client_id: UUID, month_number: int) -> MonthlyObligation | None:
        return self.session.execute(
            select(MonthlyObligation).where(
                MonthlyObligation.client_id == client_id,
                MonthlyObligation.month_number == month_number,
            )
        ).scalar_one_or_none()

    def _schedule_for(self, client: Client) -> tuple[ObligationSnapshot, ...]:
        stored = {n: row.to_snapshot() for n, row in self._stored_rows(client.id).items()}
        return build_schedule(client_id=client.id, plan=client.to_plan(), stored=stored)

    def compute_schedule(self, client_id: UUID) -> tuple[ObligationSnapshot, ...]:
        """All ``tenure_months`` months in order.  Never persists anything."""
        return self._schedule_for(self.get_client(client_id))

    def get_obligation(self, client_id: UUID, month_number: int) -> ObligationSnapshot:
        """One month, persisted or synthesized."""
        client = self.get_client(client_id)
        validate_month(month_number, client.tenure_months)
        row = self._stored_row(client.id, month_number)
        if row is not None:
            return row.to_snapshot()
        return synthesize_obligation(client.id, client.to_plan(), month_number)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _row_from_snapshot(self, snapshot: ObligationSnapshot, actor: Actor) -> MonthlyObligation:
        return MonthlyObligation(
            client_id=snapshot.client_id,
            month_number=snapshot.month_number,
            due_date=snapshot.due_date,
            due_amount=snapshot.due_amount,
            paid_amount=snapshot.paid_amount,
            status=snapshot.status.value,
            reminder_sent=snapshot.reminder_sent,
            created_by=actor.name,
        )

    def _materialize(self, client: Client, month_number: int, actor: Actor) -> MonthlyObligation:
        row = self._stored_row(client.id, month_number)
        if row is not None:
            return row
        row = self._row_from_snapshot(
            synthesize_obligation(client.id, client.to_plan(), month_number), actor,
        )
        self.session.add(row)
        self.session.flush()
        logger.debug(
            "obligation_materialized",
            extra={"client_id": str(client.id), "month_number": month_number},
        )
        return row

    def post_payment(
        self,
        client_id: UUID,
        month_number: int,
        amount: object,
        actor: Actor,
    ) -> ObligationSnapshot:
        """Add ``amount`` to one month and recompute the client aggregates.

        Postconditions:
            - The month row exists, its paid_amount grew by ``amount`` and
              its status is re-derived (paid / partial / pending).
            - recompute_aggregates() has run once for the client.

        Raises:
            ClientNotFoundError: Unknown client.
            ValidationError: Bad amount or month out of range.
        """
        client = self.get_client(client_id)
        value = parse_amount(amount)
        validate_month(month_number, client.tenure_months)

        row = self._materialize(client, month_number, actor)
        before = row.to_snapshot()
        after = apply_payment(before, value)

        row.paid_amount = after.paid_amount
        row.status = after.status.value
        row.last_payment_at = self.clock.now()
        row.last_payment_by = actor.name
        row.updated_by = actor.name
        self.session.flush()

        self._auditor.record(
            "MonthlyObligation",
            row.id,
            AuditAction.PAYMENT_POSTED,
            actor,
            {
                "client_id": client.id,
                "month_number": month_number,
                "amount": value,
                "paid_before": before.paid_amount,
                "paid_after": after.paid_amount,
                "status_before": before.status,
                "status_after": after.status,
            },
        )
        logger.info(
            "payment_posted",
            extra={
                "client_id": str(client.id),
                "month_number": month_number,
                "amount": str(value),
                "status": after.status.value,
            },
        )

        self.recompute_aggregates(client.id, actor)
        return after

    def recompute_aggregates(
        self,
        client_id: UUID,
        actor: Actor = SYSTEM_ACTOR,
    ) -> ClientAggregates:
        """Rebuild the client's paid / pending totals and counts from its months."""
        client = self.get_client(client_id)
        totals = aggregate(
            client.total_obligation_amount,
            client.tenure_months,
            self._schedule_for(client),
        )

        client.paid_amount = totals.paid_amount
        client.pending_amount = totals.pending_amount
        client.payments_completed_count = totals.payments_completed
        client.payments_pending_count = totals.payments_pending
        client.updated_by = actor.name
        self.session.flush()

        self._auditor.record(
            "Client",
            client.id,
            AuditAction.AGGREGATES_RECOMPUTED,
            actor,
            {
                "paid_amount": totals.paid_amount,
                "pending_amount": totals.pending_amount,
                "payments_completed": totals.payments_completed,
                "payments_pending": totals.payments_pending,
            },
        )
        logger.debug(
            "aggregates_recomputed",
            extra={
                "client_id": str(client.id),
                "paid_amount": str(totals.paid_amount),
                "pending_amount": str(totals.pending_amount),
            },
        )
        return totals

    # ------------------------------------------------------------------
    # Reminder view
    # ------------------------------------------------------------------

    def upcoming_dues(
        self,
        as_of: date | None = None,
        within_days: int = 7,
    ) -> list[UpcomingDue]:
        """Unpaid months of active clients due within ``within_days`` of ``as_of``.

        Ordered by due date, then client name, then month.
        """
        as_of = as_of or self.clock.today()
        clients = self.session.execute(
            select(Client).where(Client.is_active.is_(True)).order_by(Client.name)
        ).scalars()

        dues: list[UpcomingDue] = []
        for client in clients:
            for month in upcoming(self._schedule_for(client), as_of, within_days):
                dues.append(
                    UpcomingDue(
                        client_id=client.id,
                        client_name=client.name,
                        assigned_to=client.assigned_to,
                        obligation=month,
                    )
                )
        dues.sort(key=lambda d: (d.obligation.due_date, d.client_name, d.obligation.month_number))
        return dues
