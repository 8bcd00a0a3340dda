"""
Client Payments Module Service (``ledger_modules.client_payments.service``).

Responsibility
--------------
Orchestrates the client installment ledger: onboarding, schedules,
payment requests (submit / approve / reject / edit / delete), direct
postings, reminder views and payment history.  Delegates schedule
arithmetic to ``ledger_engines.schedule`` through ``ObligationService``
and the request lifecycle to the generic ``ApprovalWorkflow``.

Architecture position
---------------------
**Modules layer** -- thin glue.  ``ClientPaymentService`` is the sole
public entry point for client payments and owns every transaction
boundary: kernel services only flush.

Invariants enforced
-------------------
* Each public mutating method commits on success and rolls back and
  re-raises on failure.
* Approval, posting, aggregate recompute and their audit events commit
  together or not at all.
* Notification dispatch happens after the commit.  Its failure never
  undoes the approval; it comes back as ``ApprovalOutcome.notification_message``.

Failure modes
-------------
* ``ValidationError`` -- bad amount, month out of range, inactive client.
* ``ClientNotFoundError`` / ``RequestNotFoundError`` -- unknown ids.
* ``StateConflictError`` -- approve / reject of a decided request.
* ``NoChangeError`` -- an edit that changes nothing.

Audit relevance
---------------
Every mutation is recorded by ``AuditorService`` in the same transaction.
Structured log events mark start and commit of each operation.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_config.schema import PaymentSettings
from ledger_kernel.domain.approval import (
    Actor,
    ApprovalRequest,
    PaymentPayload,
    RequestState,
    parse_amount,
)
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.invalidation import PAYMENT_NOTIFICATION, ChangeSet
from ledger_kernel.domain.schedule import (
    AllocationType,
    ObligationSnapshot,
    UpcomingDue,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.client import Client
from ledger_kernel.models.payment_request import PaymentRequest
from ledger_kernel.services.approval_workflow import ApprovalWorkflow
from ledger_kernel.services.auditor_service import AuditorService
from ledger_kernel.services.invalidation_service import InvalidationService
from ledger_kernel.services.obligation_service import ObligationService
from ledger_modules._helpers import (
    NotificationPort,
    dispatch_notification,
    run_in_transaction,
)
from ledger_modules.client_payments.models import ApprovalOutcome, ClientLedgerSummary
from ledger_modules.client_payments.workflows import payment_binding

logger = get_logger("modules.client_payments.service")

PAYMENT_APPROVED_NOTIFICATION = "payment_approved"


class ClientPaymentService:
    """
    Client installment ledger facade.

    Contract
    --------
    * Mutating methods take an explicit ``Actor``.
    * Read methods never write, not even synthesized months.

    Guarantees
    ----------
    * Session committed on success, rolled back on any exception.
    * Clock is injectable for deterministic testing.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        notifier: NotificationPort | None = None,
        settings: PaymentSettings | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._notifier = notifier
        self._settings = settings or PaymentSettings()

        self._auditor = AuditorService(session, self._clock)
        self._invalidation = InvalidationService(session, self._auditor, self._clock)
        self._obligations = ObligationService(session, self._auditor, self._clock)
        self._workflow: ApprovalWorkflow[PaymentPayload, PaymentRequest] = ApprovalWorkflow(
            session,
            payment_binding(self._obligations),
            self._auditor,
            self._invalidation,
            self._clock,
        )

    @property
    def obligations(self) -> ObligationService:
        return self._obligations

    @property
    def workflow(self) -> ApprovalWorkflow[PaymentPayload, PaymentRequest]:
        return self._workflow

    # =========================================================================
    # Clients
    # =========================================================================

    def onboard_client(
        self,
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
        """Create a client and their full monthly schedule."""
        logger.info("client_onboard_started", extra={"tenure_months": tenure_months})
        client = run_in_transaction(
            self._session,
            lambda: self._obligations.onboard_client(
                name=name,
                monthly_fee=monthly_fee,
                tenure_months=tenure_months,
                start_date=start_date,
                actor=actor,
                email=email,
                phone=phone,
                allocation_type=allocation_type,
                assigned_to=assigned_to,
            ),
            "onboard_client",
        )
        logger.info("client_onboard_committed", extra={"client_id": str(client.id)})
        return client

    def deactivate_client(self, client_id: UUID, actor: Actor) -> Client:
        return run_in_transaction(
            self._session,
            lambda: self._obligations.deactivate_client(client_id, actor),
            "deactivate_client",
        )

    def update_client_plan(self, client_id: UUID, actor: Actor, **changes: object) -> Client:
        """Edit contact details or the funding plan; aggregates follow."""
        with LogContext.bind(client_id=str(client_id), actor=actor.name):
            return run_in_transaction(
                self._session,
                lambda: self._obligations.update_client_plan(client_id, actor, **changes),
                "update_client_plan",
            )

    def client_summary(self, client_id: UUID) -> ClientLedgerSummary:
        client = self._obligations.get_client(client_id)
        return ClientLedgerSummary(
            client_id=client.id,
            name=client.name,
            monthly_fee=client.monthly_fee,
            tenure_months=client.tenure_months,
            total_obligation_amount=client.total_obligation_amount,
            paid_amount=client.paid_amount,
            pending_amount=client.pending_amount,
            payments_completed=client.payments_completed_count,
            payments_pending=client.payments_pending_count,
            is_active=client.is_active,
        )

    # =========================================================================
    # Schedule
    # =========================================================================

    def compute_schedule(self, client_id: UUID) -> tuple[ObligationSnapshot, ...]:
        return self._obligations.compute_schedule(client_id)

    def get_obligation(self, client_id: UUID, month_number: int) -> ObligationSnapshot:
        return self._obligations.get_obligation(client_id, month_number)

    def post_payment(
        self,
        client_id: UUID,
        month_number: int,
        amount: object,
        actor: Actor,
    ) -> ObligationSnapshot:
        """Post straight into a month, bypassing the request workflow.

        Used for corrections by an administrator.  Same validation and
        aggregate recompute as an approval.
        """
        with LogContext.bind(client_id=str(client_id), actor=actor.name):
            return run_in_transaction(
                self._session,
                lambda: self._obligations.post_payment(client_id, month_number, amount, actor),
                "post_payment",
            )

    def upcoming_dues(
        self,
        as_of: date | None = None,
        within_days: int | None = None,
    ) -> list[UpcomingDue]:
        """Reminder view.  Window defaults to the configured reminder window."""
        window = self._settings.reminder_window_days if within_days is None else within_days
        return self._obligations.upcoming_dues(as_of=as_of, within_days=window)

    # =========================================================================
    # Requests
    # =========================================================================

    def submit_payment_request(
        self,
        client_id: UUID,
        month_number: int,
        amount: object,
        actor: Actor,
        notes: str = "",
    ) -> PaymentRequest:
        """Store a NotApproved claim against one month.  Nothing is posted."""
        with LogContext.bind(client_id=str(client_id), actor=actor.name):
            payload = PaymentPayload(
                client_id=client_id,
                month_number=month_number,
                amount=parse_amount(amount),
                notes=(notes or "").strip(),
            )
            request = run_in_transaction(
                self._session,
                lambda: self._workflow.submit(payload, actor),
                "submit_payment_request",
            )
            logger.info(
                "payment_request_committed",
                extra={"request_id": str(request.id), "month_number": month_number},
            )
            return request

    def approve(self, request_id: UUID, reviewer: Actor) -> ApprovalOutcome:
        """Approve, post into the schedule, commit, then notify.

        Postconditions:
            - On return the request is Approved and the month and client
              aggregates reflect the amount, durably.
            - ``notification_sent`` is True only if the notifier accepted
              the dispatch.
        """
        with LogContext.bind(request_id=str(request_id), actor=reviewer.name):
            logger.info("payment_request_approve_started")

            def _approve() -> tuple[PaymentRequest, ObligationSnapshot]:
                model = self._workflow.approve(request_id, reviewer)
                month = self._obligations.get_obligation(model.client_id, model.month_number)
                return model, month

            model, month = run_in_transaction(self._session, _approve, "approve_payment_request")
            logger.info(
                "payment_request_approve_committed",
                extra={
                    "client_id": str(model.client_id),
                    "month_number": model.month_number,
                    "month_status": month.status.value,
                },
            )

            dispatch = dispatch_notification(
                self._notifier,
                PAYMENT_APPROVED_NOTIFICATION,
                str(model.id),
                {
                    "client_id": str(model.client_id),
                    "month_number": model.month_number,
                    "amount": str(model.requested_amount),
                    "approved_by": reviewer.name,
                    "month_status": month.status.value,
                },
            )
            if dispatch.delivered:
                self._mark_sent(model, reviewer)

            return ApprovalOutcome(
                request_id=model.id,
                state=RequestState.APPROVED,
                notification_sent=dispatch.delivered,
                notification_message=dispatch.message,
                month_status=month.status,
                month_paid_amount=month.paid_amount,
            )

    def reject(self, request_id: UUID, reviewer: Actor) -> ApprovalOutcome:
        with LogContext.bind(request_id=str(request_id), actor=reviewer.name):
            model = run_in_transaction(
                self._session,
                lambda: self._workflow.reject(request_id, reviewer),
                "reject_payment_request",
            )
            return ApprovalOutcome(request_id=model.id, state=RequestState.REJECTED)

    def edit_amount(self, request_id: UUID, new_amount: object, editor: Actor) -> ChangeSet:
        """Change the amount of a request in any status.  Never re-posts."""
        with LogContext.bind(request_id=str(request_id), actor=editor.name):
            return run_in_transaction(
                self._session,
                lambda: self._workflow.edit_amount(request_id, new_amount, editor),
                "edit_payment_request",
            )

    def delete_request(self, request_id: UUID, actor: Actor) -> None:
        with LogContext.bind(request_id=str(request_id), actor=actor.name):
            run_in_transaction(
                self._session,
                lambda: self._workflow.delete(request_id, actor),
                "delete_payment_request",
            )

    def mark_notification_sent(self, request_id: UUID, actor: Actor) -> PaymentRequest:
        """Record that the client was told about this request out of band."""
        model = self._workflow.get(request_id)
        self._mark_sent(model, actor)
        return model

    def _mark_sent(self, model: PaymentRequest, actor: Actor) -> None:
        run_in_transaction(
            self._session,
            lambda: self._invalidation.mark_sent(
                model,
                entity_type=self._workflow.binding.entity_type,
                flag=PAYMENT_NOTIFICATION,
                actor=actor,
            ),
            "mark_payment_notification_sent",
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def get_request(self, request_id: UUID) -> ApprovalRequest[PaymentPayload]:
        return self._workflow.snapshot(self._workflow.get(request_id))

    def pending_requests(self, limit: int | None = None) -> list[PaymentRequest]:
        return self._workflow.list_by_state(RequestState.NOT_APPROVED, limit)

    def approved_requests(self, limit: int | None = None) -> list[PaymentRequest]:
        return self._workflow.list_by_state(RequestState.APPROVED, limit)

    def rejected_requests(self, limit: int | None = None) -> list[PaymentRequest]:
        return self._workflow.list_by_state(RequestState.REJECTED, limit)

    def requests_by_requester(self, requester: str, limit: int | None = None) -> list[PaymentRequest]:
        return self._workflow.list_by_requester(requester, limit)

    def payment_history(self, client_id: UUID, limit: int | None = None) -> list[PaymentRequest]:
        """A client's requests, newest first, capped at the configured history limit."""
        self._obligations.get_client(client_id)
        cap = self._settings.history_limit if limit is None else limit
        stmt = (
            select(PaymentRequest)
            .where(PaymentRequest.client_id == client_id)
            .order_by(PaymentRequest.request_date.desc())
        )
        if cap:
            stmt = stmt.limit(cap)
        return list(self._session.execute(stmt).scalars())
