"""
Ops Payments Module Service (``ledger_modules.ops_payments.service``).

Responsibility
--------------
Operational expense requests (client visits, arbitration, fees,
miscellaneous): submit, approve, reject, edit amount, delete, and the
filtered listing with totals used on the approval screen.

Architecture position
---------------------
**Modules layer** -- second instantiation of the generic
``ApprovalWorkflow``.  Approval changes status only; no client schedule
is touched.

Invariants enforced
-------------------
* Each public mutating method owns its transaction.
* Source and type must be known values and enabled in configuration.
* Miscellaneous expenses carry details.
* Totals exclude rejected requests.

Failure modes
-------------
* ``ValidationError`` -- missing fields, unknown source/type, bad amount.
* ``RequestNotFoundError`` / ``StateConflictError`` / ``NoChangeError``
  from the workflow.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import TypeVar
from uuid import UUID

from dateutil.relativedelta import relativedelta
from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_config.schema import OpsSettings
from ledger_kernel.domain.approval import (
    Actor,
    ApprovalRequest,
    ExpensePayload,
    ExpenseSource,
    ExpenseType,
    RequestState,
    parse_amount,
)
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.invalidation import ChangeSet
from ledger_kernel.exceptions import ValidationError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.ops_payment import OpsPaymentRequest
from ledger_kernel.services.approval_workflow import ApprovalWorkflow
from ledger_kernel.services.auditor_service import AuditorService
from ledger_kernel.services.invalidation_service import InvalidationService
from ledger_modules._helpers import run_in_transaction
from ledger_modules.ops_payments.models import OpsPaymentFilter, OpsPaymentTotals
from ledger_modules.ops_payments.workflows import expense_binding

logger = get_logger("modules.ops_payments.service")

E = TypeVar("E", bound=Enum)


def _coerce(enum_type: type[E], value: object, field: str) -> E:
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(value)
    except ValueError:
        allowed = ", ".join(str(m.value) for m in enum_type)
        raise ValidationError(field, f"must be one of: {allowed}", value) from None


def _matches_search(row: OpsPaymentRequest, term: str) -> bool:
    needle = term.strip().lower()
    if not needle:
        return True
    return (
        needle in row.name.lower()
        or term.strip() in row.phone_number
        or needle in row.submitted_by.lower()
        or needle in row.expense_type.lower()
    )


class OpsPaymentService:
    """Operational expense approval facade."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        settings: OpsSettings | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._settings = settings or OpsSettings()

        self._auditor = AuditorService(session, self._clock)
        self._invalidation = InvalidationService(session, self._auditor, self._clock)
        self._workflow: ApprovalWorkflow[ExpensePayload, OpsPaymentRequest] = ApprovalWorkflow(
            session,
            expense_binding(self._settings),
            self._auditor,
            self._invalidation,
            self._clock,
        )

    @property
    def workflow(self) -> ApprovalWorkflow[ExpensePayload, OpsPaymentRequest]:
        return self._workflow

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def submit(
        self,
        name: str,
        phone_number: str,
        amount: object,
        source: ExpenseSource | str,
        expense_type: ExpenseType | str,
        actor: Actor,
        miscellaneous_details: str | None = None,
    ) -> OpsPaymentRequest:
        """Store a pending expense request."""
        payload = ExpensePayload(
            name=(name or "").strip(),
            phone_number=(phone_number or "").strip(),
            amount=parse_amount(amount),
            source=_coerce(ExpenseSource, source, "source"),
            expense_type=_coerce(ExpenseType, expense_type, "type"),
            miscellaneous_details=(miscellaneous_details or "").strip() or None,
        )
        with LogContext.bind(actor=actor.name):
            request = run_in_transaction(
                self._session,
                lambda: self._workflow.submit(payload, actor),
                "submit_ops_payment",
            )
            logger.info(
                "ops_payment_committed",
                extra={
                    "request_id": str(request.id),
                    "source": payload.source.value,
                    "expense_type": payload.expense_type.value,
                },
            )
            return request

    def approve(self, request_id: UUID, reviewer: Actor) -> OpsPaymentRequest:
        return run_in_transaction(
            self._session,
            lambda: self._workflow.approve(request_id, reviewer),
            "approve_ops_payment",
        )

    def reject(self, request_id: UUID, reviewer: Actor) -> OpsPaymentRequest:
        return run_in_transaction(
            self._session,
            lambda: self._workflow.reject(request_id, reviewer),
            "reject_ops_payment",
        )

    def edit_amount(self, request_id: UUID, new_amount: object, editor: Actor) -> ChangeSet:
        return run_in_transaction(
            self._session,
            lambda: self._workflow.edit_amount(request_id, new_amount, editor),
            "edit_ops_payment",
        )

    def delete(self, request_id: UUID, actor: Actor) -> None:
        run_in_transaction(
            self._session,
            lambda: self._workflow.delete(request_id, actor),
            "delete_ops_payment",
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def get_request(self, request_id: UUID) -> ApprovalRequest[ExpensePayload]:
        return self._workflow.snapshot(self._workflow.get(request_id))

    def pending_requests(self, limit: int | None = None) -> list[OpsPaymentRequest]:
        return self._workflow.list_by_state(RequestState.NOT_APPROVED, limit)

    def approved_requests(self, limit: int | None = None) -> list[OpsPaymentRequest]:
        return self._workflow.list_by_state(RequestState.APPROVED, limit)

    def rejected_requests(self, limit: int | None = None) -> list[OpsPaymentRequest]:
        return self._workflow.list_by_state(RequestState.REJECTED, limit)

    def requests_by_submitter(self, submitter: str, limit: int | None = None) -> list[OpsPaymentRequest]:
        return self._workflow.list_by_requester(submitter, limit)

    def list_requests(self, criteria: OpsPaymentFilter | None = None) -> list[OpsPaymentRequest]:
        """Requests matching ``criteria``, newest first."""
        criteria = criteria or OpsPaymentFilter()
        model = OpsPaymentRequest
        stmt = select(model).order_by(model.submitted_at.desc())

        if criteria.source is not None:
            stmt = stmt.where(model.source == criteria.source.value)
        if criteria.status is not None:
            stmt = stmt.where(model.status == self._workflow.binding.statuses.to_stored(criteria.status))
        if criteria.submitted_by:
            stmt = stmt.where(model.submitted_by == criteria.submitted_by)
        if criteria.expense_type is not None:
            stmt = stmt.where(model.expense_type == criteria.expense_type.value)
        if criteria.window.days is not None:
            stmt = stmt.where(model.submitted_at >= self._clock.now() - timedelta(days=criteria.window.days))
        if criteria.month is not None:
            start = datetime(criteria.month.year, criteria.month.month, 1, tzinfo=UTC)
            stmt = stmt.where(
                model.submitted_at >= start,
                model.submitted_at < start + relativedelta(months=1),
            )

        rows = self._session.execute(stmt).scalars()
        return [row for row in rows if _matches_search(row, criteria.search)]

    def totals(self, rows: Sequence[OpsPaymentRequest]) -> OpsPaymentTotals:
        """Counts per state and the summed amount of non-rejected rows."""
        states = [self._workflow.state_of(row) for row in rows]
        total = sum(
            (row.amount for row, state in zip(rows, states) if state != RequestState.REJECTED),
            Decimal("0"),
        )
        return OpsPaymentTotals(
            count=len(rows),
            pending=states.count(RequestState.NOT_APPROVED),
            approved=states.count(RequestState.APPROVED),
            rejected=states.count(RequestState.REJECTED),
            total_amount=total,
        )
