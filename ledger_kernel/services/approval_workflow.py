"""
ApprovalWorkflow -- generic three-state approval machine for requests.

Responsibility:
    Submit, approve, reject, edit and delete requests of any kind that
    follows the NotApproved -> Approved | Rejected lifecycle.  A
    ``WorkflowBinding`` tells the machine which model it stores, how a
    payload maps onto columns, which status strings it persists, and
    what (if anything) must happen in the ledger when a request is
    approved.

Architecture position:
    Kernel > Services.  Instantiated twice by ledger_modules: client
    payments (approval posts into the obligation schedule) and ops
    payments (no ledger effect).

Invariants enforced:
    - approve / reject only from NotApproved; anything else is a
      StateConflictError and nothing is written.
    - The approve hook runs exactly once per approval, inside the same
      flush sequence as the status change, so the caller's commit makes
      both durable or neither.
    - edit_amount never changes status and goes through
      InvalidationService (identical amount -> NoChangeError).
    - delete never reverses a ledger posting.

Failure modes:
    - RequestNotFoundError for an unknown id.
    - ValidationError from payload validation or amount parsing.
    - StateConflictError on approve/reject of a decided request.
    - NoChangeError on an edit that changes nothing.

Audit relevance:
    REQUEST_SUBMITTED, REQUEST_APPROVED, REQUEST_REJECTED,
    REQUEST_DELETED and (via InvalidationService) RECORD_EDITED events.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.approval import (
    Actor,
    ApprovalRequest,
    Payload,
    RequestState,
    StatusVocabulary,
    can_transition,
    parse_amount,
)
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.invalidation import PAYMENT_NOTIFICATION, ChangeSet
from ledger_kernel.exceptions import RequestNotFoundError, StateConflictError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.audit_event import AuditAction
from ledger_kernel.models.request_stamps import RequestStampsMixin
from ledger_kernel.services.auditor_service import AuditorService
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.invalidation_service import InvalidationService

logger = get_logger("services.approval_workflow")

ModelT = TypeVar("ModelT", bound=RequestStampsMixin)


@dataclass(frozen=True)
class WorkflowBinding(Generic[Payload, ModelT]):
    """How one request kind plugs into the generic machine.

    Attributes:
        name: Workflow name used in logs ("client_payment").
        entity_type: Audit entity name ("PaymentRequest").
        model: ORM class storing the requests.
        statuses: Stored status strings.
        amount_field: Column holding the amount.
        requested_by_field: Column holding the submitter.
        requested_at_field: Column holding the submission time.
        to_columns: Payload -> column values, after validation.
        to_payload: Stored row -> payload.
        validate: Extra checks on submit (may read the session).
        on_approve: Ledger effect run once when a request is approved.
            Returns values merged into the approval audit payload.
    """

    name: str
    entity_type: str
    model: type[ModelT]
    statuses: StatusVocabulary
    amount_field: str
    requested_by_field: str
    requested_at_field: str
    to_columns: Callable[[Payload], dict[str, Any]]
    to_payload: Callable[[ModelT], Payload]
    validate: Callable[[Payload], None] | None = None
    on_approve: Callable[[ModelT, Actor], dict[str, Any] | None] | None = None


class ApprovalWorkflow(BaseService, Generic[Payload, ModelT]):
    """The three-state approval machine for one WorkflowBinding."""

    def __init__(
        self,
        session: Session,
        binding: WorkflowBinding[Payload, ModelT],
        auditor: AuditorService,
        invalidation: InvalidationService,
        clock: Clock | None = None,
    ):
        super().__init__(session, clock)
        self.binding = binding
        self._auditor = auditor
        self._invalidation = invalidation

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def get(self, request_id: UUID) -> ModelT:
        model = self.session.get(self.binding.model, request_id)
        if model is None:
            raise RequestNotFoundError(str(request_id), self.binding.entity_type)
        return model

    def state_of(self, model: ModelT) -> RequestState:
        return self.binding.statuses.to_state(model.status)

    def snapshot(self, model: ModelT) -> ApprovalRequest[Payload]:
        """Immutable domain view of a stored request."""
        b = self.binding
        return ApprovalRequest(
            request_id=model.id,
            payload=b.to_payload(model),
            state=self.state_of(model),
            requested_by=getattr(model, b.requested_by_field),
            requested_at=getattr(model, b.requested_at_field),
            approved_by=model.approved_by,
            approved_at=model.approved_at,
            rejected_by=model.rejected_by,
            rejected_at=model.rejected_at,
            edited_by=model.edited_by,
            edited_at=model.edited_at,
            notification_sent=model.notification_sent,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def submit(self, payload: Payload, actor: Actor) -> ModelT:
        """Validate and store a new request as NotApproved.

        No ledger effect beyond storage and the audit event.
        """
        b = self.binding
        parse_amount(payload.amount)
        if b.validate is not None:
            b.validate(payload)

        now = self.clock.now()
        columns = b.to_columns(payload)
        columns.update({
            "status": b.statuses.to_stored(RequestState.NOT_APPROVED),
            b.requested_by_field: actor.name,
            b.requested_at_field: now,
            "notification_sent": False,
            "created_by": actor.name,
        })
        model = b.model(**columns)
        self.session.add(model)
        self.session.flush()

        self._auditor.record(
            b.entity_type,
            model.id,
            AuditAction.REQUEST_SUBMITTED,
            actor,
            {"workflow": b.name, "amount": getattr(model, b.amount_field)},
        )
        logger.info(
            "approval_request_submitted",
            extra={
                "workflow": b.name,
                "request_id": str(model.id),
                "amount": str(getattr(model, b.amount_field)),
                "requested_by": actor.name,
            },
        )
        return model

    def _transition(self, request_id: UUID, target: RequestState, actor: Actor, verb: str) -> ModelT:
        model = self.get(request_id)
        current = self.state_of(model)
        if not can_transition(current, target):
            logger.warning(
                "approval_transition_refused",
                extra={
                    "workflow": self.binding.name,
                    "request_id": str(request_id),
                    "current_status": model.status,
                    "attempted": verb,
                },
            )
            raise StateConflictError(str(request_id), model.status, verb)
        model.status = self.binding.statuses.to_stored(target)
        model.updated_by = actor.name
        return model

    def approve(self, request_id: UUID, reviewer: Actor) -> ModelT:
        """Approve a NotApproved request and run the binding's ledger effect.

        Raises:
            StateConflictError: The request is already Approved or Rejected.
        """
        b = self.binding
        with LogContext.bind(request_id=str(request_id), actor=reviewer.name):
            model = self._transition(request_id, RequestState.APPROVED, reviewer, "approve")
            model.approved_by = reviewer.name
            model.approved_at = self.clock.now()
            self.session.flush()

            effect: dict[str, Any] = {}
            if b.on_approve is not None:
                effect = b.on_approve(model, reviewer) or {}

            self._auditor.record(
                b.entity_type,
                model.id,
                AuditAction.REQUEST_APPROVED,
                reviewer,
                {"workflow": b.name, "amount": getattr(model, b.amount_field), **effect},
            )
            logger.info(
                "approval_request_approved",
                extra={
                    "workflow": b.name,
                    "amount": str(getattr(model, b.amount_field)),
                    "ledger_effect": bool(effect),
                },
            )
        return model

    def reject(self, request_id: UUID, reviewer: Actor) -> ModelT:
        """Reject a NotApproved request.  No ledger effect."""
        b = self.binding
        with LogContext.bind(request_id=str(request_id), actor=reviewer.name):
            model = self._transition(request_id, RequestState.REJECTED, reviewer, "reject")
            model.rejected_by = reviewer.name
            model.rejected_at = self.clock.now()
            self.session.flush()

            self._auditor.record(
                b.entity_type,
                model.id,
                AuditAction.REQUEST_REJECTED,
                reviewer,
                {"workflow": b.name},
            )
            logger.info("approval_request_rejected", extra={"workflow": b.name})
        return model

    def edit_amount(self, request_id: UUID, new_amount: object, editor: Actor) -> ChangeSet:
        """Overwrite the amount in any status.  Never re-posts.

        Raises:
            ValidationError: The new amount is not a positive number.
            NoChangeError: The new amount equals the stored one.
        """
        b = self.binding
        model = self.get(request_id)
        amount: Decimal = parse_amount(new_amount)
        now: datetime = self.clock.now()
        change_set = self._invalidation.apply_edit(
            model,
            entity_type=b.entity_type,
            changes={b.amount_field: amount},
            editor=editor,
            flag=PAYMENT_NOTIFICATION,
            mutable_fields=(b.amount_field,),
            extra_stamps={"edited_by": editor.name, "edited_at": now},
        )
        if self.state_of(model) == RequestState.APPROVED:
            logger.warning(
                "approved_amount_edited_without_repost",
                extra={
                    "workflow": b.name,
                    "request_id": str(request_id),
                    "old_amount": str(change_set.changes[0].old_value),
                    "new_amount": str(amount),
                },
            )
        return change_set

    def delete(self, request_id: UUID, actor: Actor) -> None:
        """Hard-delete a request.  Postings of an approved request stay."""
        b = self.binding
        model = self.get(request_id)
        state = self.state_of(model)
        amount = getattr(model, b.amount_field)

        payload: dict[str, Any] = {"workflow": b.name, "status": model.status, "amount": amount}
        if state == RequestState.APPROVED and b.on_approve is not None:
            payload["ledger_reversed"] = False
            logger.warning(
                "approved_request_deleted_without_reversal",
                extra={
                    "workflow": b.name,
                    "request_id": str(request_id),
                    "amount": str(amount),
                },
            )

        self._auditor.record(b.entity_type, model.id, AuditAction.REQUEST_DELETED, actor, payload)
        self.session.delete(model)
        self.session.flush()
        logger.info(
            "approval_request_deleted",
            extra={"workflow": b.name, "request_id": str(request_id), "status": payload["status"]},
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_by_state(self, state: RequestState, limit: int | None = None) -> list[ModelT]:
        """Requests in one state, newest first."""
        b = self.binding
        stmt = (
            select(b.model)
            .where(b.model.status == b.statuses.to_stored(state))
            .order_by(getattr(b.model, b.requested_at_field).desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.execute(stmt).scalars())

    def list_by_requester(self, requester: str, limit: int | None = None) -> list[ModelT]:
        """Everything one staff member submitted, newest first."""
        b = self.binding
        stmt = (
            select(b.model)
            .where(getattr(b.model, b.requested_by_field) == requester)
            .order_by(getattr(b.model, b.requested_at_field).desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.execute(stmt).scalars())
