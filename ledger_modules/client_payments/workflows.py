"""
Client payment workflow binding.

Plugs PaymentRequest into the generic ApprovalWorkflow: payment payloads
map onto payment_requests columns, statuses are stored as
NotApproved / Approved / Rejected, and approval posts the amount into
the client's schedule.
"""

from __future__ import annotations

from typing import Any

from ledger_engines.schedule import validate_month
from ledger_kernel.domain.approval import PAYMENT_STATUSES, Actor, PaymentPayload
from ledger_kernel.exceptions import ValidationError
from ledger_kernel.models.payment_request import PaymentRequest
from ledger_kernel.services.approval_workflow import WorkflowBinding
from ledger_kernel.services.obligation_service import ObligationService

CLIENT_PAYMENT_WORKFLOW = "client_payment"


def _to_payload(model: PaymentRequest) -> PaymentPayload:
    return PaymentPayload(
        client_id=model.client_id,
        month_number=model.month_number,
        amount=model.requested_amount,
        notes=model.notes,
    )


def payment_binding(obligations: ObligationService) -> WorkflowBinding[PaymentPayload, PaymentRequest]:
    """Binding whose approval posts into ``obligations``."""

    def validate(payload: PaymentPayload) -> None:
        if payload.client_id is None or not str(payload.client_id).strip():
            raise ValidationError("client_id", "client id is required", payload.client_id)
        client = obligations.get_client(payload.client_id)
        if not client.is_active:
            raise ValidationError("client_id", "client is inactive", str(payload.client_id))
        validate_month(payload.month_number, client.tenure_months)

    def to_columns(payload: PaymentPayload) -> dict[str, Any]:
        month = obligations.get_obligation(payload.client_id, payload.month_number)
        return {
            "client_id": payload.client_id,
            "month_number": payload.month_number,
            "requested_amount": payload.amount,
            "due_amount_snapshot": month.due_amount,
            "paid_amount_snapshot": month.paid_amount,
            "notes": payload.notes or "",
        }

    def on_approve(model: PaymentRequest, reviewer: Actor) -> dict[str, Any]:
        posted = obligations.post_payment(
            model.client_id, model.month_number, model.requested_amount, reviewer,
        )
        return {
            "client_id": model.client_id,
            "month_number": model.month_number,
            "month_status": posted.status,
            "month_paid_amount": posted.paid_amount,
        }

    return WorkflowBinding(
        name=CLIENT_PAYMENT_WORKFLOW,
        entity_type="PaymentRequest",
        model=PaymentRequest,
        statuses=PAYMENT_STATUSES,
        amount_field="requested_amount",
        requested_by_field="requested_by",
        requested_at_field="request_date",
        to_columns=to_columns,
        to_payload=_to_payload,
        validate=validate,
        on_approve=on_approve,
    )
