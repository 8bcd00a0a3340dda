"""
Ops payment workflow binding.

Plugs OpsPaymentRequest into the generic ApprovalWorkflow with the
pending / approved / rejected vocabulary.  Approval has no ledger
effect.
"""

from __future__ import annotations

from typing import Any

from ledger_config.schema import OpsSettings
from ledger_kernel.domain.approval import (
    EXPENSE_STATUSES,
    ExpensePayload,
    ExpenseSource,
    ExpenseType,
)
from ledger_kernel.exceptions import ValidationError
from ledger_kernel.models.ops_payment import OpsPaymentRequest
from ledger_kernel.services.approval_workflow import WorkflowBinding

OPS_PAYMENT_WORKFLOW = "ops_payment"


def _to_payload(model: OpsPaymentRequest) -> ExpensePayload:
    return ExpensePayload(
        name=model.name,
        phone_number=model.phone_number,
        amount=model.amount,
        source=ExpenseSource(model.source),
        expense_type=ExpenseType(model.expense_type),
        miscellaneous_details=model.miscellaneous_details,
    )


def _to_columns(payload: ExpensePayload) -> dict[str, Any]:
    return {
        "name": payload.name,
        "phone_number": payload.phone_number,
        "amount": payload.amount,
        "source": payload.source.value,
        "expense_type": payload.expense_type.value,
        "miscellaneous_details": payload.miscellaneous_details,
    }


def expense_binding(settings: OpsSettings) -> WorkflowBinding[ExpensePayload, OpsPaymentRequest]:
    """Binding that accepts only the sources and types enabled in ``settings``."""

    def validate(payload: ExpensePayload) -> None:
        if not payload.name.strip():
            raise ValidationError("name", "name is required", payload.name)
        if not payload.phone_number.strip():
            raise ValidationError("phone_number", "phone number is required", payload.phone_number)
        if payload.source.value not in settings.sources:
            raise ValidationError("source", "source is not enabled", payload.source.value)
        if payload.expense_type.value not in settings.types:
            raise ValidationError("type", "expense type is not enabled", payload.expense_type.value)
        if payload.expense_type == ExpenseType.MISCELLANEOUS and not (
            payload.miscellaneous_details or ""
        ).strip():
            raise ValidationError(
                "miscellaneous_details",
                "details are required for miscellaneous expenses",
                payload.miscellaneous_details,
            )

    return WorkflowBinding(
        name=OPS_PAYMENT_WORKFLOW,
        entity_type="OpsPaymentRequest",
        model=OpsPaymentRequest,
        statuses=EXPENSE_STATUSES,
        amount_field="amount",
        requested_by_field="submitted_by",
        requested_at_field="submitted_at",
        to_columns=_to_columns,
        to_payload=_to_payload,
        validate=validate,
    )
