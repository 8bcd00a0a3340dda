"""ORM models for the ledger kernel."""

from ledger_kernel.models.audit_event import AuditAction, AuditEvent
from ledger_kernel.models.case_record import CASE_MUTABLE_FIELDS, CaseRecord
from ledger_kernel.models.client import Client
from ledger_kernel.models.counterparty import CounterpartyRecord
from ledger_kernel.models.obligation import MonthlyObligation
from ledger_kernel.models.ops_payment import OpsPaymentRequest
from ledger_kernel.models.payment_request import PaymentRequest
from ledger_kernel.models.request_stamps import RequestStampsMixin

__all__ = [
    "AuditAction",
    "AuditEvent",
    "CASE_MUTABLE_FIELDS",
    "CaseRecord",
    "Client",
    "CounterpartyRecord",
    "MonthlyObligation",
    "OpsPaymentRequest",
    "PaymentRequest",
    "RequestStampsMixin",
]
