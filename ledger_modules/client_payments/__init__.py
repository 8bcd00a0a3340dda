"""
Client Payments Module (``ledger_modules.client_payments``).

Installment schedules for onboarded clients and the reviewer-gated
payment requests whose approval posts into them.
"""

from ledger_modules.client_payments.models import ApprovalOutcome, ClientLedgerSummary
from ledger_modules.client_payments.service import ClientPaymentService
from ledger_modules.client_payments.workflows import CLIENT_PAYMENT_WORKFLOW, payment_binding

__all__ = [
    "ApprovalOutcome",
    "CLIENT_PAYMENT_WORKFLOW",
    "ClientLedgerSummary",
    "ClientPaymentService",
    "payment_binding",
]
