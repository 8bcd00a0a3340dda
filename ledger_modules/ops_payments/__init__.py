"""
Ops Payments Module (``ledger_modules.ops_payments``).

Operational expense requests approved through the same workflow as client
payments, without any schedule effect.
"""

from ledger_modules.ops_payments.models import (
    CalendarMonth,
    DateWindow,
    OpsPaymentFilter,
    OpsPaymentTotals,
)
from ledger_modules.ops_payments.service import OpsPaymentService
from ledger_modules.ops_payments.workflows import OPS_PAYMENT_WORKFLOW, expense_binding

__all__ = [
    "CalendarMonth",
    "DateWindow",
    "OPS_PAYMENT_WORKFLOW",
    "OpsPaymentFilter",
    "OpsPaymentService",
    "OpsPaymentTotals",
    "expense_binding",
]
