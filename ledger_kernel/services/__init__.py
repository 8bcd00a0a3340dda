"""Services for the ledger kernel (write side)."""

from ledger_kernel.services.approval_workflow import ApprovalWorkflow, WorkflowBinding
from ledger_kernel.services.auditor_service import AuditorService, AuditTrace, AuditTraceEntry
from ledger_kernel.services.counterparty_registry import (
    CounterpartyRegistryService,
    parse_emails,
)
from ledger_kernel.services.invalidation_service import InvalidationService
from ledger_kernel.services.obligation_service import ObligationService

__all__ = [
    "ApprovalWorkflow",
    "AuditTrace",
    "AuditTraceEntry",
    "AuditorService",
    "CounterpartyRegistryService",
    "InvalidationService",
    "ObligationService",
    "WorkflowBinding",
    "parse_emails",
]
