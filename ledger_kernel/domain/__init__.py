"""
Pure domain layer.

This module contains value objects and domain rules with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

All domain objects are immutable and deterministic.
"""

from ledger_kernel.domain.approval import (
    EXPENSE_STATUSES,
    PAYMENT_STATUSES,
    REQUEST_TRANSITIONS,
    SYSTEM_ACTOR,
    TERMINAL_REQUEST_STATES,
    Actor,
    ActorRole,
    ApprovalRequest,
    ExpensePayload,
    ExpenseSource,
    ExpenseType,
    PaymentPayload,
    RequestState,
    StatusVocabulary,
    parse_amount,
)
from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.counterparty import CounterpartyContact, MatchMethod, Resolution
from ledger_kernel.domain.invalidation import (
    CASE_EMAIL,
    PAYMENT_NOTIFICATION,
    ChangeSet,
    FieldChange,
    NotificationFlag,
)
from ledger_kernel.domain.schedule import (
    AllocationType,
    ClientAggregates,
    FundingPlan,
    ObligationSnapshot,
    ObligationStatus,
    UpcomingDue,
)

__all__ = [
    "Actor",
    "ActorRole",
    "AllocationType",
    "ApprovalRequest",
    "CASE_EMAIL",
    "ChangeSet",
    "ClientAggregates",
    "Clock",
    "CounterpartyContact",
    "DeterministicClock",
    "EXPENSE_STATUSES",
    "ExpensePayload",
    "ExpenseSource",
    "ExpenseType",
    "FieldChange",
    "FundingPlan",
    "MatchMethod",
    "NotificationFlag",
    "ObligationSnapshot",
    "ObligationStatus",
    "PAYMENT_NOTIFICATION",
    "PAYMENT_STATUSES",
    "PaymentPayload",
    "REQUEST_TRANSITIONS",
    "RequestState",
    "Resolution",
    "SYSTEM_ACTOR",
    "StatusVocabulary",
    "SystemClock",
    "TERMINAL_REQUEST_STATES",
    "UpcomingDue",
    "parse_amount",
]
