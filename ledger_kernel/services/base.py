"""
BaseService -- abstract base for kernel services.

Responsibility:
    Common constructor and session-handling contract for every kernel
    service.  Services receive a SQLAlchemy ``Session`` and use
    ``session.flush()``, never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    Transaction boundaries: kernel services flush within the caller's
    transaction and never commit or roll back.  Module services in
    ``ledger_modules`` own commit/rollback, which is what lets an
    approval, its posting, the aggregate recompute and their audit
    events land atomically.
"""

from abc import ABC

from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock


class BaseService(ABC):
    """
    Abstract base class for kernel services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()
