"""
Shared helpers for module services.

Transaction ownership and outbound notification handling used by
ledger_modules/*/service.py.

Architecture: Modules layer. Imports only from ledger_kernel.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, TypeVar, runtime_checkable

from sqlalchemy.orm import Session

from ledger_kernel.exceptions import DownstreamError, LedgerKernelError, UnknownError
from ledger_kernel.logging_config import get_logger

logger = get_logger("modules.helpers")

T = TypeVar("T")


@runtime_checkable
class NotificationPort(Protocol):
    """The only outbound collaborator of the ledger.

    Implementations deliver (email, push, document generation).  They
    signal failure with DownstreamError or NetworkError.
    """

    def dispatch(self, kind: str, record_id: str, payload: dict[str, Any]) -> None: ...


@dataclass(frozen=True)
class DispatchResult:
    """What happened when a notification was requested."""

    attempted: bool
    delivered: bool
    message: str | None = None


def run_in_transaction(
    session: Session,
    operation: Callable[[], T],
    name: str = "operation",
) -> T:
    """Run ``operation``; commit on success, roll back and re-raise on failure.

    Ledger errors are expected outcomes (bad input, conflicts) and are
    logged as warnings.  Anything else is logged with its traceback.
    """
    try:
        result = operation()
        session.commit()
        return result
    except LedgerKernelError as exc:
        session.rollback()
        logger.warning(
            "transaction_rolled_back",
            extra={"operation": name, "error_code": exc.code, "error": str(exc)},
        )
        raise
    except Exception:
        session.rollback()
        logger.error("transaction_failed", extra={"operation": name}, exc_info=True)
        raise


def dispatch_notification(
    notifier: NotificationPort | None,
    kind: str,
    record_id: str,
    payload: dict[str, Any],
) -> DispatchResult:
    """Ask the notifier to deliver once.  Never retries.

    DownstreamError / NetworkError are logged and turned into a message.
    Anything else is wrapped as UnknownError, logged and turned into a
    message the same way.
    """
    if notifier is None:
        return DispatchResult(attempted=False, delivered=False)

    try:
        notifier.dispatch(kind, record_id, payload)
    except DownstreamError as exc:
        logger.warning(
            "notification_dispatch_failed",
            extra={"kind": kind, "record_id": record_id, "error_code": exc.code},
            exc_info=True,
        )
        return DispatchResult(attempted=True, delivered=False, message=str(exc))
    except Exception as exc:
        wrapped = UnknownError(f"dispatch {kind}", str(exc))
        logger.error(
            "notification_dispatch_unexpected_error",
            extra={"kind": kind, "record_id": record_id, "error_code": wrapped.code},
            exc_info=True,
        )
        return DispatchResult(attempted=True, delivered=False, message=str(wrapped))

    logger.info("notification_dispatched", extra={"kind": kind, "record_id": record_id})
    return DispatchResult(attempted=True, delivered=True)
