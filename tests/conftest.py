"""
Pytest fixtures for the obligation ledger test suite.

Provides:
- A fresh in-memory SQLite database per test
- A deterministic clock
- Captured structured logs
- A recording notification port
- Factories for onboarded clients and module services
"""

import json
import logging
from datetime import UTC, date, datetime
from decimal import Decimal
from io import StringIO
from typing import Any

import pytest

from ledger_config import get_active_config
from ledger_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from ledger_kernel.domain.approval import Actor, ActorRole
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.exceptions import DownstreamError
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ledger_kernel.services.auditor_service import AuditorService
from ledger_kernel.services.invalidation_service import InvalidationService
from ledger_kernel.services.obligation_service import ObligationService
from ledger_modules.client_payments.service import ClientPaymentService

STAFF = Actor("asha", ActorRole.STAFF)
REVIEWER = Actor("ravi", ActorRole.REVIEWER)
ADMIN = Actor("meera", ActorRole.ADMIN)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ledger_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, payments):
            payments.approve(...)
            logs = captured_logs()
            assert any(r["message"] == "payment_posted" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ledger_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def session():
    """A session on a brand-new in-memory database."""
    init_engine_from_url("sqlite:///:memory:")
    create_tables()
    s = get_session()
    yield s
    s.close()
    drop_tables()
    reset_engine()


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 1, 10, 9, 0, 0, tzinfo=UTC))


# =============================================================================
# Collaborators
# =============================================================================


class RecordingNotificationPort:
    """NotificationPort that records every dispatch and can be told to fail."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, dict[str, Any]]] = []
        self.fail_with: Exception | None = None

    def dispatch(self, kind: str, record_id: str, payload: dict[str, Any]) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append((kind, record_id, payload))

    def fail_downstream(self, reason: str = "smtp relay refused") -> None:
        self.fail_with = DownstreamError("mailer", reason)


@pytest.fixture
def notifier() -> RecordingNotificationPort:
    return RecordingNotificationPort()


@pytest.fixture
def config():
    return get_active_config()


# =============================================================================
# Kernel services
# =============================================================================


@pytest.fixture
def auditor(session, clock) -> AuditorService:
    return AuditorService(session, clock)


@pytest.fixture
def invalidation(session, auditor, clock) -> InvalidationService:
    return InvalidationService(session, auditor, clock)


@pytest.fixture
def obligations(session, auditor, clock) -> ObligationService:
    return ObligationService(session, auditor, clock)


# =============================================================================
# Module services
# =============================================================================


@pytest.fixture
def payments(session, clock, notifier, config) -> ClientPaymentService:
    return ClientPaymentService(session, clock, notifier, config.payments)


@pytest.fixture
def onboard(payments):
    """Factory onboarding a client through the module service."""

    def _onboard(
        name: str = "Priya Sharma",
        monthly_fee: Decimal | str = Decimal("5000"),
        tenure_months: int = 6,
        start_date: date = date(2024, 1, 15),
        **kwargs: Any,
    ):
        return payments.onboard_client(
            name=name,
            monthly_fee=monthly_fee,
            tenure_months=tenure_months,
            start_date=start_date,
            actor=ADMIN,
            **kwargs,
        )

    return _onboard
