"""
Tests for the structured log lines the ledger emits.

Covers:
- Request context bound around an approval reaches every record it causes
- run_in_transaction's rollback records (ledger error vs unexpected error)
- Notification dispatch failures, with the exception's fields flattened
- configure_logging / reset_logging on the ledger_kernel hierarchy
"""

import json
import logging
from io import StringIO

import pytest

from ledger_kernel.domain.approval import Actor, ActorRole
from ledger_kernel.exceptions import StateConflictError
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)
from ledger_modules.client_payments.service import PAYMENT_APPROVED_NOTIFICATION

STAFF = Actor("asha")
REVIEWER = Actor("ravi", ActorRole.REVIEWER)


@pytest.fixture
def client(onboard):
    return onboard()


@pytest.fixture
def pending(payments, client):
    return payments.submit_payment_request(client.id, 2, "2000", STAFF)


def _named(records: list[dict], message: str) -> list[dict]:
    return [r for r in records if r["message"] == message]


class TestApprovalContext:
    def test_bound_fields_reach_kernel_records(self, payments, pending, captured_logs):
        with LogContext.bind(correlation_id="batch-7"):
            payments.workflow.approve(pending.id, REVIEWER)

        for message in ("payment_posted", "approval_request_approved"):
            (record,) = _named(captured_logs(), message)
            assert record["request_id"] == str(pending.id)
            assert record["actor"] == "ravi"
            assert record["correlation_id"] == "batch-7"

    def test_posting_record_carries_month(self, payments, client, pending, captured_logs):
        payments.workflow.approve(pending.id, REVIEWER)

        (record,) = _named(captured_logs(), "payment_posted")
        assert record["client_id"] == str(client.id)
        assert record["month_number"] == 2
        assert record["amount"] == "2000"
        assert record["status"] == "partial"

    def test_request_fields_released_after_approve(self, payments, pending, captured_logs):
        payments.workflow.approve(pending.id, REVIEWER)
        get_logger("test").info("after_approve")

        (record,) = _named(captured_logs(), "after_approve")
        assert "request_id" not in record
        assert "actor" not in record

    def test_module_approve_binds_reviewer(self, payments, pending, captured_logs):
        payments.approve(pending.id, REVIEWER)

        (started,) = _named(captured_logs(), "payment_request_approve_started")
        assert started["request_id"] == str(pending.id)
        assert started["actor"] == "ravi"


class TestTransactionRecords:
    def test_ledger_error_logged_as_warning_with_code(self, payments, pending, captured_logs):
        payments.approve(pending.id, REVIEWER)

        with pytest.raises(StateConflictError):
            payments.approve(pending.id, REVIEWER)

        records = captured_logs()
        (refused,) = _named(records, "approval_transition_refused")
        assert refused["current_status"] == "Approved"
        assert refused["attempted"] == "approve"

        (rolled_back,) = _named(records, "transaction_rolled_back")
        assert rolled_back["level"] == "WARNING"
        assert rolled_back["error_code"] == "STATE_CONFLICT"
        assert rolled_back["operation"] == "approve_payment_request"
        assert rolled_back["request_id"] == str(pending.id)
        assert "traceback" not in rolled_back

    def test_unexpected_error_logged_with_traceback(
        self, payments, pending, captured_logs, monkeypatch,
    ):
        def _explode(*args, **kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr(payments.obligations, "post_payment", _explode)

        with pytest.raises(RuntimeError):
            payments.approve(pending.id, REVIEWER)

        records = captured_logs()
        assert _named(records, "transaction_rolled_back") == []
        (failed,) = _named(records, "transaction_failed")
        assert failed["level"] == "ERROR"
        assert failed["operation"] == "approve_payment_request"
        assert failed["exc_type"] == "RuntimeError"
        assert failed["exc_message"] == "disk full"
        assert "_explode" in failed["traceback"]


class TestNotificationRecords:
    def test_downstream_failure(self, payments, notifier, pending, captured_logs):
        notifier.fail_downstream("smtp relay refused")

        outcome = payments.approve(pending.id, REVIEWER)

        (record,) = _named(captured_logs(), "notification_dispatch_failed")
        assert record["level"] == "WARNING"
        assert record["kind"] == PAYMENT_APPROVED_NOTIFICATION
        assert record["record_id"] == str(pending.id)
        assert record["error_code"] == "DOWNSTREAM_ERROR"
        assert record["exc_code"] == "DOWNSTREAM_ERROR"
        assert record["exc_collaborator"] == "mailer"
        assert record["exc_reason"] == "smtp relay refused"
        assert record["actor"] == "ravi"
        assert outcome.notification_message == "mailer failed: smtp relay refused"

    def test_unexpected_notifier_error(self, payments, notifier, pending, captured_logs):
        notifier.fail_with = ValueError("template missing")

        payments.approve(pending.id, REVIEWER)

        records = captured_logs()
        assert _named(records, "notification_dispatch_failed") == []
        (record,) = _named(records, "notification_dispatch_unexpected_error")
        assert record["level"] == "ERROR"
        assert record["error_code"] == "UNKNOWN_ERROR"
        assert record["exc_type"] == "ValueError"

    def test_delivered(self, payments, pending, captured_logs):
        payments.approve(pending.id, REVIEWER)

        (record,) = _named(captured_logs(), "notification_dispatched")
        assert record["kind"] == PAYMENT_APPROVED_NOTIFICATION


class TestConfigureLogging:
    @pytest.fixture
    def fresh_logging(self):
        reset_logging()
        yield
        reset_logging()
        configure_logging(level=logging.DEBUG)

    def test_second_call_keeps_first_handler(self, fresh_logging):
        first, second = StringIO(), StringIO()
        configure_logging(stream=first)
        configure_logging(stream=second)

        get_logger("services.obligation").warning("client_already_inactive")

        assert json.loads(first.getvalue())["logger"] == "ledger_kernel.services.obligation"
        assert second.getvalue() == ""
        assert len(logging.getLogger("ledger_kernel").handlers) == 1

    def test_level_filters_debug(self, fresh_logging):
        stream = StringIO()
        handler = logging.StreamHandler(stream)
        handler.setFormatter(StructuredFormatter())
        configure_logging(handler=handler)

        logger = get_logger("services.obligation")
        logger.debug("aggregates_recomputed")
        logger.info("client_onboarded")

        lines = [json.loads(line) for line in stream.getvalue().splitlines()]
        assert [r["message"] for r in lines] == ["client_onboarded"]
