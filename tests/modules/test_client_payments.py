"""
Tests for ClientPaymentService.

Covers the module-level contract on top of the kernel services:
- Each mutation commits on success and rolls back on failure
- Notification dispatch after commit, with failures surfaced as a message
- Reminder and history views driven by configuration
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.approval import Actor, ActorRole, RequestState
from ledger_kernel.domain.schedule import ObligationStatus
from ledger_kernel.exceptions import (
    ClientNotFoundError,
    NoChangeError,
    StateConflictError,
    ValidationError,
)
from ledger_modules.client_payments import ClientPaymentService
from ledger_modules.client_payments.service import PAYMENT_APPROVED_NOTIFICATION

STAFF = Actor("asha")
REVIEWER = Actor("ravi", ActorRole.REVIEWER)
ADMIN = Actor("meera", ActorRole.ADMIN)


@pytest.fixture
def client(onboard):
    return onboard(assigned_to="asha")


@pytest.fixture
def request_for(payments, client):
    def _submit(month=3, amount="2000", actor=STAFF):
        return payments.submit_payment_request(client.id, month, amount, actor)

    return _submit


class TestOnboarding:
    def test_summary(self, payments, client):
        summary = payments.client_summary(client.id)

        assert summary.name == "Priya Sharma"
        assert summary.total_obligation_amount == Decimal("30000")
        assert summary.pending_amount == Decimal("30000")
        assert summary.payments_pending == 6
        assert summary.is_active

    def test_committed(self, session, payments, client):
        session.rollback()

        assert payments.client_summary(client.id).tenure_months == 6

    def test_failed_onboard_leaves_nothing(self, session, payments):
        with pytest.raises(ValidationError):
            payments.onboard_client("Anil", "-5", 6, date(2024, 1, 15), ADMIN)

        assert not session.new


class TestClientPlanEdit:
    def test_fee_change_committed(self, session, payments, client, request_for):
        payments.approve(request_for(month=1, amount="5000").id, REVIEWER)

        payments.update_client_plan(client.id, ADMIN, monthly_fee="5500")
        session.rollback()

        summary = payments.client_summary(client.id)
        assert summary.total_obligation_amount == Decimal("33000")
        assert summary.pending_amount == summary.total_obligation_amount - summary.paid_amount
        assert summary.payments_pending == 5

    def test_no_change_rolls_back(self, payments, client, captured_logs):
        with pytest.raises(NoChangeError):
            payments.update_client_plan(client.id, ADMIN, tenure_months=6)

        failed = [r for r in captured_logs() if r["message"] == "transaction_rolled_back"]
        assert failed[-1]["error_code"] == "NO_CHANGE"
        assert failed[-1]["operation"] == "update_client_plan"


class TestApprove:
    def test_commits_and_notifies(self, payments, notifier, client, request_for):
        request = request_for()

        outcome = payments.approve(request.id, REVIEWER)

        assert outcome.state == RequestState.APPROVED
        assert outcome.month_status == ObligationStatus.PARTIAL
        assert outcome.month_paid_amount == Decimal("2000")
        assert outcome.notification_sent is True
        assert not outcome.has_warning

        kind, record_id, payload = notifier.sent[0]
        assert kind == PAYMENT_APPROVED_NOTIFICATION
        assert record_id == str(request.id)
        assert payload["amount"] == "2000"
        assert payload["month_status"] == "partial"
        assert payload["approved_by"] == "ravi"

    def test_sent_flag_set_after_delivery(self, payments, request_for):
        request = request_for()

        payments.approve(request.id, REVIEWER)

        snapshot = payments.get_request(request.id)
        assert snapshot.notification_sent is True
        assert request.notification_sent_by == "ravi"

    def test_downstream_failure_keeps_ledger(self, session, payments, notifier, client, request_for):
        notifier.fail_downstream("smtp relay refused")
        request = request_for()

        outcome = payments.approve(request.id, REVIEWER)

        assert outcome.state == RequestState.APPROVED
        assert outcome.notification_sent is False
        assert outcome.has_warning
        assert "smtp relay refused" in outcome.notification_message

        session.rollback()
        assert payments.get_request(request.id).state == RequestState.APPROVED
        assert payments.get_request(request.id).notification_sent is False
        assert payments.client_summary(client.id).paid_amount == Decimal("2000")

    def test_unexpected_notifier_error_becomes_message(self, payments, notifier, request_for):
        notifier.fail_with = RuntimeError("template missing")
        request = request_for()

        outcome = payments.approve(request.id, REVIEWER)

        assert outcome.notification_sent is False
        assert "template missing" in outcome.notification_message

    def test_without_notifier(self, session, clock, config, request_for):
        quiet = ClientPaymentService(session, clock, None, config.payments)
        request = request_for()

        outcome = quiet.approve(request.id, REVIEWER)

        assert outcome.notification_sent is False
        assert outcome.notification_message is None

    def test_rolls_back_when_posting_fails(self, payments, monkeypatch, client, request_for):
        request = request_for()

        def _boom(*args, **kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr(payments.obligations, "post_payment", _boom)
        with pytest.raises(RuntimeError):
            payments.approve(request.id, REVIEWER)
        monkeypatch.undo()

        assert payments.get_request(request.id).state == RequestState.NOT_APPROVED
        assert payments.client_summary(client.id).paid_amount == Decimal("0")

    def test_conflict_is_rolled_back(self, payments, request_for, captured_logs):
        request = request_for()
        payments.approve(request.id, REVIEWER)

        with pytest.raises(StateConflictError):
            payments.approve(request.id, REVIEWER)

        rolled_back = [r for r in captured_logs() if r["message"] == "transaction_rolled_back"]
        assert rolled_back[-1]["error_code"] == "STATE_CONFLICT"


class TestRejectEditDelete:
    def test_reject(self, payments, notifier, client, request_for):
        request = request_for()

        outcome = payments.reject(request.id, REVIEWER)

        assert outcome.state == RequestState.REJECTED
        assert notifier.sent == []
        assert payments.client_summary(client.id).paid_amount == Decimal("0")

    def test_edit_clears_sent_flag(self, payments, request_for):
        request = request_for()
        payments.approve(request.id, REVIEWER)

        change_set = payments.edit_amount(request.id, "2500", ADMIN)

        assert change_set.notification_cleared is True
        assert payments.get_request(request.id).notification_sent is False

    def test_edit_without_change(self, payments, request_for):
        request = request_for()

        with pytest.raises(NoChangeError):
            payments.edit_amount(request.id, "2000.00", ADMIN)

    def test_mark_notification_sent(self, payments, request_for):
        request = request_for()

        payments.mark_notification_sent(request.id, STAFF)

        assert payments.get_request(request.id).notification_sent is True

    def test_delete(self, payments, request_for):
        request = request_for()

        payments.delete_request(request.id, ADMIN)

        assert payments.pending_requests() == []


class TestSubmit:
    def test_amount_string_parsed(self, payments, request_for):
        request = request_for(amount="1,500.50")

        assert request.requested_amount == Decimal("1500.50")

    def test_bad_amount_rejected_before_storage(self, payments, request_for):
        with pytest.raises(ValidationError):
            request_for(amount="abc")

        assert payments.pending_requests() == []

    def test_inactive_client(self, payments, client, request_for):
        payments.deactivate_client(client.id, ADMIN)

        with pytest.raises(ValidationError):
            request_for()

    def test_unknown_client(self, payments):
        with pytest.raises(ClientNotFoundError):
            payments.submit_payment_request(uuid4(), 1, "100", STAFF)

    @pytest.mark.parametrize("client_id", [None, "", "   "])
    def test_missing_client_id(self, payments, client_id):
        with pytest.raises(ValidationError) as exc_info:
            payments.submit_payment_request(client_id, 1, "100", STAFF)

        assert exc_info.value.field == "client_id"
        assert payments.pending_requests() == []


class TestQueries:
    def test_state_lists(self, payments, clock, request_for):
        first = request_for(month=1)
        clock.advance(60)
        second = request_for(month=2)
        clock.advance(60)
        third = request_for(month=3)
        payments.approve(first.id, REVIEWER)
        payments.reject(second.id, REVIEWER)

        assert [r.id for r in payments.pending_requests()] == [third.id]
        assert [r.id for r in payments.approved_requests()] == [first.id]
        assert [r.id for r in payments.rejected_requests()] == [second.id]

    def test_requests_by_requester(self, payments, request_for):
        mine = request_for(actor=Actor("kiran"))
        request_for()

        assert [r.id for r in payments.requests_by_requester("kiran")] == [mine.id]

    def test_history_newest_first(self, payments, clock, client, request_for):
        ids = []
        for month in (1, 2, 3):
            ids.append(request_for(month=month).id)
            clock.advance(60)

        history = payments.payment_history(client.id)

        assert [r.id for r in history] == list(reversed(ids))

    def test_history_limit(self, payments, clock, client, request_for):
        for month in range(1, 7):
            request_for(month=month)
            clock.advance(60)

        assert len(payments.payment_history(client.id, limit=4)) == 4

    def test_history_default_cap(self, session, clock, notifier, client, request_for):
        capped = ClientPaymentService(session, clock, notifier)
        for _ in range(12):
            request_for(month=1, amount="10")
            clock.advance(60)

        assert len(capped.payment_history(client.id)) == 10

    def test_history_unknown_client(self, payments):
        with pytest.raises(ClientNotFoundError):
            payments.payment_history(uuid4())


class TestUpcomingDues:
    def test_uses_configured_window(self, payments, config, client):
        assert config.payments.reminder_window_days == 7

        dues = payments.upcoming_dues(as_of=date(2024, 3, 8))
        assert [d.obligation.month_number for d in dues] == [3]

        assert payments.upcoming_dues(as_of=date(2024, 3, 7)) == []

    def test_explicit_window(self, payments, client):
        dues = payments.upcoming_dues(as_of=date(2024, 3, 1), within_days=45)

        assert [d.obligation.month_number for d in dues] == [3, 4]
