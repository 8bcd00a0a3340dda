"""
Tests for OpsPaymentService.

Covers:
- Submission with enum coercion and validation
- Lifecycle through the shared approval workflow
- Listing filters (search, source, status, submitter, type, window, month)
- Totals excluding rejected requests
"""

from decimal import Decimal

import pytest

from ledger_config.schema import OpsSettings
from ledger_kernel.domain.approval import (
    Actor,
    ActorRole,
    ExpenseSource,
    ExpenseType,
    RequestState,
)
from ledger_kernel.exceptions import StateConflictError, ValidationError
from ledger_modules.ops_payments import (
    CalendarMonth,
    DateWindow,
    OpsPaymentFilter,
    OpsPaymentService,
)

ASHA = Actor("asha")
KIRAN = Actor("kiran")
REVIEWER = Actor("ravi", ActorRole.REVIEWER)


@pytest.fixture
def ops(session, clock, config):
    return OpsPaymentService(session, clock, config.ops)


@pytest.fixture
def ledger(ops, clock):
    """Three requests spread over five weeks; now is 2024-02-14 09:00 UTC."""
    visit = ops.submit("Travel to Pune", "9800000001", "1200", "ama", "Client visit", ASHA)
    clock.advance_days(20)
    fees = ops.submit("Court fee", "9800000002", "800", ExpenseSource.BILLCUT, ExpenseType.FEES, KIRAN)
    clock.advance_days(15)
    misc = ops.submit(
        "Printing",
        "9800000003",
        "150.50",
        ExpenseSource.AMA,
        ExpenseType.MISCELLANEOUS,
        ASHA,
        miscellaneous_details="Hearing bundle copies",
    )
    ops.approve(visit.id, REVIEWER)
    ops.reject(fees.id, REVIEWER)
    return {"visit": visit, "fees": fees, "misc": misc}


def _ids(rows):
    return [r.id for r in rows]


class TestSubmit:
    def test_string_inputs_coerced(self, ops, clock):
        request = ops.submit("Travel", "98000", "1,200", "credsettlee", "Arbitration", ASHA)

        assert request.status == "pending"
        assert request.source == "credsettlee"
        assert request.expense_type == "Arbitration"
        assert request.amount == Decimal("1200")
        assert request.submitted_at == clock.now()

    def test_unknown_source(self, ops):
        with pytest.raises(ValidationError) as exc_info:
            ops.submit("Travel", "98000", "100", "paytm", "Fees", ASHA)
        assert exc_info.value.field == "source"

    def test_unknown_type(self, ops):
        with pytest.raises(ValidationError) as exc_info:
            ops.submit("Travel", "98000", "100", "ama", "Lunch", ASHA)
        assert exc_info.value.field == "type"

    def test_type_disabled_in_settings(self, session, clock):
        narrow = OpsPaymentService(session, clock, OpsSettings(types=("Fees",)))

        with pytest.raises(ValidationError) as exc_info:
            narrow.submit("Travel", "98000", "100", "ama", "Client visit", ASHA)
        assert exc_info.value.field == "type"

    def test_blank_phone(self, ops):
        with pytest.raises(ValidationError) as exc_info:
            ops.submit("Travel", "  ", "100", "ama", "Fees", ASHA)
        assert exc_info.value.field == "phone_number"

    def test_miscellaneous_details_trimmed_to_none(self, ops):
        with pytest.raises(ValidationError) as exc_info:
            ops.submit("Printing", "98000", "100", "ama", "Miscellaneous", ASHA, "   ")
        assert exc_info.value.field == "miscellaneous_details"

    def test_failed_submit_stores_nothing(self, ops):
        with pytest.raises(ValidationError):
            ops.submit("Travel", "98000", "0", "ama", "Fees", ASHA)

        assert ops.pending_requests() == []


class TestLifecycle:
    def test_states(self, ops, ledger):
        assert ops.get_request(ledger["visit"].id).state == RequestState.APPROVED
        assert ops.get_request(ledger["fees"].id).state == RequestState.REJECTED
        assert ops.get_request(ledger["misc"].id).payload.miscellaneous_details == "Hearing bundle copies"

    def test_decided_request_is_terminal(self, ops, ledger):
        with pytest.raises(StateConflictError):
            ops.approve(ledger["fees"].id, REVIEWER)

    def test_edit_amount(self, ops, ledger):
        change_set = ops.edit_amount(ledger["misc"].id, "175", REVIEWER)

        assert change_set.changed_fields == ("amount",)
        assert ops.get_request(ledger["misc"].id).payload.amount == Decimal("175")

    def test_delete(self, ops, ledger):
        ops.delete(ledger["misc"].id, REVIEWER)

        assert ops.pending_requests() == []

    def test_state_lists(self, ops, ledger):
        assert _ids(ops.pending_requests()) == [ledger["misc"].id]
        assert _ids(ops.approved_requests()) == [ledger["visit"].id]
        assert _ids(ops.rejected_requests()) == [ledger["fees"].id]

    def test_by_submitter(self, ops, ledger):
        assert _ids(ops.requests_by_submitter("asha")) == [ledger["misc"].id, ledger["visit"].id]


class TestListRequests:
    def test_no_criteria_newest_first(self, ops, ledger):
        assert _ids(ops.list_requests()) == [
            ledger["misc"].id,
            ledger["fees"].id,
            ledger["visit"].id,
        ]

    @pytest.mark.parametrize(
        ("search", "expected"),
        [
            ("PUNE", ["visit"]),
            ("kiran", ["fees"]),
            ("misc", ["misc"]),
            ("9800000002", ["fees"]),
            ("   ", ["misc", "fees", "visit"]),
        ],
    )
    def test_search(self, ops, ledger, search, expected):
        rows = ops.list_requests(OpsPaymentFilter(search=search))

        assert _ids(rows) == [ledger[key].id for key in expected]

    def test_source(self, ops, ledger):
        rows = ops.list_requests(OpsPaymentFilter(source=ExpenseSource.AMA))

        assert _ids(rows) == [ledger["misc"].id, ledger["visit"].id]

    def test_status(self, ops, ledger):
        rows = ops.list_requests(OpsPaymentFilter(status=RequestState.REJECTED))

        assert _ids(rows) == [ledger["fees"].id]

    def test_submitter_and_type(self, ops, ledger):
        rows = ops.list_requests(
            OpsPaymentFilter(submitted_by="asha", expense_type=ExpenseType.CLIENT_VISIT)
        )

        assert _ids(rows) == [ledger["visit"].id]

    @pytest.mark.parametrize(
        ("window", "expected"),
        [
            (DateWindow.LAST_7_DAYS, ["misc"]),
            (DateWindow.LAST_30_DAYS, ["misc", "fees"]),
            (DateWindow.ALL, ["misc", "fees", "visit"]),
        ],
    )
    def test_window(self, ops, ledger, window, expected):
        rows = ops.list_requests(OpsPaymentFilter(window=window))

        assert _ids(rows) == [ledger[key].id for key in expected]

    def test_month(self, ops, ledger):
        rows = ops.list_requests(OpsPaymentFilter(month=CalendarMonth(2024, 1)))

        assert _ids(rows) == [ledger["fees"].id, ledger["visit"].id]

    def test_month_validated(self):
        with pytest.raises(ValidationError):
            CalendarMonth(2024, 13)

    def test_combined(self, ops, ledger):
        rows = ops.list_requests(
            OpsPaymentFilter(search="p", source=ExpenseSource.AMA, window=DateWindow.LAST_7_DAYS)
        )

        assert _ids(rows) == [ledger["misc"].id]


class TestTotals:
    def test_rejected_excluded_from_amount(self, ops, ledger):
        totals = ops.totals(ops.list_requests())

        assert totals.count == 3
        assert totals.pending == 1
        assert totals.approved == 1
        assert totals.rejected == 1
        assert totals.total_amount == Decimal("1350.50")

    def test_empty(self, ops):
        totals = ops.totals([])

        assert totals.count == 0
        assert totals.total_amount == Decimal("0")
