"""
Tests for request lifecycle domain types.

Covers:
- Allowed transitions and terminal states
- Status vocabularies per workflow
- Actor validation
- Amount parsing
"""

from decimal import Decimal

import pytest

from ledger_kernel.domain.approval import (
    EXPENSE_STATUSES,
    PAYMENT_STATUSES,
    TERMINAL_REQUEST_STATES,
    Actor,
    ActorRole,
    RequestState,
    can_transition,
    parse_amount,
)
from ledger_kernel.exceptions import ValidationError


class TestTransitions:
    def test_not_approved_can_be_decided(self):
        assert can_transition(RequestState.NOT_APPROVED, RequestState.APPROVED)
        assert can_transition(RequestState.NOT_APPROVED, RequestState.REJECTED)

    @pytest.mark.parametrize("terminal", sorted(TERMINAL_REQUEST_STATES))
    @pytest.mark.parametrize("target", list(RequestState))
    def test_terminal_states_have_no_exits(self, terminal, target):
        assert not can_transition(terminal, target)

    def test_no_self_transition(self):
        assert not can_transition(RequestState.NOT_APPROVED, RequestState.NOT_APPROVED)


class TestStatusVocabulary:
    def test_payment_strings(self):
        assert PAYMENT_STATUSES.to_stored(RequestState.NOT_APPROVED) == "NotApproved"
        assert PAYMENT_STATUSES.to_state("Approved") == RequestState.APPROVED

    def test_expense_strings(self):
        assert EXPENSE_STATUSES.to_stored(RequestState.NOT_APPROVED) == "pending"
        assert EXPENSE_STATUSES.to_state("rejected") == RequestState.REJECTED

    @pytest.mark.parametrize("state", list(RequestState))
    def test_round_trip(self, state):
        assert PAYMENT_STATUSES.to_state(PAYMENT_STATUSES.to_stored(state)) == state
        assert EXPENSE_STATUSES.to_state(EXPENSE_STATUSES.to_stored(state)) == state

    def test_vocabularies_do_not_mix(self):
        with pytest.raises(ValidationError):
            PAYMENT_STATUSES.to_state("pending")


class TestActor:
    def test_default_role_is_staff(self):
        assert Actor("asha").role == ActorRole.STAFF

    @pytest.mark.parametrize("name", ["", "   "])
    def test_blank_name_rejected(self, name):
        with pytest.raises(ValidationError):
            Actor(name)


class TestParseAmount:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (Decimal("5000"), Decimal("5000")),
            (2500, Decimal("2500")),
            (0.1, Decimal("0.1")),
            ("1,25,000", Decimal("125000")),
            ("  750.50 ", Decimal("750.50")),
        ],
    )
    def test_accepted(self, raw, expected):
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize(
        "raw",
        [None, "", "abc", "0", 0, -10, Decimal("-0.01"), True, "NaN", "Infinity", [100]],
    )
    def test_rejected(self, raw):
        with pytest.raises(ValidationError) as exc_info:
            parse_amount(raw)
        assert exc_info.value.code == "VALIDATION_ERROR"

    def test_field_name_reported(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_amount("x", field="monthly_fee")
        assert exc_info.value.field == "monthly_fee"
