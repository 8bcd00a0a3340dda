"""
Tests for InvalidationService.

The wrapper is applied to case records here; payment requests go through
it in test_approval_workflow.py.
"""

from datetime import date

import pytest

from ledger_kernel.domain.approval import Actor
from ledger_kernel.domain.invalidation import CASE_EMAIL
from ledger_kernel.exceptions import NoChangeError, ValidationError
from ledger_kernel.models.audit_event import AuditAction
from ledger_kernel.models.case_record import CASE_MUTABLE_FIELDS, CaseRecord

EDITOR = Actor("kiran")
SENDER = Actor("asha")


@pytest.fixture
def case(session):
    record = CaseRecord(
        client_name="Priya Sharma",
        bank_name="HDFC Bank",
        case_type="Arbitration",
        hearing_date=date(2024, 2, 5),
        meeting_link="https://meet.example.com/abc",
        team_emails=["asha@example.com", "ravi@example.com"],
        remarks="",
        created_by="asha",
    )
    session.add(record)
    session.flush()
    return record


@pytest.fixture
def sent_case(case, invalidation):
    invalidation.mark_sent(case, entity_type="CaseRecord", flag=CASE_EMAIL, actor=SENDER)
    return case


def _edit(invalidation, case, **changes):
    return invalidation.apply_edit(
        case,
        entity_type="CaseRecord",
        changes=changes,
        editor=EDITOR,
        flag=CASE_EMAIL,
        mutable_fields=CASE_MUTABLE_FIELDS,
    )


class TestMarkSent:
    def test_sets_flag_and_stamps(self, sent_case, clock):
        assert sent_case.email_sent is True
        assert sent_case.email_sent_by == "asha"
        assert sent_case.email_sent_at == clock.now()

    def test_audited(self, sent_case, auditor):
        trace = auditor.get_trace("CaseRecord", sent_case.id)
        assert trace.last_action == AuditAction.NOTIFICATION_SENT.value


class TestApplyEdit:
    def test_real_edit_clears_flag(self, invalidation, sent_case, clock):
        clock.advance(3600)

        change_set = _edit(invalidation, sent_case, hearing_date=date(2024, 2, 12))

        assert change_set.changed_fields == ("hearing_date",)
        assert change_set.notification_cleared is True
        assert sent_case.hearing_date == date(2024, 2, 12)
        assert sent_case.email_sent is False
        assert sent_case.email_sent_by is None
        assert sent_case.email_sent_at is None
        assert sent_case.last_modified_by == "kiran"
        assert sent_case.last_modified_at == clock.now()

    def test_identical_edit_keeps_flag(self, invalidation, sent_case):
        with pytest.raises(NoChangeError):
            _edit(
                invalidation,
                sent_case,
                hearing_date=date(2024, 2, 5),
                team_emails=["ravi@example.com", "asha@example.com", ""],
                remarks=None,
            )

        assert sent_case.email_sent is True
        assert sent_case.email_sent_by == "asha"
        assert sent_case.last_modified_by is None

    def test_only_changed_fields_written(self, invalidation, sent_case):
        change_set = _edit(
            invalidation,
            sent_case,
            meeting_link="https://meet.example.com/abc",
            remarks="Bank asked for adjournment",
        )

        assert change_set.changed_fields == ("remarks",)

    def test_edit_of_unsent_record(self, invalidation, case):
        change_set = _edit(invalidation, case, remarks="first note")

        assert change_set.notification_cleared is False
        assert case.email_sent is False

    def test_unknown_field_rejected(self, invalidation, sent_case):
        with pytest.raises(ValidationError):
            _edit(invalidation, sent_case, email_sent=False)

        assert sent_case.email_sent is True

    @pytest.mark.parametrize("column", CASE_EMAIL.columns)
    def test_flag_columns_never_editable(self, invalidation, sent_case, column):
        with pytest.raises(ValidationError):
            invalidation.apply_edit(
                sent_case,
                entity_type="CaseRecord",
                changes={column: None},
                editor=EDITOR,
                flag=CASE_EMAIL,
                mutable_fields=(*CASE_MUTABLE_FIELDS, *CASE_EMAIL.columns),
            )

        assert sent_case.email_sent is True
        assert sent_case.email_sent_by == "asha"

    def test_audit_names_changed_fields(self, invalidation, auditor, sent_case):
        _edit(invalidation, sent_case, remarks="moved", team_emails=["asha@example.com"])

        entry = auditor.get_trace("CaseRecord", sent_case.id).entries[-1]
        assert entry.action == AuditAction.RECORD_EDITED.value
        assert entry.payload["changed_fields"] == ["remarks", "team_emails"]
        assert entry.payload["notification_cleared"] is True
        assert entry.payload["changes"]["remarks"] == {"old": "", "new": "moved"}
