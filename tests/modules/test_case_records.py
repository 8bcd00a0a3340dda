"""
Tests for CaseService.

Covers:
- Create / read / list ordering
- Edits clear the hearing email flag; no-op edits keep it
- Hearing email dispatch with bank contacts from the registry
"""

from datetime import date
from uuid import uuid4

import pytest

from ledger_kernel.domain.approval import Actor
from ledger_kernel.exceptions import CaseNotFoundError, NoChangeError, ValidationError
from ledger_modules.cases import CaseService
from ledger_modules.cases.service import HEARING_EMAIL_NOTIFICATION
from ledger_modules.counterparties import CounterpartyDirectory

ASHA = Actor("asha")
KIRAN = Actor("kiran")


@pytest.fixture
def directory(session, config, clock):
    directory = CounterpartyDirectory(session, config, clock)
    directory.seed_from_config()
    return directory


@pytest.fixture
def cases(session, clock, notifier, directory):
    return CaseService(session, clock, notifier, directory.registry)


@pytest.fixture
def case(cases):
    return cases.create_case(
        client_name="Priya Sharma",
        bank_name="Indusind Bank Ltd",
        actor=ASHA,
        case_type="Arbitration",
        hearing_date=date(2024, 2, 5),
        meeting_link=" https://meet.example.com/abc ",
        team_emails="asha@example.com, ravi@example.com",
    )


class TestCreate:
    def test_fields(self, case):
        assert case.team_emails == ["asha@example.com", "ravi@example.com"]
        assert case.meeting_link == "https://meet.example.com/abc"
        assert case.email_sent is False
        assert case.created_by == "asha"
        assert case.status == "In progress"
        assert case.vakalatnama is False
        assert case.online_link_letter is False

    def test_hearing_details(self, cases):
        case = cases.create_case(
            "Priya",
            "HDFC Bank",
            ASHA,
            hearing_time=" 17:30 ",
            access_password="8841",
            vakalatnama=True,
        )

        assert case.hearing_time == "17:30"
        assert case.access_password == "8841"
        assert case.vakalatnama is True

    def test_checkbox_must_be_bool(self, cases):
        with pytest.raises(ValidationError) as exc_info:
            cases.create_case("Priya", "HDFC Bank", ASHA, online_link_letter="yes")
        assert exc_info.value.field == "online_link_letter"

    @pytest.mark.parametrize("field", ["client_name", "bank_name"])
    def test_required_names(self, cases, field):
        kwargs = {"client_name": "Priya", "bank_name": "HDFC Bank", "actor": ASHA}
        kwargs[field] = "  "

        with pytest.raises(ValidationError) as exc_info:
            cases.create_case(**kwargs)
        assert exc_info.value.field == field

    def test_bad_team_email(self, cases):
        with pytest.raises(ValidationError):
            cases.create_case("Priya", "HDFC Bank", ASHA, team_emails="not-an-email")

    def test_unknown_case(self, cases):
        with pytest.raises(CaseNotFoundError):
            cases.get_case(uuid4())


class TestListCases:
    def test_ordering(self, cases, case):
        undated = cases.create_case("Anil Kumar", "HDFC Bank", ASHA)
        earlier = cases.create_case("Zoya Khan", "Axis Bank", ASHA, hearing_date=date(2024, 1, 20))
        same_day = cases.create_case("Bela Rao", "ICICI Bank", ASHA, hearing_date=date(2024, 2, 5))

        assert [c.id for c in cases.list_cases()] == [earlier.id, same_day.id, case.id, undated.id]

    def test_filters(self, cases, case):
        cases.create_case("Zoya Khan", "Axis Bank", ASHA, hearing_date=date(2024, 1, 20))
        cases.mark_email_sent(case.id, ASHA)

        assert [c.id for c in cases.list_cases(hearing_from=date(2024, 2, 1))] == [case.id]
        assert [c.id for c in cases.list_cases(email_sent=True)] == [case.id]
        assert len(cases.list_cases(email_sent=False)) == 1

    def test_status_filter_ignores_case(self, cases, case):
        closed = cases.create_case("Zoya Khan", "Axis Bank", ASHA, status="Closed")

        assert [c.id for c in cases.list_cases(status="closed")] == [closed.id]
        assert [c.id for c in cases.list_cases(status="IN PROGRESS")] == [case.id]


class TestUpdate:
    def test_edit_after_send_clears_flag(self, cases, case):
        cases.mark_email_sent(case.id, ASHA)

        change_set = cases.update_case(case.id, KIRAN, hearing_date=date(2024, 2, 12))

        assert change_set.notification_cleared is True
        refreshed = cases.get_case(case.id)
        assert refreshed.email_sent is False
        assert refreshed.email_sent_by is None
        assert refreshed.last_modified_by == "kiran"

    def test_identical_edit_keeps_flag(self, cases, case):
        cases.mark_email_sent(case.id, ASHA)

        with pytest.raises(NoChangeError):
            cases.update_case(
                case.id,
                KIRAN,
                team_emails="ravi@example.com,asha@example.com",
                bank_name="Indusind Bank Ltd ",
            )

        assert cases.get_case(case.id).email_sent is True

    def test_blank_bank_rejected(self, cases, case):
        with pytest.raises(ValidationError):
            cases.update_case(case.id, KIRAN, bank_name="")

    @pytest.mark.parametrize(
        "changes",
        [
            {"hearing_time": "11:00"},
            {"status": "Adjourned"},
            {"access_password": "2210"},
            {"vakalatnama": True},
            {"online_link_letter": True},
        ],
    )
    def test_every_hearing_detail_clears_flag(self, cases, case, changes):
        cases.mark_email_sent(case.id, ASHA)

        change_set = cases.update_case(case.id, KIRAN, **changes)

        assert change_set.changed_fields == tuple(changes)
        assert cases.get_case(case.id).email_sent is False

    def test_unchanged_checkbox_is_no_change(self, cases, case):
        with pytest.raises(NoChangeError):
            cases.update_case(case.id, KIRAN, vakalatnama=False, status="In progress")

    def test_blank_status_rejected(self, cases, case):
        with pytest.raises(ValidationError):
            cases.update_case(case.id, KIRAN, status=" ")

    def test_flag_columns_not_editable(self, cases, case):
        with pytest.raises(ValidationError):
            cases.update_case(case.id, KIRAN, email_sent=True)


class TestHearingEmail:
    def test_recipients_include_bank_contacts(self, cases, notifier, case):
        result = cases.send_hearing_email(case.id, ASHA)

        assert result.delivered
        kind, record_id, payload = notifier.sent[0]
        assert kind == HEARING_EMAIL_NOTIFICATION
        assert record_id == str(case.id)
        assert payload["hearing_date"] == "2024-02-05"
        assert payload["hearing_time"] == ""
        assert payload["recipients"] == [
            "asha@example.com",
            "ravi@example.com",
            "legal.indusind@example.com",
            "collections.indusind@example.com",
        ]
        assert cases.get_case(case.id).email_sent is True

    def test_unresolved_bank_sends_to_team_only(self, cases, notifier, captured_logs):
        case = cases.create_case("Anil", "Zzyzx Credit Union", ASHA, team_emails=["asha@example.com"])

        cases.send_hearing_email(case.id, ASHA)

        assert notifier.sent[0][2]["recipients"] == ["asha@example.com"]
        assert any(r["message"] == "case_bank_unresolved" for r in captured_logs())

    def test_failed_dispatch_leaves_flag(self, cases, notifier, case):
        notifier.fail_downstream()

        result = cases.send_hearing_email(case.id, ASHA)

        assert result.attempted
        assert not result.delivered
        assert result.message
        assert cases.get_case(case.id).email_sent is False

    def test_without_registry(self, session, clock, notifier, case):
        plain = CaseService(session, clock, notifier)

        plain.send_hearing_email(case.id, ASHA)

        assert notifier.sent[0][2]["recipients"] == ["asha@example.com", "ravi@example.com"]
