"""
Case Records Module Service (``ledger_modules.cases.service``).

Responsibility
--------------
Arbitration case records: create, read, list, edit, and send the hearing
email.  Edits go through ``InvalidationService`` with the ``email_sent``
flag, so changing a hearing after its email went out clears the flag and
the case shows up again as "not yet communicated".

Architecture position
---------------------
**Modules layer** -- second user of the invalidation wrapper.  Looks up
the bank's contact emails through ``CounterpartyRegistryService`` when one
is supplied.

Invariants enforced
-------------------
* Only ``CASE_MUTABLE_FIELDS`` may be edited.
* An edit that changes nothing raises ``NoChangeError`` and leaves the
  email flag as it was.
* ``team_emails`` is stored as a list of trimmed addresses.

Failure modes
-------------
* ``CaseNotFoundError`` -- unknown case id.
* ``ValidationError`` -- blank client or bank name, malformed email,
  unknown field.
* ``NoChangeError`` -- nothing differs.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ledger_kernel.domain.approval import Actor
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.invalidation import CASE_EMAIL, ChangeSet
from ledger_kernel.exceptions import CaseNotFoundError, CounterpartyNotFoundError, ValidationError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.audit_event import AuditAction
from ledger_kernel.models.case_record import (
    CASE_FLAG_FIELDS,
    CASE_MUTABLE_FIELDS,
    DEFAULT_CASE_STATUS,
    CaseRecord,
)
from ledger_kernel.services.auditor_service import AuditorService
from ledger_kernel.services.counterparty_registry import (
    CounterpartyRegistryService,
    parse_emails,
)
from ledger_kernel.services.invalidation_service import InvalidationService
from ledger_modules._helpers import (
    DispatchResult,
    NotificationPort,
    dispatch_notification,
    run_in_transaction,
)

logger = get_logger("modules.cases.service")

HEARING_EMAIL_NOTIFICATION = "hearing_email"

ENTITY_TYPE = "CaseRecord"


def _required(value: str | None, field: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(field, f"{field} is required", value)
    return cleaned


def _checkbox(value: object, field: str) -> bool:
    if not isinstance(value, bool):
        raise ValidationError(field, "must be true or false", value)
    return value


class CaseService:
    """Arbitration case records with email invalidation on edit."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        notifier: NotificationPort | None = None,
        registry: CounterpartyRegistryService | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._notifier = notifier
        self._registry = registry

        self._auditor = AuditorService(session, self._clock)
        self._invalidation = InvalidationService(session, self._auditor, self._clock)

    # =========================================================================
    # Reads
    # =========================================================================

    def get_case(self, case_id: UUID) -> CaseRecord:
        case = self._session.get(CaseRecord, case_id)
        if case is None:
            raise CaseNotFoundError(str(case_id))
        return case

    def list_cases(
        self,
        hearing_from: date | None = None,
        email_sent: bool | None = None,
        status: str | None = None,
    ) -> list[CaseRecord]:
        """Cases ordered by hearing date (undated last), then client name.

        ``status`` matches case-insensitively.
        """
        stmt = select(CaseRecord)
        if status:
            stmt = stmt.where(func.lower(CaseRecord.status) == status.strip().lower())
        if hearing_from is not None:
            stmt = stmt.where(CaseRecord.hearing_date >= hearing_from)
        if email_sent is not None:
            stmt = stmt.where(CaseRecord.email_sent.is_(email_sent))
        rows = list(self._session.execute(stmt).scalars())
        rows.sort(key=lambda c: (c.hearing_date is None, c.hearing_date or date.min, c.client_name))
        return rows

    # =========================================================================
    # Mutations
    # =========================================================================

    def create_case(
        self,
        client_name: str,
        bank_name: str,
        actor: Actor,
        case_type: str = "",
        hearing_date: date | None = None,
        meeting_link: str = "",
        team_emails: str | Iterable[str] | None = None,
        remarks: str = "",
        hearing_time: str = "",
        status: str = DEFAULT_CASE_STATUS,
        access_password: str = "",
        vakalatnama: bool = False,
        online_link_letter: bool = False,
    ) -> CaseRecord:
        def _create() -> CaseRecord:
            case = CaseRecord(
                client_name=_required(client_name, "client_name"),
                bank_name=_required(bank_name, "bank_name"),
                case_type=(case_type or "").strip(),
                hearing_date=hearing_date,
                hearing_time=(hearing_time or "").strip(),
                status=(status or "").strip() or DEFAULT_CASE_STATUS,
                meeting_link=(meeting_link or "").strip(),
                access_password=(access_password or "").strip(),
                vakalatnama=_checkbox(vakalatnama, "vakalatnama"),
                online_link_letter=_checkbox(online_link_letter, "online_link_letter"),
                team_emails=parse_emails(team_emails),
                remarks=remarks or "",
                email_sent=False,
                created_by=actor.name,
            )
            self._session.add(case)
            self._session.flush()
            self._auditor.record(
                ENTITY_TYPE,
                case.id,
                AuditAction.CASE_CREATED,
                actor,
                {"client_name": case.client_name, "bank_name": case.bank_name,
                 "hearing_date": case.hearing_date},
            )
            return case

        case = run_in_transaction(self._session, _create, "create_case")
        logger.info("case_created", extra={"case_id": str(case.id), "bank_name": case.bank_name})
        return case

    def update_case(self, case_id: UUID, editor: Actor, **changes: Any) -> ChangeSet:
        """Edit mutable fields.  Any real change clears the email flag.

        Raises:
            ValidationError: Unknown field or malformed value.
            NoChangeError: Every value equals the stored one.
        """
        if "team_emails" in changes:
            changes["team_emails"] = parse_emails(changes["team_emails"])
        for field in ("client_name", "bank_name", "status"):
            if field in changes:
                changes[field] = _required(changes[field], field)
        for field in CASE_FLAG_FIELDS:
            if field in changes:
                changes[field] = _checkbox(changes[field], field)

        with LogContext.bind(actor=editor.name):
            return run_in_transaction(
                self._session,
                lambda: self._invalidation.apply_edit(
                    self.get_case(case_id),
                    entity_type=ENTITY_TYPE,
                    changes=changes,
                    editor=editor,
                    flag=CASE_EMAIL,
                    mutable_fields=CASE_MUTABLE_FIELDS,
                ),
                "update_case",
            )

    def mark_email_sent(self, case_id: UUID, actor: Actor) -> CaseRecord:
        """Record that the hearing email went out by some other channel."""
        case = self.get_case(case_id)
        run_in_transaction(
            self._session,
            lambda: self._invalidation.mark_sent(
                case, entity_type=ENTITY_TYPE, flag=CASE_EMAIL, actor=actor,
            ),
            "mark_case_email_sent",
        )
        return case

    # =========================================================================
    # Notification
    # =========================================================================

    def bank_emails(self, case: CaseRecord) -> tuple[str, ...]:
        """Registry emails for the case's bank, or nothing if it does not resolve."""
        if self._registry is None:
            return ()
        try:
            return self._registry.lookup_contact(case.bank_name).emails
        except CounterpartyNotFoundError:
            logger.warning(
                "case_bank_unresolved",
                extra={"case_id": str(case.id), "bank_name": case.bank_name},
            )
            return ()

    def send_hearing_email(self, case_id: UUID, actor: Actor) -> DispatchResult:
        """Dispatch the hearing email once and set the flag if it was delivered."""
        case = self.get_case(case_id)
        recipients = list(case.team_emails) + [
            e for e in self.bank_emails(case) if e not in case.team_emails
        ]
        result = dispatch_notification(
            self._notifier,
            HEARING_EMAIL_NOTIFICATION,
            str(case.id),
            {
                "client_name": case.client_name,
                "bank_name": case.bank_name,
                "case_type": case.case_type,
                "hearing_date": case.hearing_date.isoformat() if case.hearing_date else None,
                "hearing_time": case.hearing_time,
                "meeting_link": case.meeting_link,
                "access_password": case.access_password,
                "recipients": recipients,
                "sent_by": actor.name,
            },
        )
        if result.delivered:
            self.mark_email_sent(case_id, actor)
        return result
