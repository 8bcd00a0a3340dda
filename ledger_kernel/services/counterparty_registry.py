"""
CounterpartyRegistryService -- canonical institution registry and resolver.

Responsibility:
    Maintains the counterparty registry (add / update / delete / list),
    and resolves freeform institution names typed by staff to registry
    entries through ledger_engines.reconciliation, memoizing results.

Architecture position:
    Kernel > Services.  Leaf dependency of the document and contact
    lookups.  Resolution settings (aliases, threshold, suffixes) arrive
    as constructor arguments; ledger_config.bridges builds them.

Invariants enforced:
    - Registry names are unique, compared case-insensitively after
      trimming.
    - Emails are stored as a list of trimmed, non-blank addresses, whether
      they arrived as a list or as a comma-separated string.
    - Every registry mutation clears the resolution cache, so a resolve
      after add/update/delete never sees a stale candidate list.

Failure modes:
    - DuplicateCounterpartyError on a name clash.
    - ValidationError for a blank name or a malformed email.
    - CounterpartyNotFoundError from get() / lookup_contact().
    - NoChangeError from update() when nothing differs.

Audit relevance:
    COUNTERPARTY_ADDED / _UPDATED / _DELETED events.

Non-goals:
    - The cache is per service instance.  Mutations made through another
      session are seen once this instance's cache is cleared or rebuilt.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ledger_engines.change_detection import detect_changes
from ledger_engines.reconciliation import (
    DEFAULT_SUFFIXES,
    DEFAULT_THRESHOLD,
    build_alias_table,
    resolve,
)
from ledger_kernel.domain.approval import Actor
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.counterparty import CounterpartyContact, Resolution
from ledger_kernel.exceptions import (
    CounterpartyNotFoundError,
    DuplicateCounterpartyError,
    NoChangeError,
    ValidationError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.audit_event import AuditAction
from ledger_kernel.models.counterparty import CounterpartyRecord
from ledger_kernel.services.auditor_service import AuditorService
from ledger_kernel.services.base import BaseService

logger = get_logger("services.counterparty_registry")


def parse_emails(emails: str | Iterable[str] | None) -> list[str]:
    """Accept a list or a comma-separated string; return trimmed addresses."""
    if emails is None:
        return []
    if isinstance(emails, str):
        emails = emails.split(",")
    cleaned: list[str] = []
    for raw in emails:
        email = (raw or "").strip()
        if not email:
            continue
        if "@" not in email or email.startswith("@") or email.endswith("@"):
            raise ValidationError("emails", f"not an email address: '{email}'", email)
        if email not in cleaned:
            cleaned.append(email)
    return cleaned


class CounterpartyRegistryService(BaseService):
    """Registry CRUD plus memoized freeform name resolution."""

    def __init__(
        self,
        session: Session,
        auditor: AuditorService,
        clock: Clock | None = None,
        *,
        aliases: Mapping[str, str] | None = None,
        threshold: Decimal = DEFAULT_THRESHOLD,
        suffixes: Iterable[str] = DEFAULT_SUFFIXES,
        cache_size: int = 1024,
    ):
        super().__init__(session, clock)
        self._auditor = auditor
        self._suffixes = tuple(suffixes)
        self._aliases = build_alias_table(aliases or {}, self._suffixes)
        self._threshold = threshold
        self._cache_size = cache_size
        self._cache: dict[str, Resolution] = {}
        self._names: tuple[str, ...] | None = None

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def invalidate_cache(self) -> None:
        self._cache.clear()
        self._names = None

    @property
    def cache_info(self) -> dict[str, int]:
        return {"entries": len(self._cache), "max_entries": self._cache_size}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, record_id: UUID) -> CounterpartyRecord:
        record = self.session.get(CounterpartyRecord, record_id)
        if record is None:
            raise CounterpartyNotFoundError(str(record_id))
        return record

    def get_by_name(self, name: str) -> CounterpartyRecord | None:
        """Exact (case-sensitive) registry name hit."""
        return self.session.execute(
            select(CounterpartyRecord).where(CounterpartyRecord.name == name)
        ).scalar_one_or_none()

    def list_all(self) -> list[CounterpartyRecord]:
        return list(
            self.session.execute(
                select(CounterpartyRecord).order_by(CounterpartyRecord.name)
            ).scalars()
        )

    def names(self) -> tuple[str, ...]:
        if self._names is None:
            self._names = tuple(
                self.session.execute(
                    select(CounterpartyRecord.name).order_by(CounterpartyRecord.name)
                ).scalars()
            )
        return self._names

    def contacts(self) -> dict[str, CounterpartyContact]:
        """Registry as name -> contact."""
        return {r.name: r.to_contact() for r in self.list_all()}

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _check_name(self, name: str, exclude_id: UUID | None = None) -> str:
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValidationError("name", "counterparty name is required", name)
        stmt = select(CounterpartyRecord.id).where(
            func.lower(CounterpartyRecord.name) == cleaned.lower()
        )
        if exclude_id is not None:
            stmt = stmt.where(CounterpartyRecord.id != exclude_id)
        if self.session.execute(stmt).first() is not None:
            raise DuplicateCounterpartyError(cleaned)
        return cleaned

    def add(
        self,
        name: str,
        actor: Actor,
        address: str = "",
        emails: str | Iterable[str] | None = None,
    ) -> CounterpartyRecord:
        record = CounterpartyRecord(
            name=self._check_name(name),
            address=(address or "").strip(),
            emails=parse_emails(emails),
            created_by=actor.name,
        )
        self.session.add(record)
        self.session.flush()
        self.invalidate_cache()

        self._auditor.record(
            "Counterparty",
            record.id,
            AuditAction.COUNTERPARTY_ADDED,
            actor,
            {"name": record.name, "emails": record.emails},
        )
        logger.info("counterparty_added", extra={"counterparty": record.name})
        return record

    def update(
        self,
        record_id: UUID,
        actor: Actor,
        *,
        name: str | None = None,
        address: str | None = None,
        emails: str | Iterable[str] | None = None,
    ) -> CounterpartyRecord:
        """Change any of name / address / emails.

        Raises:
            NoChangeError: Every supplied value equals the stored one.
        """
        record = self.get(record_id)
        proposed: dict[str, object] = {}
        if name is not None:
            proposed["name"] = name.strip()
        if address is not None:
            proposed["address"] = address.strip()
        if emails is not None:
            proposed["emails"] = parse_emails(emails)

        diff = detect_changes(
            {"name": record.name, "address": record.address, "emails": record.emails},
            proposed,
        )
        if not diff:
            raise NoChangeError("Counterparty", str(record_id))

        for change in diff:
            if change.field == "name":
                record.name = self._check_name(str(change.new_value), exclude_id=record.id)
            else:
                setattr(record, change.field, change.new_value)
        record.updated_by = actor.name
        self.session.flush()
        self.invalidate_cache()

        self._auditor.record(
            "Counterparty",
            record.id,
            AuditAction.COUNTERPARTY_UPDATED,
            actor,
            {"changed_fields": [c.field for c in diff]},
        )
        logger.info(
            "counterparty_updated",
            extra={"counterparty": record.name, "changed_fields": [c.field for c in diff]},
        )
        return record

    def delete(self, record_id: UUID, actor: Actor) -> None:
        record = self.get(record_id)
        name = record.name
        self._auditor.record(
            "Counterparty",
            record.id,
            AuditAction.COUNTERPARTY_DELETED,
            actor,
            {"name": name},
        )
        self.session.delete(record)
        self.session.flush()
        self.invalidate_cache()
        logger.info("counterparty_deleted", extra={"counterparty": name})

    def seed(self, contacts: Iterable[CounterpartyContact], actor: Actor) -> int:
        """Add every contact whose name is not yet registered.  Returns the count added."""
        existing = {n.lower() for n in self.names()}
        added = 0
        for contact in contacts:
            if contact.name.strip().lower() in existing:
                continue
            self.add(contact.name, actor, address=contact.address, emails=contact.emails)
            existing.add(contact.name.strip().lower())
            added += 1
        logger.info("counterparty_registry_seeded", extra={"added": added})
        return added

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve_counterparty(self, freeform_name: str | None) -> Resolution:
        """Resolve a freeform name against the current registry names."""
        key = freeform_name or ""
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        resolution = resolve(
            freeform_name=key,
            candidates=list(self.names()),
            aliases=self._aliases,
            threshold=self._threshold,
            suffixes=self._suffixes,
        )

        if self._cache_size > 0:
            if len(self._cache) >= self._cache_size:
                self._cache.pop(next(iter(self._cache)))
            self._cache[key] = resolution

        logger.info(
            "counterparty_resolved",
            extra={
                "query": key,
                "matched_name": resolution.matched_name,
                "method": resolution.method.value,
                "similarity": str(resolution.similarity),
            },
        )
        return resolution

    def lookup_contact(self, freeform_name: str | None) -> CounterpartyContact:
        """Registry contact for a freeform name.

        Direct name hit first, then fuzzy resolution.

        Raises:
            CounterpartyNotFoundError: Nothing matches.
        """
        if freeform_name:
            direct = self.get_by_name(freeform_name)
            if direct is not None:
                return direct.to_contact()

        resolution = self.resolve_counterparty(freeform_name)
        if resolution.matched_name is not None:
            record = self.get_by_name(resolution.matched_name)
            if record is not None:
                return record.to_contact()

        logger.warning(
            "counterparty_unresolved",
            extra={"query": freeform_name, "similarity": str(resolution.similarity)},
        )
        raise CounterpartyNotFoundError(freeform_name or "")
