"""
Counterparty Directory Module Service (``ledger_modules.counterparties.service``).

Responsibility
--------------
Transactional facade over ``CounterpartyRegistryService``: registry
administration, seeding from configuration, freeform name resolution
and contact lookup for document generation.

Architecture position
---------------------
**Modules layer**.  The only place where ``LedgerConfig`` reconciliation
settings are turned into a registry service (through
``ledger_config.bridges``).

Failure modes
-------------
* ``DuplicateCounterpartyError`` / ``ValidationError`` on add or update.
* ``CounterpartyNotFoundError`` from ``lookup_contact`` and by-id access.
* ``NoChangeError`` from an update that changes nothing.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_config.bridges import counterparty_seed, reconciliation_kwargs
from ledger_config.schema import LedgerConfig
from ledger_kernel.domain.approval import SYSTEM_ACTOR, Actor
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.counterparty import CounterpartyContact, Resolution
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.counterparty import CounterpartyRecord
from ledger_kernel.services.auditor_service import AuditorService
from ledger_kernel.services.counterparty_registry import CounterpartyRegistryService
from ledger_modules._helpers import run_in_transaction

logger = get_logger("modules.counterparties.service")


class CounterpartyDirectory:
    """Registry administration and resolution, one transaction per call."""

    def __init__(
        self,
        session: Session,
        config: LedgerConfig,
        clock: Clock | None = None,
    ):
        self._session = session
        self._config = config
        self._clock = clock or SystemClock()

        self._auditor = AuditorService(session, self._clock)
        self._registry = CounterpartyRegistryService(
            session,
            self._auditor,
            self._clock,
            **reconciliation_kwargs(config),
        )

    @property
    def registry(self) -> CounterpartyRegistryService:
        return self._registry

    def seed_from_config(self, actor: Actor = SYSTEM_ACTOR) -> int:
        """Add configured counterparties that are not registered yet."""
        added = run_in_transaction(
            self._session,
            lambda: self._registry.seed(counterparty_seed(self._config), actor),
            "seed_counterparties",
        )
        logger.info(
            "counterparty_seed_committed",
            extra={"config_id": self._config.config_id, "added": added},
        )
        return added

    # =========================================================================
    # Administration
    # =========================================================================

    def add(
        self,
        name: str,
        actor: Actor,
        address: str = "",
        emails: str | Iterable[str] | None = None,
    ) -> CounterpartyRecord:
        return run_in_transaction(
            self._session,
            lambda: self._registry.add(name, actor, address=address, emails=emails),
            "add_counterparty",
        )

    def update(
        self,
        record_id: UUID,
        actor: Actor,
        *,
        name: str | None = None,
        address: str | None = None,
        emails: str | Iterable[str] | None = None,
    ) -> CounterpartyRecord:
        return run_in_transaction(
            self._session,
            lambda: self._registry.update(
                record_id, actor, name=name, address=address, emails=emails,
            ),
            "update_counterparty",
        )

    def delete(self, record_id: UUID, actor: Actor) -> None:
        run_in_transaction(
            self._session,
            lambda: self._registry.delete(record_id, actor),
            "delete_counterparty",
        )

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, record_id: UUID) -> CounterpartyRecord:
        return self._registry.get(record_id)

    def list_all(self) -> list[CounterpartyRecord]:
        return self._registry.list_all()

    def names(self) -> tuple[str, ...]:
        return self._registry.names()

    def resolve_counterparty(self, freeform_name: str | None) -> Resolution:
        return self._registry.resolve_counterparty(freeform_name)

    def lookup_contact(self, freeform_name: str | None) -> CounterpartyContact:
        return self._registry.lookup_contact(freeform_name)
