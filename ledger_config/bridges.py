"""
Config-to-kernel bridges (``ledger_config.bridges``).

The kernel never imports ``ledger_config``.  These helpers turn a
``LedgerConfig`` into the plain values kernel services take as
constructor arguments.
"""

from __future__ import annotations

from typing import Any

from ledger_config.schema import LedgerConfig
from ledger_kernel.domain.counterparty import CounterpartyContact


def reconciliation_kwargs(config: LedgerConfig) -> dict[str, Any]:
    """Keyword arguments for CounterpartyRegistryService."""
    settings = config.reconciliation
    return {
        "aliases": settings.alias_map,
        "threshold": settings.similarity_threshold,
        "suffixes": settings.corporate_suffixes,
        "cache_size": settings.cache_size,
    }


def counterparty_seed(config: LedgerConfig) -> tuple[CounterpartyContact, ...]:
    return tuple(
        CounterpartyContact(name=s.name, address=s.address, emails=s.emails)
        for s in config.counterparties
    )
