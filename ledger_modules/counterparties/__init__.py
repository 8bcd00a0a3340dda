"""Counterparty registry facade (``ledger_modules.counterparties``)."""

from ledger_modules.counterparties.service import CounterpartyDirectory

__all__ = ["CounterpartyDirectory"]
