"""Arbitration case records (``ledger_modules.cases``)."""

from ledger_modules.cases.service import CaseService

__all__ = ["CaseService"]
