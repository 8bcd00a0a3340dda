"""
Counterparty domain types (``ledger_kernel.domain.counterparty``).

Pure value objects for resolving freeform institution names against the
counterparty registry.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class MatchMethod(str, Enum):
    """How a freeform name was resolved."""

    EXACT = "exact"
    ALIAS = "alias"
    SIMILARITY = "similarity"
    NONE = "none"


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one freeform name.

    ``similarity`` is 1 for exact and alias hits, the best Levenshtein
    similarity for similarity hits and misses, and 0 for empty input.
    """

    query: str
    matched_name: str | None
    method: MatchMethod
    similarity: Decimal

    @property
    def matched(self) -> bool:
        return self.matched_name is not None


@dataclass(frozen=True)
class CounterpartyContact:
    """Canonical registry entry as handed to callers."""

    name: str
    address: str
    emails: tuple[str, ...] = ()
