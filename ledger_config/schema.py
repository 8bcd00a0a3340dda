"""
Configuration Schema (``ledger_config.schema``).

Responsibility
--------------
Frozen dataclasses describing every setting the ledger reads from YAML:
reconciliation tuning (threshold, suffixes, aliases), the counterparty
registry seed, ops reference lists, and payment listing defaults.

Architecture position
---------------------
**Config layer** -- pure data definitions, no I/O.  Consumed by the
loader (which builds them) and by the bridges (which hand them to the
kernel as plain values).

Invariants enforced
-------------------
* Similarity threshold lies in (0, 1].
* At least one corporate suffix is configured.
* Counterparty seed names are unique (case-insensitive).
* Ops reference lists are non-empty.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class ReconciliationSettings:
    """Tuning for freeform counterparty resolution."""

    similarity_threshold: Decimal = Decimal("0.70")
    corporate_suffixes: tuple[str, ...] = (
        "bank",
        "limited",
        "ltd",
        "inc",
        "corporation",
        "corp",
    )
    aliases: tuple[tuple[str, str], ...] = ()
    cache_size: int = 1024

    def __post_init__(self) -> None:
        if not (Decimal("0") < self.similarity_threshold <= Decimal("1")):
            raise ValueError(
                f"similarity_threshold must be in (0, 1], got {self.similarity_threshold}"
            )
        if not any(s.strip() for s in self.corporate_suffixes):
            raise ValueError("corporate_suffixes must not be empty")
        if self.cache_size < 0:
            raise ValueError(f"cache_size must be >= 0, got {self.cache_size}")

    @property
    def alias_map(self) -> dict[str, str]:
        return dict(self.aliases)


@dataclass(frozen=True)
class CounterpartySeed:
    """One canonical institution shipped with the default config."""

    name: str
    address: str = ""
    emails: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("counterparty seed name must not be blank")


@dataclass(frozen=True)
class OpsSettings:
    """Reference lists offered on the ops expense form."""

    sources: tuple[str, ...] = ("credsettlee", "ama", "settleloans", "billcut")
    types: tuple[str, ...] = ("Client visit", "Arbitration", "Fees", "Miscellaneous")

    def __post_init__(self) -> None:
        if not self.sources:
            raise ValueError("ops sources must not be empty")
        if not self.types:
            raise ValueError("ops types must not be empty")


@dataclass(frozen=True)
class PaymentSettings:
    """Defaults for payment listings and reminders."""

    history_limit: int = 10
    reminder_window_days: int = 7

    def __post_init__(self) -> None:
        if self.history_limit < 1:
            raise ValueError(f"history_limit must be >= 1, got {self.history_limit}")
        if self.reminder_window_days < 0:
            raise ValueError(
                f"reminder_window_days must be >= 0, got {self.reminder_window_days}"
            )


@dataclass(frozen=True)
class LedgerConfig:
    """The complete, validated configuration."""

    config_id: str
    version: int
    reconciliation: ReconciliationSettings = field(default_factory=ReconciliationSettings)
    counterparties: tuple[CounterpartySeed, ...] = ()
    ops: OpsSettings = field(default_factory=OpsSettings)
    payments: PaymentSettings = field(default_factory=PaymentSettings)
    checksum: str = ""

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for seed in self.counterparties:
            key = seed.name.strip().lower()
            if key in seen:
                raise ValueError(f"Duplicate counterparty seed: {seed.name}")
            seen.add(key)
