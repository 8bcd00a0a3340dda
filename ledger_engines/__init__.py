"""
Module: ledger_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the import surface for the kernel
    services and the modules.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import ledger_kernel/domain/ types and ledger_kernel.exceptions.
    MUST NOT import ledger_kernel.services or ledger_modules.

Invariants enforced:
    - Purity: engines never read the clock.  Dates are passed in.
    - Decimal-only arithmetic for money and similarity scores.
    - Determinism: identical inputs always produce identical outputs.
"""

from ledger_engines.change_detection import detect_changes, values_equal
from ledger_engines.reconciliation import (
    DEFAULT_SUFFIXES,
    DEFAULT_THRESHOLD,
    build_alias_table,
    levenshtein_distance,
    normalize,
    resolve,
    similarity,
)
from ledger_engines.schedule import (
    aggregate,
    apply_payment,
    build_schedule,
    derive_status,
    due_date_for,
    synthesize_obligation,
    upcoming,
    validate_month,
    week_of_month,
)
from ledger_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "DEFAULT_SUFFIXES",
    "DEFAULT_THRESHOLD",
    "aggregate",
    "apply_payment",
    "build_alias_table",
    "build_schedule",
    "compute_input_fingerprint",
    "derive_status",
    "detect_changes",
    "due_date_for",
    "levenshtein_distance",
    "normalize",
    "resolve",
    "similarity",
    "synthesize_obligation",
    "traced_engine",
    "upcoming",
    "validate_month",
    "values_equal",
    "week_of_month",
]
