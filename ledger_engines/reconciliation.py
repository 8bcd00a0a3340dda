"""
ledger_engines.reconciliation -- Freeform counterparty name resolution.

Responsibility:
    Normalize institution names typed by staff, compute Levenshtein
    similarity, and resolve a freeform name to one canonical registry
    name via exact match, alias table, then best similarity above a
    threshold.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import ledger_kernel/domain/ types.

Invariants enforced:
    - normalize() is idempotent: suffix stripping repeats until stable.
    - Similarity is computed in Decimal; a similarity exactly equal to
      the threshold matches.
    - Candidates are scanned in lexicographic order, and similarity ties
      go to the lexicographically smallest name, so the same inputs
      always resolve the same way.
    - An input that normalizes to the empty string never matches.

Failure modes:
    - None raised.  A miss is a Resolution with method NONE.

Complexity:
    O(k * n * m) for k candidates of length m and an input of length n.
    Callers that resolve repeatedly should memoize (see
    CounterpartyRegistryService).
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from decimal import Decimal

from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.counterparty import MatchMethod, Resolution

DEFAULT_SUFFIXES: tuple[str, ...] = (
    "bank",
    "limited",
    "ltd",
    "inc",
    "corporation",
    "corp",
)

DEFAULT_THRESHOLD = Decimal("0.70")

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def _suffix_pattern(suffixes: Iterable[str]) -> re.Pattern[str] | None:
    cleaned = {_NON_ALNUM.sub("", s.lower()) for s in suffixes}
    cleaned.discard("")
    if not cleaned:
        return None
    # Longest first so "corporation" wins over "corp"
    ordered = sorted(cleaned, key=lambda s: (-len(s), s))
    return re.compile("|".join(re.escape(s) for s in ordered))


def normalize(name: str | None, suffixes: Iterable[str] = DEFAULT_SUFFIXES) -> str:
    """Canonical comparison form of an institution name.

    Lower-cases, drops every non-alphanumeric character, then removes
    corporate suffix tokens wherever they occur.  Removal repeats until
    nothing changes, so "bbankank" reduces all the way to "".

    >>> normalize("HDFC Bank Ltd.")
    'hdfc'
    """
    if not name:
        return ""
    text = _NON_ALNUM.sub("", name.lower())
    pattern = _suffix_pattern(suffixes)
    if pattern is None:
        return text
    while True:
        stripped = pattern.sub("", text)
        if stripped == text:
            return text.strip()
        text = stripped


def build_alias_table(
    aliases: Mapping[str, str],
    suffixes: Iterable[str] = DEFAULT_SUFFIXES,
) -> dict[str, str]:
    """Normalize both sides of a raw alias table.

    Entries whose key or target normalizes to "" are dropped.  When two
    raw keys collapse to the same normalized key the later one wins.
    """
    suffixes = tuple(suffixes)
    table: dict[str, str] = {}
    for raw_key, raw_target in aliases.items():
        key = normalize(raw_key, suffixes)
        target = normalize(raw_target, suffixes)
        if key and target:
            table[key] = target
    return table


def levenshtein_distance(a: str, b: str) -> int:
    """Minimum single-character insertions, deletions and substitutions."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    if len(a) < len(b):
        a, b = b, a

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + cost,
                )
            )
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> Decimal:
    """``1 - distance / max(len(a), len(b))`` as an exact Decimal."""
    longest = max(len(a), len(b))
    if longest == 0:
        return Decimal("0")
    return Decimal(1) - Decimal(levenshtein_distance(a, b)) / Decimal(longest)


@traced_engine(
    "reconciliation",
    "1.0",
    fingerprint_fields=("freeform_name", "candidates", "threshold"),
)
def resolve(
    *,
    freeform_name: str | None,
    candidates: Iterable[str],
    aliases: Mapping[str, str] | None = None,
    threshold: Decimal = DEFAULT_THRESHOLD,
    suffixes: Iterable[str] = DEFAULT_SUFFIXES,
) -> Resolution:
    """Resolve a freeform name to one of ``candidates``.

    Args:
        freeform_name: Name as typed by staff.
        candidates: Canonical registry names.
        aliases: Alias table already passed through build_alias_table().
        threshold: Minimum similarity for a fuzzy match.
        suffixes: Corporate suffixes stripped by normalize().

    Returns:
        Resolution naming the matched candidate (original spelling) and
        how it was found.
    """
    suffixes = tuple(suffixes)
    query = freeform_name or ""
    target = normalize(query, suffixes)
    if not target:
        return Resolution(query, None, MatchMethod.NONE, Decimal("0"))

    normalized: list[tuple[str, str]] = []
    for name in sorted(set(candidates)):
        norm = normalize(name, suffixes)
        if norm:
            normalized.append((name, norm))

    for name, norm in normalized:
        if norm == target:
            return Resolution(query, name, MatchMethod.EXACT, Decimal("1"))

    alias_target = (aliases or {}).get(target)
    if alias_target:
        for name, norm in normalized:
            if norm == alias_target:
                return Resolution(query, name, MatchMethod.ALIAS, Decimal("1"))

    best_name: str | None = None
    best_score = Decimal("0")
    for name, norm in normalized:
        score = similarity(target, norm)
        # Strictly greater keeps the lexicographically first name on ties
        if best_name is None or score > best_score:
            best_name, best_score = name, score

    if best_name is not None and best_score >= threshold:
        return Resolution(query, best_name, MatchMethod.SIMILARITY, best_score)
    return Resolution(query, None, MatchMethod.NONE, best_score)
