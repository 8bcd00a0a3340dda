"""
ledger_engines.change_detection -- Field-level diff of a proposed edit.

Responsibility:
    Compare the proposed values of an edit against the stored values,
    field by field, and report only the fields that actually differ.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - List fields compare as sets of non-blank entries: order, blanks and
      surrounding whitespace are ignored.
    - Decimal fields compare numerically (5000 == 5000.00 == "5000").
    - None and "" are the same blank value for scalar fields.
    - Fields absent from ``proposed`` are never reported.

Failure modes:
    - KeyError if ``proposed`` names a field missing from ``current``.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from ledger_kernel.domain.invalidation import FieldChange


def _normalize_list(values: Any) -> tuple[str, ...]:
    if values is None:
        return ()
    if isinstance(values, str):
        values = values.split(",")
    cleaned = {str(v).strip() for v in values if v is not None}
    cleaned.discard("")
    return tuple(sorted(cleaned))


def _as_decimal(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value).strip().replace(",", ""))
    except InvalidOperation:
        return None


def _blank(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def values_equal(current: Any, proposed: Any) -> bool:
    """Whether ``proposed`` leaves ``current`` unchanged."""
    if isinstance(current, (list, tuple, set, frozenset)) or isinstance(
        proposed, (list, tuple, set, frozenset)
    ):
        return _normalize_list(current) == _normalize_list(proposed)

    if isinstance(current, Decimal) or isinstance(proposed, Decimal):
        left, right = _as_decimal(current), _as_decimal(proposed)
        if left is None or right is None:
            return left is None and right is None and _blank(current) == _blank(proposed)
        return left == right

    return _blank(current) == _blank(proposed)


def detect_changes(
    current: Mapping[str, Any],
    proposed: Mapping[str, Any],
) -> tuple[FieldChange, ...]:
    """Fields of ``proposed`` whose value differs from ``current``.

    Args:
        current: Stored values keyed by field name.
        proposed: New values for some or all of those fields.

    Returns:
        One FieldChange per differing field, in ``proposed`` order.
    """
    changes: list[FieldChange] = []
    for field, new_value in proposed.items():
        old_value = current[field]
        if not values_equal(old_value, new_value):
            changes.append(FieldChange(field=field, old_value=old_value, new_value=new_value))
    return tuple(changes)
