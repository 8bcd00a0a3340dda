"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Load the ledger YAML file and parse it into the frozen dataclasses of
``ledger_config.schema``.  Runtime callers go through
``ledger_config.get_active_config()``; this module is its internals.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Out-of-range values  -> ``ValueError`` from the schema dataclasses.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import (
    CounterpartySeed,
    LedgerConfig,
    OpsSettings,
    PaymentSettings,
    ReconciliationSettings,
)
from ledger_kernel.utils.hashing import hash_text


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file; an empty file yields an empty dict."""
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def compute_checksum(path: Path) -> str:
    """SHA-256 of the raw file text."""
    return hash_text(path.read_text())


def _parse_decimal(value: Any, name: str) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{name} must be a number, got {value!r}") from None


def _parse_emails(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = value.split(",")
    return tuple(e.strip() for e in value if e and str(e).strip())


def parse_reconciliation(data: dict[str, Any]) -> ReconciliationSettings:
    defaults = ReconciliationSettings()
    aliases = data.get("aliases") or {}
    if not isinstance(aliases, dict):
        raise ValueError("reconciliation.aliases must be a mapping")
    return ReconciliationSettings(
        similarity_threshold=_parse_decimal(
            data.get("similarity_threshold", defaults.similarity_threshold),
            "reconciliation.similarity_threshold",
        ),
        corporate_suffixes=tuple(
            data.get("corporate_suffixes", defaults.corporate_suffixes)
        ),
        aliases=tuple((str(k), str(v)) for k, v in aliases.items()),
        cache_size=int(data.get("cache_size", defaults.cache_size)),
    )


def parse_counterparty(data: dict[str, Any]) -> CounterpartySeed:
    return CounterpartySeed(
        name=data["name"],
        address=data.get("address", "") or "",
        emails=_parse_emails(data.get("emails")),
    )


def parse_ops(data: dict[str, Any]) -> OpsSettings:
    defaults = OpsSettings()
    return OpsSettings(
        sources=tuple(data.get("sources", defaults.sources)),
        types=tuple(data.get("types", defaults.types)),
    )


def parse_payments(data: dict[str, Any]) -> PaymentSettings:
    defaults = PaymentSettings()
    return PaymentSettings(
        history_limit=int(data.get("history_limit", defaults.history_limit)),
        reminder_window_days=int(
            data.get("reminder_window_days", defaults.reminder_window_days)
        ),
    )


def parse_config(data: dict[str, Any], checksum: str = "") -> LedgerConfig:
    """Build a LedgerConfig from an already-loaded mapping."""
    return LedgerConfig(
        config_id=data["config_id"],
        version=int(data.get("version", 1)),
        reconciliation=parse_reconciliation(data.get("reconciliation") or {}),
        counterparties=tuple(
            parse_counterparty(c) for c in data.get("counterparties") or ()
        ),
        ops=parse_ops(data.get("ops") or {}),
        payments=parse_payments(data.get("payments") or {}),
        checksum=checksum,
    )


def load_config(path: Path) -> LedgerConfig:
    """Load, parse and validate one config file."""
    return parse_config(load_yaml_file(path), checksum=compute_checksum(path))
