"""
ledger_config -- single public entrypoint for ledger configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration
    files or environment variables directly.

Architecture position:
    Configuration -- YAML-driven settings.  Sits above ``ledger_kernel``
    and below ``ledger_modules``.  The kernel MUST NEVER import from
    ``ledger_config``; ``ledger_config.bridges`` translates settings into
    kernel constructor arguments.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Validation at load: out-of-range values fail before any service is built.
    - Deterministic identity: the same file always yields the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- configured path does not exist.
    - ``ValueError`` / ``KeyError`` -- schema validation failures.
    - ``yaml.YAMLError`` -- malformed file.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``LEDGER_CONFIG_TRACE`` log entry with the config id, version and
    checksum, tying every resolution and reminder run to the exact
    configuration that governed it.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from ledger_config.loader import load_config
from ledger_config.schema import (
    CounterpartySeed,
    LedgerConfig,
    OpsSettings,
    PaymentSettings,
    ReconciliationSettings,
)

_logger = logging.getLogger("ledger_kernel.config")

CONFIG_PATH_ENV = "LEDGER_CONFIG_PATH"

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "ledger.yaml"


def get_active_config(path: Path | str | None = None) -> LedgerConfig:
    """The ONLY public configuration entrypoint.

    Resolution order for the file: the ``path`` argument, then the
    ``LEDGER_CONFIG_PATH`` environment variable, then the packaged
    default.

    Args:
        path: Explicit config file.

    Returns:
        The validated, frozen LedgerConfig.

    Raises:
        FileNotFoundError: If the resolved file does not exist.
        ValueError: If validation fails.
    """
    resolved = Path(path or os.environ.get(CONFIG_PATH_ENV) or _DEFAULT_CONFIG_PATH)
    if not resolved.is_file():
        raise FileNotFoundError(f"Ledger configuration not found: {resolved}")

    config = load_config(resolved)

    _logger.info(
        "LEDGER_CONFIG_TRACE",
        extra={
            "trace_type": "LEDGER_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source_path": str(resolved),
            "alias_count": len(config.reconciliation.aliases),
            "counterparty_count": len(config.counterparties),
        },
    )
    return config


__all__ = [
    "CONFIG_PATH_ENV",
    "CounterpartySeed",
    "LedgerConfig",
    "OpsSettings",
    "PaymentSettings",
    "ReconciliationSettings",
    "get_active_config",
]
