"""
billing_config -- single public entrypoint for billing configuration.

Responsibility:
    ``get_active_config()`` is the only way services, sweeps and scripts
    obtain configuration.  It reads a YAML file (the bundled
    ``defaults.yaml`` unless another path is given), validates it into a
    frozen ``BillingConfig`` and emits a ``BILLING_CONFIG_TRACE`` log record
    carrying the checksum of the loaded file.

Failure modes:
    - ``FileNotFoundError`` for a missing file.
    - ``ValueError`` for unknown keys or out-of-range values.
"""

from __future__ import annotations

from pathlib import Path

from billing_config.loader import load_yaml_file, parse_config
from billing_config.schema import (
    BillingConfig,
    CostConfig,
    DunningConfig,
    InvoiceConfig,
    MoneyConfig,
    NumberingConfig,
    QuoteConfig,
)
from billing_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(path: Path | None = None) -> BillingConfig:
    """Load, validate and trace the active configuration."""
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    config = parse_config(load_yaml_file(config_path))

    _logger.info(
        "BILLING_CONFIG_TRACE",
        extra={
            "trace_type": "BILLING_CONFIG_TRACE",
            "config_path": str(config_path),
            "checksum": config.checksum,
            "allowed_tax_rates": [str(r) for r in config.money.allowed_tax_rates],
            "approval_threshold": str(config.cost.approval_threshold),
            "dunning_max_level": config.dunning.max_level,
        },
    )
    return config


__all__ = [
    "BillingConfig",
    "CostConfig",
    "DEFAULT_CONFIG_PATH",
    "DunningConfig",
    "InvoiceConfig",
    "MoneyConfig",
    "NumberingConfig",
    "QuoteConfig",
    "get_active_config",
]
