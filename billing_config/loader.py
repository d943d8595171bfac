"""
Configuration Loader (``billing_config.loader``).

Loads a YAML file and parses it into ``billing_config.schema`` dataclasses.
Runtime callers go through ``billing_config.get_active_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown section or key  -> ``ValueError``.
* Out-of-range value  -> ``ValueError`` from the schema ``__post_init__``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from billing_config.schema import (
    BillingConfig,
    CostConfig,
    DunningConfig,
    InvoiceConfig,
    MoneyConfig,
    NumberingConfig,
    QuoteConfig,
)

_SECTIONS: dict[str, type] = {
    "money": MoneyConfig,
    "numbering": NumberingConfig,
    "quote": QuoteConfig,
    "invoice": InvoiceConfig,
    "dunning": DunningConfig,
    "cost": CostConfig,
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _parse_section(name: str, data: dict[str, Any] | None) -> Any:
    cls = _SECTIONS[name]
    data = dict(data or {})
    known = set(cls.__dataclass_fields__)
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown keys in config section '{name}': {sorted(unknown)}")
    if name == "money" and "allowed_tax_rates" in data:
        data["allowed_tax_rates"] = tuple(data["allowed_tax_rates"])
    return cls(**data)


def parse_config(data: dict[str, Any]) -> BillingConfig:
    """Parse a configuration dict (as loaded from YAML) into BillingConfig."""
    unknown = set(data) - set(_SECTIONS)
    if unknown:
        raise ValueError(f"Unknown config sections: {sorted(unknown)}")
    sections = {name: _parse_section(name, data.get(name)) for name in _SECTIONS}
    return BillingConfig(**sections, checksum=compute_checksum(data))


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
