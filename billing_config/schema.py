"""
Configuration schema (``billing_config.schema``).

Frozen dataclasses for every tunable of the billing engine.  Defaults match
``defaults.yaml``; values are validated in ``__post_init__`` so an invalid
configuration fails when it is loaded, not when the first invoice is
recalculated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from billing_kernel.domain.values import DocumentType


def _decimals(values) -> tuple[Decimal, ...]:
    return tuple(Decimal(str(v)) for v in values)


@dataclass(frozen=True)
class MoneyConfig:
    """Tax rates accepted on line items."""

    allowed_tax_rates: tuple[Decimal, ...] = _decimals((0, 7, 19))
    default_tax_rate: Decimal = Decimal("19")

    def __post_init__(self) -> None:
        object.__setattr__(self, "allowed_tax_rates", _decimals(self.allowed_tax_rates))
        object.__setattr__(self, "default_tax_rate", Decimal(str(self.default_tax_rate)))
        if not self.allowed_tax_rates:
            raise ValueError("allowed_tax_rates cannot be empty")
        if any(rate < 0 for rate in self.allowed_tax_rates):
            raise ValueError("allowed_tax_rates cannot contain negative rates")
        if self.default_tax_rate not in self.allowed_tax_rates:
            raise ValueError(
                f"default_tax_rate {self.default_tax_rate} is not an allowed rate"
            )


@dataclass(frozen=True)
class NumberingConfig:
    """Number prefixes per document type."""

    prefixes: dict[DocumentType, str] = field(
        default_factory=lambda: {
            DocumentType.QUOTE: "ANG",
            DocumentType.INVOICE: "RG",
            DocumentType.COST: "PK",
        }
    )

    def __post_init__(self) -> None:
        prefixes = {DocumentType(k): v for k, v in self.prefixes.items()}
        missing = set(DocumentType) - set(prefixes)
        if missing:
            raise ValueError(
                f"Missing number prefix for {sorted(t.value for t in missing)}"
            )
        for doc_type, prefix in prefixes.items():
            if not prefix or not prefix.isalpha() or not prefix.isupper():
                raise ValueError(
                    f"Prefix for {doc_type.value} must be upper-case letters, got {prefix!r}"
                )
        if len(set(prefixes.values())) != len(prefixes):
            raise ValueError("Number prefixes must be distinct")
        object.__setattr__(self, "prefixes", prefixes)


@dataclass(frozen=True)
class QuoteConfig:
    validity_days: int = 30

    def __post_init__(self) -> None:
        if self.validity_days <= 0:
            raise ValueError("validity_days must be positive")


@dataclass(frozen=True)
class InvoiceConfig:
    payment_terms_days: int = 14
    max_payment_terms_days: int = 365

    def __post_init__(self) -> None:
        if not 0 <= self.payment_terms_days <= self.max_payment_terms_days:
            raise ValueError(
                f"payment_terms_days must be between 0 and {self.max_payment_terms_days}"
            )


@dataclass(frozen=True)
class DunningConfig:
    """Reminder escalation settings."""

    max_level: int = 3
    cadence_days: int = 7
    default_fee: Decimal = Decimal("5.00")

    def __post_init__(self) -> None:
        object.__setattr__(self, "default_fee", Decimal(str(self.default_fee)))
        if not 1 <= self.max_level <= 3:
            raise ValueError("max_level must be between 1 and 3")
        if self.cadence_days <= 0:
            raise ValueError("cadence_days must be positive")
        if self.default_fee < 0:
            raise ValueError("default_fee cannot be negative")


@dataclass(frozen=True)
class CostConfig:
    approval_threshold: Decimal = Decimal("500.00")

    def __post_init__(self) -> None:
        object.__setattr__(self, "approval_threshold", Decimal(str(self.approval_threshold)))
        if self.approval_threshold < 0:
            raise ValueError("approval_threshold cannot be negative")


@dataclass(frozen=True)
class BillingConfig:
    """The complete runtime configuration."""

    money: MoneyConfig = field(default_factory=MoneyConfig)
    numbering: NumberingConfig = field(default_factory=NumberingConfig)
    quote: QuoteConfig = field(default_factory=QuoteConfig)
    invoice: InvoiceConfig = field(default_factory=InvoiceConfig)
    dunning: DunningConfig = field(default_factory=DunningConfig)
    cost: CostConfig = field(default_factory=CostConfig)
    checksum: str = ""
