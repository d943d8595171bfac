"""
Tests for billing configuration loading and validation.

Covers the bundled defaults, YAML overrides, rejection of unknown keys and
out-of-range values, and the BILLING_CONFIG_TRACE record.
"""

from decimal import Decimal

import pytest
import yaml

from billing_config import DEFAULT_CONFIG_PATH, get_active_config
from billing_config.loader import compute_checksum, load_yaml_file, parse_config
from billing_config.schema import (
    BillingConfig,
    DunningConfig,
    InvoiceConfig,
    MoneyConfig,
    NumberingConfig,
)
from billing_kernel.domain.values import DocumentType


def _write(tmp_path, data):
    path = tmp_path / "billing.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


class TestDefaults:
    def test_bundled_file_matches_dataclass_defaults(self):
        loaded = get_active_config()
        built = BillingConfig()
        assert loaded.money == built.money
        assert loaded.numbering == built.numbering
        assert loaded.quote == built.quote
        assert loaded.invoice == built.invoice
        assert loaded.dunning == built.dunning
        assert loaded.cost == built.cost

    def test_default_values(self):
        config = BillingConfig()
        assert config.money.allowed_tax_rates == (Decimal("0"), Decimal("7"), Decimal("19"))
        assert config.quote.validity_days == 30
        assert config.invoice.payment_terms_days == 14
        assert config.dunning.max_level == 3
        assert config.dunning.cadence_days == 7
        assert config.dunning.default_fee == Decimal("5.00")
        assert config.cost.approval_threshold == Decimal("500.00")
        assert config.numbering.prefixes[DocumentType.INVOICE] == "RG"

    def test_checksum_recorded(self):
        config = get_active_config()
        assert config.checksum == compute_checksum(load_yaml_file(DEFAULT_CONFIG_PATH))
        assert len(config.checksum) == 64


class TestOverrides:
    def test_partial_file_keeps_other_defaults(self, tmp_path):
        path = _write(tmp_path, {"dunning": {"max_level": 2, "default_fee": "2.50"}})
        config = get_active_config(path)
        assert config.dunning.max_level == 2
        assert config.dunning.default_fee == Decimal("2.50")
        assert config.invoice.payment_terms_days == 14

    def test_custom_prefixes(self, tmp_path):
        path = _write(
            tmp_path,
            {"numbering": {"prefixes": {"quote": "QU", "invoice": "IN", "cost": "CO"}}},
        )
        config = get_active_config(path)
        assert config.numbering.prefixes[DocumentType.QUOTE] == "QU"

    def test_empty_file_is_all_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        config = get_active_config(path)
        assert config.quote.validity_days == 30

    def test_checksum_changes_with_content(self):
        assert compute_checksum({"quote": {"validity_days": 30}}) != compute_checksum(
            {"quote": {"validity_days": 31}}
        )


class TestRejection:
    def test_unknown_section(self):
        with pytest.raises(ValueError, match="Unknown config sections"):
            parse_config({"ledger": {}})

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="Unknown keys"):
            parse_config({"quote": {"validity_days": 30, "grace_days": 3}})

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "nope.yaml")

    @pytest.mark.parametrize(
        "build",
        [
            lambda: MoneyConfig(allowed_tax_rates=()),
            lambda: MoneyConfig(allowed_tax_rates=(7, 19), default_tax_rate=16),
            lambda: MoneyConfig(allowed_tax_rates=(-1, 19)),
            lambda: InvoiceConfig(payment_terms_days=400),
            lambda: DunningConfig(max_level=0),
            lambda: DunningConfig(max_level=4),
            lambda: DunningConfig(cadence_days=0),
            lambda: DunningConfig(default_fee="-1"),
            lambda: NumberingConfig(prefixes={"quote": "ANG", "invoice": "RG"}),
            lambda: NumberingConfig(prefixes={"quote": "ang", "invoice": "RG", "cost": "PK"}),
            lambda: NumberingConfig(prefixes={"quote": "RG", "invoice": "RG", "cost": "PK"}),
        ],
    )
    def test_out_of_range_values(self, build):
        with pytest.raises(ValueError):
            build()

    @pytest.mark.parametrize("level", [1, 3])
    def test_reminder_level_bounds_accepted(self, level):
        assert DunningConfig(max_level=level).max_level == level

    def test_reminder_level_above_three_rejected_from_file(self, tmp_path):
        path = _write(tmp_path, {"dunning": {"max_level": 5}})
        with pytest.raises(ValueError, match="max_level must be between 1 and 3"):
            get_active_config(path)


def test_config_trace_logged(captured_logs):
    config = get_active_config()
    traces = [r for r in captured_logs() if r["message"] == "BILLING_CONFIG_TRACE"]
    assert len(traces) == 1
    assert traces[0]["checksum"] == config.checksum
    assert traces[0]["allowed_tax_rates"] == ["0", "7", "19"]
    assert traces[0]["dunning_max_level"] == 3
