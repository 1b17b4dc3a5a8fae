"""
Tests for ledger_config: YAML loading, validation, bridges and the
process-wide settings cache.
"""

from decimal import Decimal
from pathlib import Path

import pytest
import yaml

from ledger_config import (
    DEFAULT_SETTINGS_FILE,
    get_active_settings,
    load_settings,
    reset_active_settings,
)
from ledger_config.bridges import (
    approval_policy_from_settings,
    database_url_from_settings,
    processor_methods_from_settings,
    reconciliation_epsilon_from_settings,
    stripe_api_key_from_settings,
)
from ledger_config.loader import load_yaml_file, parse_settings
from ledger_config.schema import LedgerSettings
from ledger_kernel.domain.approval import Actor
from ledger_kernel.domain.entries import PaymentMethod


def _write(tmp_path: Path, data) -> Path:
    path = tmp_path / "ledger.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


@pytest.fixture
def _fresh_active_settings(monkeypatch):
    monkeypatch.delenv("LEDGER_SETTINGS_FILE", raising=False)
    reset_active_settings()
    yield
    reset_active_settings()


class TestDefaults:
    def test_shipped_defaults_match_schema_defaults(self):
        assert load_settings(DEFAULT_SETTINGS_FILE) == LedgerSettings()

    def test_default_values(self, settings):
        assert settings.approval.elevated_roles == ("manager", "admin")
        assert settings.approval.approval_code_env == "MANAGER_APPROVAL_CODE"
        assert settings.reconciliation.epsilon == Decimal("0.01")
        assert settings.reconciliation.default_window_days == 30
        assert settings.listing.default_page_size == 50
        assert settings.listing.max_page_size == 500


class TestLoader:
    def test_partial_file_overrides_only_what_it_names(self, tmp_path):
        path = _write(tmp_path, {"listing": {"default_page_size": 25}})

        settings = load_settings(path)

        assert settings.listing.default_page_size == 25
        assert settings.listing.max_page_size == 500
        assert settings.reconciliation == LedgerSettings().reconciliation

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_settings(path) == LedgerSettings()

    def test_roles_are_lowercased(self):
        settings = parse_settings({"approval": {"elevated_roles": ["Owner", "MANAGER"]}})
        assert settings.approval.elevated_roles == ("owner", "manager")

    def test_epsilon_read_as_decimal(self):
        settings = parse_settings({"reconciliation": {"epsilon": "0.05"}})
        assert settings.reconciliation.epsilon == Decimal("0.05")

    @pytest.mark.parametrize(
        "data",
        [
            {"reconciliation": {"epsilon": "0"}},
            {"reconciliation": {"epsilon": "abc"}},
            {"reconciliation": {"default_window_days": 0}},
            {"listing": {"default_page_size": -1}},
            {"listing": {"default_page_size": 600, "max_page_size": 500}},
            {"listing": ["not", "a", "mapping"]},
        ],
    )
    def test_invalid_values_rejected(self, data):
        with pytest.raises(ValueError):
            parse_settings(data)

    def test_top_level_must_be_mapping(self, tmp_path):
        path = _write(tmp_path, ["a", "b"])
        with pytest.raises(ValueError):
            load_yaml_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "nope.yaml")


class TestBridges:
    def test_policy_reads_code_from_environment(self, settings):
        policy = approval_policy_from_settings(settings, {"MANAGER_APPROVAL_CODE": "9911"})

        assert policy.can_approve(Actor(id="u1", role="sales", approval_code="9911"))
        assert policy.can_approve(Actor(id="u2", role="Manager"))

    def test_no_configured_code_means_no_code_is_valid(self, settings):
        policy = approval_policy_from_settings(settings, {})

        assert policy.approval_code is None
        assert not policy.can_approve(Actor(id="u1", role="sales", approval_code=""))
        assert not policy.can_approve(Actor(id="u1", role="sales", approval_code="1234"))

    def test_blank_code_counts_as_unset(self, settings):
        policy = approval_policy_from_settings(settings, {"MANAGER_APPROVAL_CODE": "   "})
        assert policy.approval_code is None

    def test_processor_methods(self, settings):
        assert processor_methods_from_settings(settings) == frozenset({PaymentMethod.STRIPE})

    def test_database_url(self, settings):
        assert database_url_from_settings(settings, {}) == "sqlite:///payment_ledger.db"
        assert database_url_from_settings(
            settings, {"DATABASE_URL": "postgresql://ledger@db/ledger"},
        ) == "postgresql://ledger@db/ledger"

    def test_stripe_key(self, settings):
        assert stripe_api_key_from_settings(settings, {}) is None
        assert stripe_api_key_from_settings(settings, {"STRIPE_SECRET_KEY": "sk_test_1"}) == "sk_test_1"

    def test_epsilon(self, settings):
        assert reconciliation_epsilon_from_settings(settings) == Decimal("0.01")


@pytest.mark.usefixtures("_fresh_active_settings")
class TestActiveSettings:
    def test_loaded_once_and_cached(self, captured_logs):
        first = get_active_settings()
        second = get_active_settings()

        assert first is second
        loaded = [r for r in captured_logs() if r["message"] == "LEDGER_CONFIG_LOADED"]
        assert len(loaded) == 1

    def test_settings_file_from_environment(self, tmp_path, monkeypatch):
        path = _write(tmp_path, {"reconciliation": {"default_window_days": 7}})
        monkeypatch.setenv("LEDGER_SETTINGS_FILE", str(path))

        assert get_active_settings().reconciliation.default_window_days == 7

    def test_reset_forces_reload(self, tmp_path, monkeypatch):
        before = get_active_settings()
        path = _write(tmp_path, {"listing": {"default_page_size": 10}})
        monkeypatch.setenv("LEDGER_SETTINGS_FILE", str(path))

        reset_active_settings()
        after = get_active_settings()

        assert before.listing.default_page_size == 50
        assert after.listing.default_page_size == 10
