"""Tests for the chart template loader and tenancy settings."""

import pytest
import yaml

from ledger_config.loader import (
    DEFAULT_CHART_PATH,
    compute_checksum,
    get_chart_template,
    load_chart_template,
    parse_chart,
    validate_chart,
)
from ledger_config.settings import (
    DEFAULT_PROVISION_RETRY_MS,
    TenancySettings,
    parse_retry_window,
)
from ledger_kernel.exceptions import InvalidChartTemplateError


class TestBundledChart:

    def test_bundled_chart_is_valid(self):
        with open(DEFAULT_CHART_PATH) as f:
            assert validate_chart(yaml.safe_load(f)) == []

    def test_template_accounts_used_in_code_exist(self):
        codes = {a.code for a in get_chart_template().accounts}
        assert {"1111", "1112", "1120", "1130", "4110", "4210", "4300", "5110", "5210", "5290"} <= codes

    def test_parents_precede_children(self):
        seen = set()
        for account in get_chart_template().accounts:
            assert account.parent_code is None or account.parent_code in seen
            seen.add(account.code)

    def test_checksum_is_deterministic(self):
        assert load_chart_template().checksum == load_chart_template().checksum
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})


class TestInvalidChart:

    def test_every_error_is_reported(self):
        data = {
            "accounts": [
                {"code": "1000", "name": "Assets", "type": "asset", "normal_balance": "debit"},
                {"code": "1000", "name": "Again", "type": "asset", "normal_balance": "debit"},
                {"code": "2000", "name": "Bad", "type": "nonsense", "normal_balance": "debit"},
                {"code": "3000", "name": "Orphan", "type": "equity", "normal_balance": "credit", "parent_code": "9999"},
            ]
        }
        with pytest.raises(InvalidChartTemplateError) as exc:
            parse_chart(data)
        errors = exc.value.errors
        assert "1000: duplicate code" in errors
        assert any(e.startswith("2000: unknown type") for e in errors)
        assert any(e.startswith("3000: parent 9999") for e in errors)

    def test_empty_chart(self):
        assert validate_chart({}) == ["'accounts' must be a non-empty list"]

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "chart.yaml"
        path.write_text(
            "version: 7\n"
            "accounts:\n"
            "  - {code: '1000', name: Assets, type: asset, normal_balance: debit}\n"
            "  - {code: '1100', name: Cash, type: asset, normal_balance: debit, parent_code: '1000'}\n"
        )
        template = load_chart_template(path)
        assert template.version == 7
        assert [a.code for a in template.accounts] == ["1000", "1100"]
        assert template.accounts[1].parent_code == "1000"


class TestSettings:

    def test_defaults_from_empty_environment(self):
        settings = TenancySettings.from_env({})
        assert settings.database_url is None
        assert settings.auto_provision is True
        assert settings.provision_retry_ms == DEFAULT_PROVISION_RETRY_MS
        assert settings.provision_timeout_s == 30
        assert settings.log_level == "INFO"

    def test_admin_url_aliases_in_order(self):
        settings = TenancySettings.from_env({
            "DATABASE_URL": "postgresql://app@db/main",
            "TENANT_DB_ADMIN_URL": "postgresql://legacy@db/postgres",
            "TENANT_DATABASE_PROVISIONER_URL": "postgresql://provisioner@db/postgres",
        })
        assert settings.admin_database_url == "postgresql://provisioner@db/postgres"

    def test_admin_url_falls_back_to_primary(self):
        settings = TenancySettings.from_env({"DATABASE_URL": "postgresql://app@db/main"})
        assert settings.effective_admin_url == "postgresql://app@db/main"

    @pytest.mark.parametrize("raw, expected", [("false", False), ("FALSE", False), ("true", True), ("0", True)])
    def test_auto_provision_flag(self, raw, expected):
        assert TenancySettings.from_env({"TENANT_DB_AUTO_PROVISION": raw}).auto_provision is expected

    def test_invalid_timeout_uses_default(self):
        assert TenancySettings.from_env({"TENANT_DB_PROVISION_TIMEOUT_S": "soon"}).provision_timeout_s == 30

    def test_env_mapping_is_the_given_one(self):
        env = {"TENANT_ACME_DATABASE_URL": "postgresql://x/acme"}
        assert TenancySettings.from_env(env).env() is env


class TestRetryWindow:

    @pytest.mark.parametrize(
        "raw, expected",
        [
            (None, DEFAULT_PROVISION_RETRY_MS),
            ("", DEFAULT_PROVISION_RETRY_MS),
            ("   ", DEFAULT_PROVISION_RETRY_MS),
            ("0", 0),
            ("1500", 1500),
            ("2500.9", 2500),
            ("-1", None),
            ("never", None),
        ],
    )
    def test_parse(self, raw, expected):
        assert parse_retry_window(raw) == expected
