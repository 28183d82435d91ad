"""Tests for tenant connection resolution."""

import json

import pytest

from ledger_tenancy.resolver import (
    build_connection_string_from_parts,
    parse_settings,
    resolve_connection,
    tenant_env_key,
)


class TestDirectConnectionString:

    @pytest.mark.parametrize(
        "key",
        ["databaseUrl", "databaseURL", "database_url", "databaseConnectionString", "database_connection_string"],
    )
    def test_top_level_keys(self, key):
        url = "postgresql://u:p@h/db"
        assert resolve_connection("acme", {key: url}, environ={}) == url

    @pytest.mark.parametrize("outer", ["database", "db"])
    @pytest.mark.parametrize("inner", ["connectionString", "connection_string", "url", "connectionUrl", "connection_url"])
    def test_nested_keys(self, outer, inner):
        url = "postgresql://u:p@h/nested"
        assert resolve_connection("acme", {outer: {inner: url}}, environ={}) == url

    def test_json_text_settings(self):
        raw = json.dumps({"databaseUrl": "postgresql://u:p@h/db"})
        assert resolve_connection("acme", raw, environ={}) == "postgresql://u:p@h/db"


class TestConnectionParts:

    def test_parts_build_postgres_url(self):
        url = build_connection_string_from_parts(
            {"database": {"host": "db.local", "port": 5433, "name": "acme", "user": "app", "password": "pw"}}
        )
        assert url == "postgresql://app:pw@db.local:5433/acme"

    def test_top_level_parts_with_ssl(self):
        url = build_connection_string_from_parts(
            {"databaseHost": "db.local", "databaseName": "acme", "databaseUser": "app", "ssl": True}
        )
        assert url == "postgresql://app@db.local/acme?sslmode=require"

    def test_ssl_options_object_means_on(self):
        url = build_connection_string_from_parts(
            {"host": "h", "databaseName": "d", "user": "u", "ssl": {"rejectUnauthorized": False}}
        )
        assert url.endswith("?sslmode=require")

    def test_missing_required_part_returns_none(self):
        assert build_connection_string_from_parts({"host": "h", "user": "u"}) is None


class TestResolutionOrder:

    def test_settings_win_over_environment(self):
        env = {"TENANT_ACME_DATABASE_URL": "postgresql://env/db"}
        assert resolve_connection("acme", {"databaseUrl": "postgresql://settings/db"}, env) == "postgresql://settings/db"

    def test_direct_wins_over_parts(self):
        settings = {"databaseUrl": "postgresql://direct/db", "host": "h", "databaseName": "d", "user": "u"}
        assert resolve_connection("acme", settings, environ={}) == "postgresql://direct/db"

    def test_environment_fallback(self):
        env = {"TENANT_ACME_DATABASE_URL": "postgresql://env/db"}
        assert resolve_connection("acme", None, env) == "postgresql://env/db"

    def test_env_key_uppercases_tenant(self):
        assert tenant_env_key("acme") == "TENANT_ACME_DATABASE_URL"

    def test_nothing_configured(self):
        assert resolve_connection("acme", {}, environ={}) is None


class TestParseSettings:

    def test_invalid_json_is_empty(self, captured_logs):
        assert parse_settings("{not json") == {}
        assert any(r["message"] == "tenant_settings_invalid_json" for r in captured_logs())

    def test_non_object_json_is_empty(self):
        assert parse_settings("[1, 2]") == {}

    def test_blank_is_empty(self):
        assert parse_settings(None) == {}
        assert parse_settings("") == {}
