"""
Tenant connection resolution.

Responsibility:
    Turns a tenant's settings document (plus the environment) into a
    database connection string, or reports that none is configured so the
    caller may provision one.

Resolution order (first match wins):
    1. Explicit settings: a direct connection string, then discrete parts
       (host, port, database, user, password, ssl).
    2. Environment variable ``TENANT_<UPPERCASED_TENANT_ID>_DATABASE_URL``.
    3. None.

Settings keys accepted for a direct connection string:
    databaseUrl, databaseURL, database_url, databaseConnectionString,
    database_connection_string, and under a ``database`` or ``db`` object:
    connectionString, connection_string, url, connectionUrl, connection_url.
"""

from __future__ import annotations

import json
import os
from typing import Any, Mapping

from sqlalchemy.engine import URL

from ledger_kernel.logging_config import get_logger

logger = get_logger("tenancy.resolver")

DIRECT_KEYS = (
    "databaseUrl",
    "databaseURL",
    "database_url",
    "databaseConnectionString",
    "database_connection_string",
)

NESTED_OBJECT_KEYS = ("database", "db")

NESTED_URL_KEYS = (
    "connectionString",
    "connection_string",
    "url",
    "connectionUrl",
    "connection_url",
)

HOST_KEYS = ("host", "hostname", "databaseHost")
PORT_KEYS = ("port", "databasePort")
NAME_KEYS = ("database", "name", "databaseName")
USER_KEYS = ("user", "username", "databaseUser")
PASSWORD_KEYS = ("password", "databasePassword")
SSL_KEYS = ("ssl", "databaseSsl")

_TRUTHY = {"1", "true", "yes", "on", "require", "required"}


def parse_settings(raw: str | Mapping[str, Any] | None) -> dict[str, Any]:
    """
    Decode a tenant settings document.

    Invalid JSON is logged and treated as an empty document so a corrupt
    settings column falls through to env / provisioning instead of
    blocking the tenant.
    """
    if raw is None or raw == "":
        return {}
    if isinstance(raw, Mapping):
        return dict(raw)
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning("tenant_settings_invalid_json")
        return {}
    return data if isinstance(data, dict) else {}


def _first(sources: list[Mapping[str, Any]], keys: tuple[str, ...]) -> Any:
    for source in sources:
        for key in keys:
            value = source.get(key)
            if value is None or value == "" or isinstance(value, Mapping):
                continue
            return value
    return None


def _nested_objects(settings: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    return [
        settings[key] for key in NESTED_OBJECT_KEYS
        if isinstance(settings.get(key), Mapping)
    ]


def direct_connection_string(settings: Mapping[str, Any]) -> str | None:
    value = _first([settings], DIRECT_KEYS)
    if isinstance(value, str):
        return value
    value = _first(_nested_objects(settings), NESTED_URL_KEYS)
    return value if isinstance(value, str) else None


def _ssl_requested(sources: list[Mapping[str, Any]]) -> bool:
    # An ssl options object (e.g. {"rejectUnauthorized": false}) also means "on"
    for source in sources:
        for key in SSL_KEYS:
            value = source.get(key)
            if value is None or value == "":
                continue
            if isinstance(value, bool):
                return value
            if isinstance(value, Mapping):
                return True
            return str(value).strip().lower() in _TRUTHY
    return False


def build_connection_string_from_parts(settings: Mapping[str, Any]) -> str | None:
    """
    Build a PostgreSQL URL from discrete parts.

    Parts are read from a nested ``database``/``db`` object first, then
    from the top level.  host, database name and user are required.
    """
    sources = [*_nested_objects(settings), settings]
    host = _first(sources, HOST_KEYS)
    name = _first(sources, NAME_KEYS)
    user = _first(sources, USER_KEYS)
    if not (isinstance(host, str) and isinstance(name, str) and isinstance(user, str)):
        return None

    port = _first(sources, PORT_KEYS)
    password = _first(sources, PASSWORD_KEYS)

    url = URL.create(
        "postgresql",
        username=user,
        password=str(password) if password is not None else None,
        host=host,
        port=int(port) if port is not None else None,
        database=name,
        query={"sslmode": "require"} if _ssl_requested(sources) else {},
    )
    return url.render_as_string(hide_password=False)


def tenant_env_key(tenant_id: str) -> str:
    return f"TENANT_{tenant_id.upper()}_DATABASE_URL"


def resolve_connection(
    tenant_id: str,
    settings: str | Mapping[str, Any] | None,
    environ: Mapping[str, str] | None = None,
) -> str | None:
    """
    Resolve a tenant's connection string without provisioning.

    Returns:
        The connection string, or None when nothing is configured.
    """
    doc = parse_settings(settings)
    env = os.environ if environ is None else environ

    direct = direct_connection_string(doc)
    if direct:
        logger.debug("tenant_connection_resolved", extra={"tenant_id": tenant_id, "source": "settings"})
        return direct

    from_parts = build_connection_string_from_parts(doc)
    if from_parts:
        logger.debug("tenant_connection_resolved", extra={"tenant_id": tenant_id, "source": "settings_parts"})
        return from_parts

    from_env = env.get(tenant_env_key(tenant_id))
    if from_env:
        logger.debug("tenant_connection_resolved", extra={"tenant_id": tenant_id, "source": "environment"})
        return from_env

    return None
