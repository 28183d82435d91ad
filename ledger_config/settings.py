"""
Tenancy settings (``ledger_config.settings``).

Responsibility
--------------
Reads the process environment once into a frozen ``TenancySettings``.
Nothing else in the system reads ``os.environ`` for these keys, except the
per-tenant ``TENANT_<ID>_DATABASE_URL`` lookup, whose key depends on the
tenant and is resolved by ``ledger_tenancy.resolver`` through the same
``environ`` mapping.

Environment
-----------
DATABASE_URL                       primary database (tenant directory)
TENANT_DATABASE_ADMIN_URL          admin connection for CREATE DATABASE
TENANT_DATABASE_PROVISIONER_URL    legacy alias of the above
TENANT_DB_ADMIN_URL                legacy alias of the above
TENANT_DB_AUTO_PROVISION           "false" disables on-demand creation
TENANT_DB_PROVISION_RETRY_MS       failure back-off window (default 60000)
TENANT_DB_PROVISION_TIMEOUT_S      admin connect / schema sync timeout (default 30)
TENANT_DB_SCHEMA_SYNC_COMMAND      external migration command (optional)
LEDGER_LOG_LEVEL                   log level for configure_logging (default INFO)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Mapping

_logger = logging.getLogger("ledger_kernel.config")

ADMIN_URL_KEYS = (
    "TENANT_DATABASE_ADMIN_URL",
    "TENANT_DATABASE_PROVISIONER_URL",
    "TENANT_DB_ADMIN_URL",
)

DEFAULT_PROVISION_RETRY_MS = 60_000
DEFAULT_PROVISION_TIMEOUT_S = 30


def parse_retry_window(raw: str | None) -> int | None:
    """
    Parse the provisioning back-off window in milliseconds.

    Returns None (failure caching disabled) for non-numeric or negative
    values; the default applies when the variable is unset or blank.
    """
    if raw is None or not raw.strip():
        return DEFAULT_PROVISION_RETRY_MS
    try:
        value = int(float(raw))
    except ValueError:
        _logger.warning("invalid_provision_retry_window", extra={"value": raw})
        return None
    return value if value >= 0 else None


@dataclass(frozen=True)
class TenancySettings:
    """Immutable snapshot of the tenancy-related environment."""

    database_url: str | None = None
    admin_database_url: str | None = None
    auto_provision: bool = True
    provision_retry_ms: int | None = DEFAULT_PROVISION_RETRY_MS
    provision_timeout_s: int = DEFAULT_PROVISION_TIMEOUT_S
    schema_sync_command: str | None = None
    log_level: str = "INFO"
    environ: Mapping[str, str] | None = field(default=None, compare=False, repr=False)

    @property
    def effective_admin_url(self) -> str | None:
        """Admin URL, falling back to the primary database URL."""
        return self.admin_database_url or self.database_url

    def env(self) -> Mapping[str, str]:
        return self.environ if self.environ is not None else os.environ

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> TenancySettings:
        env = os.environ if environ is None else environ
        admin_url = next((env[k] for k in ADMIN_URL_KEYS if env.get(k)), None)
        timeout_raw = env.get("TENANT_DB_PROVISION_TIMEOUT_S", "")
        try:
            timeout = int(timeout_raw) if timeout_raw.strip() else DEFAULT_PROVISION_TIMEOUT_S
        except ValueError:
            _logger.warning("invalid_provision_timeout", extra={"value": timeout_raw})
            timeout = DEFAULT_PROVISION_TIMEOUT_S

        return cls(
            database_url=env.get("DATABASE_URL") or None,
            admin_database_url=admin_url,
            auto_provision=env.get("TENANT_DB_AUTO_PROVISION", "").strip().lower() != "false",
            provision_retry_ms=parse_retry_window(env.get("TENANT_DB_PROVISION_RETRY_MS")),
            provision_timeout_s=timeout,
            schema_sync_command=env.get("TENANT_DB_SCHEMA_SYNC_COMMAND") or None,
            log_level=env.get("LEDGER_LOG_LEVEL", "INFO").upper(),
            environ=environ,
        )
