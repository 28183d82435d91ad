"""
TenantProvisioner -- on-demand creation of per-tenant databases.

Responsibility:
    Derives a deterministic database name for a tenant, creates that
    database through an admin connection if it does not exist, applies the
    schema, and returns the tenant's connection string.

Architecture position:
    Tenancy layer.  Called by TenantRouter.ensure_tenant_database when a
    tenant has no configured connection and auto-provisioning is enabled.

Invariants enforced:
    - Idempotent: a database name that succeeded once in this process is
      returned immediately, without touching any database.  A second
      process racing on the same name sees duplicate_database and treats
      the database as existing.
    - Bounded retries: a failure is cached per database name with its
      timestamp and attempt count.  Within the retry window the cached
      error is re-raised without a new attempt.  A success clears it.
    - Locks guard only the in-memory caches; no lock is held across I/O.

Failure modes:
    - TenantProvisioningError with reason INSUFFICIENT_PRIVILEGE (42501),
      TIMEOUT, SCHEMA_SYNC_FAILED or DATABASE_ERROR.
    - ValueError when no primary DATABASE_URL is configured to derive the
      tenant connection string from.
"""

from __future__ import annotations

import hashlib
import re
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError

from ledger_config.settings import TenancySettings
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.exceptions import SchemaSyncError, TenantProvisioningError
from ledger_kernel.logging_config import get_logger
from ledger_tenancy.admin import DatabaseAdmin, PostgresDatabaseAdmin, sqlstate_of
from ledger_tenancy.schema_sync import SchemaSync, build_schema_sync

logger = get_logger("tenancy.provisioner")

MAX_IDENTIFIER_LENGTH = 63
_HASH_LENGTH = 6
_PREFIX = "tenant_"

INSUFFICIENT_PRIVILEGE = "42501"
QUERY_CANCELED = "57014"

PRIVILEGE_HINT = (
    "The configured database role does not have permission to create databases. "
    "Grant the role CREATEDB privileges or provide a superuser connection string "
    "via TENANT_DATABASE_ADMIN_URL."
)


def sanitize_identifier(tenant_id: str) -> str:
    cleaned = re.sub(r"[^a-z0-9]+", "_", tenant_id.lower()).strip("_")
    return cleaned or "tenant"


def tenant_database_name(tenant_id: str) -> str:
    """
    ``tenant_<sanitized>_<sha256[:6]>``, at most 63 characters.

    The hash suffix keeps names distinct for tenant ids that sanitize to
    the same string.  On overflow only the sanitized part is truncated.
    """
    sanitized = sanitize_identifier(tenant_id)
    suffix = hashlib.sha256(tenant_id.encode()).hexdigest()[:_HASH_LENGTH]
    name = f"{_PREFIX}{sanitized}_{suffix}"
    if len(name) > MAX_IDENTIFIER_LENGTH:
        keep = max(MAX_IDENTIFIER_LENGTH - len(_PREFIX) - _HASH_LENGTH - 1, 3)
        name = f"{_PREFIX}{sanitized[:keep]}_{suffix}"
    return name


def tenant_connection_string(primary_url: str, database_name: str) -> str:
    """The primary URL with its database replaced."""
    return make_url(primary_url).set(database=database_name).render_as_string(hide_password=False)


@dataclass(frozen=True)
class ProvisionResult:
    connection_string: str
    database_name: str
    created: bool


@dataclass
class ProvisionFailure:
    error: TenantProvisioningError
    last_attempt: datetime
    attempts: int


class TenantProvisioner:
    """
    Creates tenant databases and applies their schema.

    Contract:
        ``provision(tenant_id)`` returns a ProvisionResult for a database
        that exists and has the schema applied, or raises
        TenantProvisioningError.

    Non-goals:
        - Does NOT drop or rename databases.
        - Does NOT cache engines (see TenantEngineRegistry).
    """

    def __init__(
        self,
        settings: TenancySettings,
        admin: DatabaseAdmin | None = None,
        schema_sync: SchemaSync | None = None,
        clock: Clock | None = None,
    ):
        self.settings = settings
        self._admin = admin
        self.schema_sync = schema_sync or build_schema_sync(settings)
        self.clock = clock or SystemClock()
        self._lock = threading.Lock()
        self._provisioned: set[str] = set()
        self._failures: dict[str, ProvisionFailure] = {}

    @property
    def admin(self) -> DatabaseAdmin:
        if self._admin is None:
            admin_url = self.settings.effective_admin_url
            if not admin_url:
                raise ValueError("DATABASE_URL or TENANT_DATABASE_ADMIN_URL must be set to provision tenants")
            self._admin = PostgresDatabaseAdmin(admin_url, self.settings.provision_timeout_s)
        return self._admin

    def is_provisioned(self, database_name: str) -> bool:
        with self._lock:
            return database_name in self._provisioned

    def failure_for(self, database_name: str) -> ProvisionFailure | None:
        with self._lock:
            return self._failures.get(database_name)

    def provision(self, tenant_id: str, database_name: str | None = None) -> ProvisionResult:
        """
        Ensure the tenant database exists and has the schema applied.

        Raises:
            TenantProvisioningError: creation or schema sync failed, or a
                recent failure for this database is still in its back-off
                window.
        """
        if not self.settings.database_url:
            raise ValueError("DATABASE_URL must be set to derive tenant connection strings")

        name = database_name or tenant_database_name(tenant_id)
        connection_string = tenant_connection_string(self.settings.database_url, name)

        with self._lock:
            if name in self._provisioned:
                return ProvisionResult(connection_string, name, created=False)
            self._raise_if_backing_off(tenant_id, name)

        try:
            created = self._create_database(name)
            self._sync_schema(name, connection_string)
        except TenantProvisioningError as exc:
            self._record_failure(tenant_id, name, exc)
            raise

        with self._lock:
            self._provisioned.add(name)
            self._failures.pop(name, None)

        logger.info(
            "tenant_database_provisioned",
            extra={"tenant_id": tenant_id, "database_name": name, "was_created": created},
        )
        return ProvisionResult(connection_string, name, created=created)

    def _raise_if_backing_off(self, tenant_id: str, name: str) -> None:
        failure = self._failures.get(name)
        if failure is None:
            return
        window = self.settings.provision_retry_ms
        if window is None:
            self._failures.pop(name, None)
            return
        if self.clock.now() - failure.last_attempt < timedelta(milliseconds=window):
            logger.warning(
                "tenant_provisioning_backoff",
                extra={
                    "tenant_id": tenant_id,
                    "database_name": name,
                    "attempts": failure.attempts,
                    "reason": failure.error.reason,
                },
            )
            raise failure.error

    def _record_failure(self, tenant_id: str, name: str, error: TenantProvisioningError) -> None:
        with self._lock:
            if self.settings.provision_retry_ms is None:
                self._failures.pop(name, None)
                attempts = 1
            else:
                previous = self._failures.get(name)
                attempts = previous.attempts + 1 if previous else 1
                self._failures[name] = ProvisionFailure(error, self.clock.now(), attempts)
        logger.error(
            "tenant_provisioning_failed",
            extra={
                "tenant_id": tenant_id,
                "database_name": name,
                "reason": error.reason,
                "sqlstate": error.sqlstate,
                "attempts": attempts,
            },
        )

    def _create_database(self, name: str) -> bool:
        try:
            return self.admin.ensure_database(name)
        except SQLAlchemyError as exc:
            raise classify_database_error(name, exc) from exc
        except TimeoutError as exc:
            raise TenantProvisioningError(
                name, TenantProvisioningError.REASON_TIMEOUT, str(exc) or "admin connection timed out"
            ) from exc

    def _sync_schema(self, name: str, connection_string: str) -> None:
        try:
            self.schema_sync.sync(connection_string)
        except SchemaSyncError as exc:
            reason = (
                TenantProvisioningError.REASON_TIMEOUT
                if exc.timed_out
                else TenantProvisioningError.REASON_SCHEMA_SYNC_FAILED
            )
            raise TenantProvisioningError(name, reason, exc.detail) from exc
        except SQLAlchemyError as exc:
            raise TenantProvisioningError(
                name,
                TenantProvisioningError.REASON_SCHEMA_SYNC_FAILED,
                str(exc),
                sqlstate=sqlstate_of(exc),
            ) from exc


def classify_database_error(database_name: str, exc: SQLAlchemyError) -> TenantProvisioningError:
    sqlstate = sqlstate_of(exc)
    detail = str(getattr(exc, "orig", None) or exc).strip()
    if sqlstate == INSUFFICIENT_PRIVILEGE:
        return TenantProvisioningError(
            database_name,
            TenantProvisioningError.REASON_INSUFFICIENT_PRIVILEGE,
            detail,
            sqlstate=sqlstate,
            hint=PRIVILEGE_HINT,
        )
    if sqlstate == QUERY_CANCELED or "timeout" in detail.lower():
        return TenantProvisioningError(
            database_name,
            TenantProvisioningError.REASON_TIMEOUT,
            detail,
            sqlstate=sqlstate,
        )
    return TenantProvisioningError(
        database_name,
        TenantProvisioningError.REASON_DATABASE_ERROR,
        detail,
        sqlstate=sqlstate,
    )
