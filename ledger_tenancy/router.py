"""
TenantRouter -- entry point that turns a tenant identity into a bound context.

Responsibility:
    Composes the resolver, provisioner and engine registry:

        resolve_connection -> (provision if allowed) -> registry.acquire

    and, for a request, wraps the whole path in ``tenant_scope`` which also
    applies the directory's access rules and binds the TenantContext.

Architecture position:
    Tenancy layer, called from the request boundary (route layer or CLI).
    Ledger code below it only ever sees ``current_tenant()`` or an explicit
    Session.

Failure modes:
    - UnresolvableTenantConnectionError: nothing configured and
      auto-provisioning disabled.
    - TenantProvisioningError: provisioning failed or is backing off.
    - TenantNotFoundError / TenantSuspendedError / TenantExpiredError from
      ``tenant_scope``.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Mapping

from sqlalchemy.orm import Session, sessionmaker

from ledger_config.settings import TenancySettings
from ledger_kernel.db import engine as primary_db
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.exceptions import TenantExpiredError, UnresolvableTenantConnectionError
from ledger_kernel.logging_config import get_logger
from ledger_tenancy.context import PRIMARY_TENANT_ID, TenantContext, bind_tenant, primary_context
from ledger_tenancy.directory import TenantDirectory
from ledger_tenancy.provisioner import TenantProvisioner
from ledger_tenancy.registry import TenantEngineRegistry
from ledger_tenancy.resolver import resolve_connection

logger = get_logger("tenancy.router")


class TenantRouter:

    def __init__(
        self,
        settings: TenancySettings,
        provisioner: TenantProvisioner | None = None,
        registry: TenantEngineRegistry | None = None,
        clock: Clock | None = None,
        primary_session_factory: sessionmaker[Session] | None = None,
    ):
        self.settings = settings
        self.clock = clock or SystemClock()
        self.provisioner = provisioner or TenantProvisioner(settings, clock=self.clock)
        self.registry = registry or TenantEngineRegistry()
        self._primary_session_factory = primary_session_factory

    @property
    def primary_session_factory(self) -> sessionmaker[Session]:
        return self._primary_session_factory or primary_db.get_session_factory()

    def connection_string_for(
        self,
        tenant_id: str,
        tenant_settings: str | Mapping[str, Any] | None,
        auto_provision: bool | None = None,
    ) -> str:
        """Resolve, or provision when allowed, the tenant's connection string."""
        resolved = resolve_connection(tenant_id, tenant_settings, self.settings.env())
        if resolved:
            return resolved

        allowed = self.settings.auto_provision if auto_provision is None else auto_provision
        if not allowed:
            raise UnresolvableTenantConnectionError(tenant_id)

        return self.provisioner.provision(tenant_id).connection_string

    def ensure_tenant_database(
        self,
        tenant_id: str,
        tenant_settings: str | Mapping[str, Any] | None = None,
        auto_provision: bool | None = None,
    ) -> TenantContext:
        """
        Return a TenantContext for the tenant's live database.

        The engine comes from the registry, so repeated calls for the same
        connection string share one pool.
        """
        connection_string = self.connection_string_for(tenant_id, tenant_settings, auto_provision)
        engine = self.registry.acquire(connection_string)
        return TenantContext(
            tenant_id=tenant_id,
            engine=engine,
            session_factory=self.registry.session_factory(connection_string),
            connection_string=connection_string,
        )

    @contextmanager
    def tenant_scope(self, subdomain: str | None) -> Iterator[TenantContext]:
        """
        Bind the tenant behind ``subdomain`` for the duration of the block.

        ``None`` or the primary tenant id binds the primary database.
        """
        if not subdomain or subdomain == PRIMARY_TENANT_ID:
            with bind_tenant(primary_context()) as ctx:
                yield ctx
            return

        session = self.primary_session_factory()
        try:
            directory = TenantDirectory(session, self.clock)
            tenant = directory.get_by_subdomain(subdomain)
            tenant_key = tenant.tenant_key
            tenant_settings = tenant.settings
            try:
                directory.check_access(tenant)
            except TenantExpiredError:
                # Persist the lazy expiry flip before rejecting
                session.commit()
                raise
            session.commit()
        finally:
            session.close()

        context = self.ensure_tenant_database(tenant_key, tenant_settings)
        logger.debug("tenant_scope_entered", extra={"tenant_id": tenant_key})
        with bind_tenant(context) as ctx:
            yield ctx
