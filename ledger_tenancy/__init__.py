"""
Tenancy layer: tenant directory, connection resolution, on-demand database
provisioning, per-tenant engine pools and the request-scoped tenant context.

Dependency direction: ``ledger_tenancy`` imports ``ledger_kernel`` and
``ledger_config``; the kernel never imports this package.
"""

from ledger_tenancy.context import (
    PRIMARY_TENANT_ID,
    TenantContext,
    bind_tenant,
    current_tenant,
    current_tenant_id,
    tenant_session_scope,
)
from ledger_tenancy.directory import TenantDirectory, extract_subdomain
from ledger_tenancy.provisioner import ProvisionResult, TenantProvisioner, tenant_database_name
from ledger_tenancy.registry import TenantEngineRegistry
from ledger_tenancy.resolver import resolve_connection
from ledger_tenancy.router import TenantRouter

__all__ = [
    "PRIMARY_TENANT_ID",
    "ProvisionResult",
    "TenantContext",
    "TenantDirectory",
    "TenantEngineRegistry",
    "TenantProvisioner",
    "TenantRouter",
    "bind_tenant",
    "current_tenant",
    "current_tenant_id",
    "extract_subdomain",
    "resolve_connection",
    "tenant_database_name",
    "tenant_session_scope",
]
