"""
Tenant isolation across provisioned databases.

Each tenant is provisioned into its own SQLite file (the primary URL with
the database swapped for the tenant's name, created in a temporary
working directory).  Writes made while one tenant is bound must be
invisible from every other tenant's database.
"""

import threading
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import sessionmaker

from ledger_config.settings import TenancySettings
from ledger_kernel.db.engine import create_ledger_engine, create_tables
from ledger_kernel.exceptions import UnresolvableTenantConnectionError
from ledger_kernel.models import FinancialRecord, JournalEntry
from ledger_kernel.selectors.financial_selector import FinancialSelector
from ledger_modules.pos import PosSale, PosSaleLine, PosSaleService
from ledger_tenancy.context import current_tenant_id, tenant_session_scope
from ledger_tenancy.directory import TenantDirectory
from ledger_tenancy.provisioner import TenantProvisioner, tenant_database_name
from ledger_tenancy.registry import TenantEngineRegistry
from ledger_tenancy.router import TenantRouter
from ledger_tenancy.schema_sync import MetadataSchemaSync


class RecordingAdmin:
    """SQLite creates the file on first connect; only record the request."""

    def __init__(self):
        self.requested: list[str] = []

    def ensure_database(self, database_name: str) -> bool:
        self.requested.append(database_name)
        return True


@pytest.fixture
def tenancy(tmp_path, monkeypatch, clock):
    monkeypatch.chdir(tmp_path)
    primary_url = f"sqlite:///{tmp_path / 'primary.db'}"
    primary = create_ledger_engine(primary_url)
    create_tables(primary)
    factory = sessionmaker(bind=primary, expire_on_commit=False)

    custom_url = f"sqlite:///{tmp_path / 'custom.db'}"
    MetadataSchemaSync().sync(custom_url)

    with factory() as session:
        directory = TenantDirectory(session, clock)
        directory.create_tenant("acme", "Acme Repairs")
        directory.create_tenant("globex", "Globex Phones")
        directory.create_tenant("initech", "Initech", settings={"databaseUrl": custom_url})
        session.commit()

    settings = TenancySettings(database_url=primary_url, environ={})
    admin = RecordingAdmin()
    registry = TenantEngineRegistry()
    router = TenantRouter(
        settings,
        provisioner=TenantProvisioner(settings, admin=admin, schema_sync=MetadataSchemaSync(), clock=clock),
        registry=registry,
        clock=clock,
        primary_session_factory=factory,
    )
    yield SimpleNamespace(router=router, admin=admin, custom_url=custom_url)
    registry.dispose_all()
    primary.dispose()


def _sale(number: str) -> PosSale:
    return PosSale(
        transaction_id=str(uuid4()),
        transaction_number=number,
        lines=(PosSaleLine(uuid4(), 1, Decimal("75000"), unit_cost=Decimal("40000")),),
    )


def _row_count(session, model) -> int:
    return session.execute(select(func.count()).select_from(model)).scalar_one()


class TestTenantIsolation:

    def test_each_tenant_gets_its_own_database(self, tenancy):
        with tenancy.router.tenant_scope("acme") as acme:
            pass
        with tenancy.router.tenant_scope("globex") as globex:
            pass

        assert acme.connection_string != globex.connection_string
        assert acme.connection_string.endswith(tenant_database_name("acme"))
        assert globex.connection_string.endswith(tenant_database_name("globex"))
        assert tenancy.admin.requested == [tenant_database_name("acme"), tenant_database_name("globex")]

    def test_writes_stay_in_their_tenant_database(self, tenancy, clock):
        with tenancy.router.tenant_scope("acme"):
            with PosSaleService.for_current_tenant(clock) as pos:
                pos.record_sale(_sale("TRX-0001"))

        with tenancy.router.tenant_scope("globex"):
            with tenant_session_scope() as session:
                assert FinancialSelector(session, current_tenant_id()).get_summary().transaction_count == 0
                assert _row_count(session, FinancialRecord) == 0
                assert _row_count(session, JournalEntry) == 0

        with tenancy.router.tenant_scope("acme"):
            with tenant_session_scope() as session:
                summary = FinancialSelector(session, "acme").get_summary()
                assert summary.total_income == Decimal("75000")
                assert summary.total_expense == Decimal("40000")
                assert _row_count(session, JournalEntry) == 1

    def test_engines_are_reused_per_database(self, tenancy):
        with tenancy.router.tenant_scope("acme") as first:
            pass
        with tenancy.router.tenant_scope("acme") as second:
            pass

        assert first.engine is second.engine
        assert len(tenancy.router.registry) == 1
        assert tenancy.admin.requested == [tenant_database_name("acme")]

    def test_configured_connection_skips_provisioning(self, tenancy):
        with tenancy.router.tenant_scope("initech") as ctx:
            assert ctx.connection_string == tenancy.custom_url
        assert tenancy.admin.requested == []

    def test_binding_is_restored_and_thread_local(self, tenancy):
        seen = []
        with tenancy.router.tenant_scope("acme"):
            assert current_tenant_id() == "acme"
            worker = threading.Thread(target=lambda: seen.append(current_tenant_id()))
            worker.start()
            worker.join()
        assert seen == ["main"]
        assert current_tenant_id() == "main"

    def test_unresolvable_without_auto_provision(self, tenancy):
        with pytest.raises(UnresolvableTenantConnectionError):
            tenancy.router.connection_string_for("globex", None, auto_provision=False)
