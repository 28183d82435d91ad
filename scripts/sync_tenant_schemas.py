#!/usr/bin/env python3
"""
Apply the current schema to every tenant database.

Tenants are read from the primary directory (DATABASE_URL).  Each tenant's
connection is resolved from its settings or TENANT_<ID>_DATABASE_URL; a
tenant with neither is assumed to live in its provisioned database
(tenant_<name>_<hash> on the primary server).  The schema is applied with
TENANT_DB_SCHEMA_SYNC_COMMAND when set, otherwise from the ORM metadata.

Usage:
    python3 scripts/sync_tenant_schemas.py
    python3 scripts/sync_tenant_schemas.py --tenant acme --tenant globex
    python3 scripts/sync_tenant_schemas.py --skip demo --include-primary

Exit status is 1 if any database failed.
"""

import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Sync the ledger schema into tenant databases")
    p.add_argument(
        "--tenant",
        action="append",
        default=[],
        metavar="SUBDOMAIN",
        help="Only sync these tenants (repeatable)",
    )
    p.add_argument(
        "--skip",
        action="append",
        default=[],
        metavar="SUBDOMAIN",
        help="Skip these tenants (repeatable)",
    )
    p.add_argument(
        "--include-primary",
        action="store_true",
        help="Also sync the primary database itself",
    )
    p.add_argument(
        "--database-url",
        default=None,
        help="Primary database URL (default: DATABASE_URL)",
    )
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    from sqlalchemy.engine import make_url

    from ledger_config.settings import TenancySettings
    from ledger_kernel.db.engine import init_engine_from_url, reset_engine, session_scope
    from ledger_kernel.exceptions import SchemaSyncError
    from ledger_kernel.logging_config import configure_logging
    from ledger_tenancy.directory import TenantDirectory
    from ledger_tenancy.provisioner import tenant_connection_string, tenant_database_name
    from ledger_tenancy.resolver import resolve_connection
    from ledger_tenancy.schema_sync import build_schema_sync

    args = _parse_args(argv)
    environ = dict(os.environ)
    if args.database_url:
        environ["DATABASE_URL"] = args.database_url
    settings = TenancySettings.from_env(environ)
    configure_logging(level=settings.log_level)

    if not settings.database_url:
        print("ERROR: DATABASE_URL is not set (or pass --database-url)", file=sys.stderr)
        return 1

    init_engine_from_url(settings.database_url)
    try:
        with session_scope() as session:
            tenants = [
                (t.tenant_key, t.settings)
                for t in TenantDirectory(session).list_tenants()
            ]
    finally:
        reset_engine()

    only = {s.lower() for s in args.tenant}
    skip = {s.lower() for s in args.skip}
    targets: list[tuple[str, str]] = []
    if args.include_primary:
        targets.append(("(primary)", settings.database_url))
    for tenant_id, tenant_settings in tenants:
        if only and tenant_id not in only:
            continue
        if tenant_id in skip:
            continue
        url = resolve_connection(tenant_id, tenant_settings, settings.env())
        if url is None:
            url = tenant_connection_string(settings.database_url, tenant_database_name(tenant_id))
        targets.append((tenant_id, url))

    if not targets:
        print("No tenant databases to sync.")
        return 0

    sync = build_schema_sync(settings)
    failures: list[tuple[str, str]] = []
    for label, url in targets:
        database = make_url(url).database
        print(f"  {label:<24} {database} ... ", end="", flush=True)
        try:
            sync.sync(url)
        except SchemaSyncError as exc:
            failures.append((label, exc.detail))
            print("FAILED")
        except Exception as exc:
            failures.append((label, str(exc)))
            print("FAILED")
        else:
            print("ok")

    print()
    print(f"Synced {len(targets) - len(failures)}/{len(targets)} database(s).")
    for label, detail in failures:
        print(f"  {label}: {detail}", file=sys.stderr)
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
