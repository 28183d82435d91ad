"""
Database administration for tenant provisioning.

The admin connection is short-lived: one NullPool engine per call, opened
in AUTOCOMMIT (CREATE DATABASE cannot run inside a transaction) and
disposed before returning, so provisioning never holds pooled admin
connections.
"""

from __future__ import annotations

from typing import Protocol

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.pool import NullPool

from ledger_kernel.db.engine import create_ledger_engine
from ledger_kernel.logging_config import get_logger

logger = get_logger("tenancy.admin")

DUPLICATE_DATABASE = "42P04"


class DatabaseAdmin(Protocol):
    """Creates tenant databases.  Implemented for PostgreSQL and by test fakes."""

    def ensure_database(self, database_name: str) -> bool:
        """Create the database if absent.  Returns True when it was created."""
        ...


def sqlstate_of(exc: BaseException) -> str | None:
    """SQLSTATE carried by a DBAPI error (psycopg2 ``pgcode``), if any."""
    orig = getattr(exc, "orig", exc)
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


class PostgresDatabaseAdmin:
    """DatabaseAdmin backed by a PostgreSQL role with CREATEDB."""

    def __init__(self, admin_url: str, connect_timeout_s: int = 30):
        self.admin_url = admin_url
        self.connect_timeout_s = connect_timeout_s

    def ensure_database(self, database_name: str) -> bool:
        engine = create_ledger_engine(
            self.admin_url,
            poolclass=NullPool,
            isolation_level="AUTOCOMMIT",
            connect_args={"connect_timeout": self.connect_timeout_s},
        )
        try:
            with engine.connect() as conn:
                exists = conn.execute(
                    text("SELECT 1 FROM pg_database WHERE datname = :name"),
                    {"name": database_name},
                ).first()
                if exists is not None:
                    return False

                quoted = conn.dialect.identifier_preparer.quote_identifier(database_name)
                try:
                    conn.execute(text(f"CREATE DATABASE {quoted}"))
                except DBAPIError as exc:
                    # Lost a race with another process creating the same database
                    if sqlstate_of(exc) == DUPLICATE_DATABASE:
                        logger.info(
                            "tenant_database_create_race",
                            extra={"database_name": database_name},
                        )
                        return False
                    raise
                return True
        finally:
            engine.dispose()
