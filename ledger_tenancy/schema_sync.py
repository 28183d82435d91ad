"""
Schema synchronisation for tenant databases.

Two strategies:
    MetadataSchemaSync  applies the ORM metadata in-process (create_all).
    CommandSchemaSync   runs an external migration command as a subprocess
                        with DATABASE_URL pointed at the tenant database,
                        bounded by a timeout.

``build_schema_sync(settings)`` picks the command strategy when
TENANT_DB_SCHEMA_SYNC_COMMAND is set.
"""

from __future__ import annotations

import os
import shlex
import subprocess
from typing import Mapping, Protocol

from sqlalchemy.pool import NullPool

from ledger_config.settings import TenancySettings
from ledger_kernel.db.engine import create_ledger_engine, create_tables
from ledger_kernel.exceptions import SchemaSyncError
from ledger_kernel.logging_config import get_logger

logger = get_logger("tenancy.schema_sync")


class SchemaSync(Protocol):
    def sync(self, connection_string: str) -> None:
        ...


class MetadataSchemaSync:
    """Create any missing tables from the ORM metadata."""

    def sync(self, connection_string: str) -> None:
        engine = create_ledger_engine(connection_string, poolclass=NullPool)
        try:
            create_tables(engine)
        finally:
            engine.dispose()
        logger.info("schema_sync_completed", extra={"strategy": "metadata"})


class CommandSchemaSync:
    """Run an external migration command against the tenant database."""

    def __init__(
        self,
        command: str,
        timeout_s: int,
        environ: Mapping[str, str] | None = None,
    ):
        self.argv = shlex.split(command)
        self.timeout_s = timeout_s
        self.environ = environ

    def sync(self, connection_string: str) -> None:
        env = dict(os.environ if self.environ is None else self.environ)
        env["DATABASE_URL"] = connection_string
        try:
            result = subprocess.run(
                self.argv,
                env=env,
                capture_output=True,
                text=True,
                timeout=self.timeout_s,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise SchemaSyncError(
                f"{self.argv[0]} timed out after {self.timeout_s}s", timed_out=True
            ) from exc
        except OSError as exc:
            raise SchemaSyncError(f"{self.argv[0]} could not be started: {exc}") from exc

        if result.returncode != 0:
            tail = (result.stderr or result.stdout or "").strip().splitlines()[-5:]
            raise SchemaSyncError(
                f"{self.argv[0]} exited with {result.returncode}: {' | '.join(tail)}"
            )
        logger.info(
            "schema_sync_completed",
            extra={"strategy": "command", "command": self.argv[0]},
        )


def build_schema_sync(settings: TenancySettings) -> SchemaSync:
    if settings.schema_sync_command:
        return CommandSchemaSync(
            settings.schema_sync_command,
            settings.provision_timeout_s,
            settings.environ,
        )
    return MetadataSchemaSync()
