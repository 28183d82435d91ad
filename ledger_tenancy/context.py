"""
Request-scoped tenant binding.

Responsibility:
    Carries "which tenant database does this unit of work use" through a
    ``ContextVar``.  Each thread and each asyncio task sees its own value,
    and ``bind_tenant`` restores the previous binding on exit, so a binding
    never leaks into an unrelated request.

Invariants enforced:
    - ``current_tenant()`` never returns another request's binding.
    - When nothing is bound, the primary database context is returned
      (tenant id ``PRIMARY_TENANT_ID``).
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Iterator

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ledger_kernel.db import engine as primary_db
from ledger_kernel.logging_config import LogContext

PRIMARY_TENANT_ID = "main"


@dataclass(frozen=True)
class TenantContext:
    tenant_id: str
    engine: Engine
    session_factory: sessionmaker[Session]
    connection_string: str | None = None

    @classmethod
    def for_engine(
        cls,
        tenant_id: str,
        engine: Engine,
        connection_string: str | None = None,
    ) -> TenantContext:
        return cls(
            tenant_id=tenant_id,
            engine=engine,
            session_factory=sessionmaker(bind=engine, expire_on_commit=False),
            connection_string=connection_string,
        )


_current: ContextVar[TenantContext | None] = ContextVar("tenant_context", default=None)


def primary_context() -> TenantContext:
    """Context for the primary database (requires init_engine_from_url)."""
    return TenantContext(
        tenant_id=PRIMARY_TENANT_ID,
        engine=primary_db.get_engine(),
        session_factory=primary_db.get_session_factory(),
    )


def current_tenant() -> TenantContext:
    ctx = _current.get()
    return ctx if ctx is not None else primary_context()


def current_tenant_id() -> str:
    ctx = _current.get()
    return ctx.tenant_id if ctx is not None else PRIMARY_TENANT_ID


@contextmanager
def bind_tenant(context: TenantContext) -> Iterator[TenantContext]:
    """Bind ``context`` for the duration of the block."""
    token = _current.set(context)
    try:
        with LogContext.bind(tenant_id=context.tenant_id):
            yield context
    finally:
        _current.reset(token)


@contextmanager
def tenant_session_scope() -> Iterator[Session]:
    """Commit-or-rollback session on the currently bound tenant database."""
    with primary_db.session_scope(current_tenant().session_factory) as session:
        yield session
