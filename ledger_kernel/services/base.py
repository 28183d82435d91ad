"""
BaseService -- abstract base for kernel write services.

Responsibility:
    Common constructor and session-handling contract for every write
    service in the kernel.  Services receive a SQLAlchemy ``Session`` bound
    to the tenant database and a tenant id, and use ``session.flush()`` --
    never ``session.commit()``.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's
      transaction and never commit or roll back themselves.  The caller
      (a module service, ``tenant_session_scope``, or a test) owns the
      unit of work, so a journal entry and its financial records commit
      or roll back together.
"""

from abc import ABC

from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock


class BaseService(ABC):
    """
    Abstract base class for kernel write services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide read methods -- those belong in
          ``ledger_kernel/selectors/``.
    """

    def __init__(self, session: Session, tenant_id: str, clock: Clock | None = None):
        self.session = session
        self.tenant_id = tenant_id
        self.clock = clock or SystemClock()
