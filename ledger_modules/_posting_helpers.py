"""
Shared plumbing for module translators.

Used by ledger_modules/*/service.py so every translator builds its kernel
services the same way and owns its transaction boundary the same way.

Architecture: Modules layer.  Imports from ledger_kernel, ledger_config and
ledger_tenancy.context.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, TypeVar

from sqlalchemy.orm import Session

from ledger_config.loader import get_chart_template
from ledger_kernel.domain.chart import ChartTemplate
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.models.financial_record import FinancialRecord
from ledger_kernel.models.journal import JournalEntry
from ledger_kernel.services.financial_record_service import FinancialRecordService
from ledger_kernel.services.journal_service import JournalService
from ledger_tenancy.context import current_tenant_id, tenant_session_scope

S = TypeVar("S", bound="ModuleService")


@dataclass(frozen=True)
class PostingOutcome:
    """What a translator call wrote (or found already written)."""

    entry: JournalEntry | None
    records: tuple[FinancialRecord, ...] = ()
    created: bool = True

    def record(self, category: str) -> FinancialRecord | None:
        return next((r for r in self.records if r.category == category), None)


class ModuleService:
    """
    Base for translators: one session, one tenant, journal + record writers.

    Transaction boundary: with ``auto_commit=True`` (default) each public
    method commits on success and rolls back on failure.  With
    ``auto_commit=False`` the caller's transaction is the unit of work and
    the service only flushes.
    """

    def __init__(
        self,
        session: Session,
        tenant_id: str | None = None,
        clock: Clock | None = None,
        template: ChartTemplate | None = None,
        auto_commit: bool = True,
    ):
        self._session = session
        self._tenant_id = tenant_id or current_tenant_id()
        self._clock = clock or SystemClock()
        self._auto_commit = auto_commit
        self._journal = JournalService(
            session, self._tenant_id, template or get_chart_template(), self._clock
        )
        self._records = FinancialRecordService(session, self._tenant_id, self._clock)

    @property
    def tenant_id(self) -> str:
        return self._tenant_id

    @classmethod
    @contextmanager
    def for_current_tenant(cls: type[S], clock: Clock | None = None) -> Iterator[S]:
        """Service on a fresh session of the bound tenant; commits when the block exits."""
        with tenant_session_scope() as session:
            yield cls(session, current_tenant_id(), clock=clock, auto_commit=False)

    @contextmanager
    def _unit_of_work(self) -> Iterator[Session]:
        try:
            yield self._session
            if self._auto_commit:
                self._session.commit()
        except Exception:
            if self._auto_commit:
                self._session.rollback()
            raise
