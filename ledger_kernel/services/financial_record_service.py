"""
FinancialRecordService -- writer for the denormalized financial record feed.

Responsibility:
    Persists income / expense / transfer / asset records alongside journal
    entries, and offers an idempotent variant for side effects that may be
    triggered more than once (ticket edits after completion, repeated
    payroll status updates).

Architecture position:
    Kernel > Services.  Called by domain translators in the same session
    as the JournalService call, so record and entry commit together.

Invariants enforced:
    - status defaults to "confirmed"; tenant_id is always stamped.
    - record_event_once never creates a second row for the same
      (reference_type, reference, description).  The pre-insert lookup
      handles the sequential case; the unique constraint plus a SAVEPOINT
      handles the concurrent case, returning the winner's row.

Failure modes:
    - IntegrityError from ``record_event`` when a caller bypasses the
      idempotent path for a key that already exists.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ledger_kernel.db.types import to_decimal
from ledger_kernel.domain.codes import RecordStatus
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.financial_record import FinancialRecord
from ledger_kernel.services.base import BaseService

logger = get_logger("services.financial_record")


def _value(item: object) -> str | None:
    if item is None:
        return None
    return str(getattr(item, "value", item))


@dataclass(frozen=True)
class RecordDraft:
    """Caller-supplied fields of one financial record."""

    record_type: str
    category: str
    amount: Decimal
    description: str
    subcategory: str | None = None
    payment_method: str | None = None
    reference: str | None = None
    reference_type: str | None = None
    status: str = RecordStatus.CONFIRMED.value
    tags: tuple[str, ...] = field(default_factory=tuple)
    user_id: str | None = None
    occurred_at: datetime | None = None


class FinancialRecordService(BaseService):
    """
    Records financial events for one tenant.

    Non-goals:
        - Does NOT post journal entries (see JournalService).
        - Does NOT commit.
    """

    def _build(self, draft: RecordDraft) -> FinancialRecord:
        return FinancialRecord(
            tenant_id=self.tenant_id,
            record_type=_value(draft.record_type),
            category=_value(draft.category),
            subcategory=draft.subcategory,
            amount=to_decimal(draft.amount),
            description=draft.description,
            payment_method=_value(draft.payment_method),
            reference=draft.reference,
            reference_type=_value(draft.reference_type),
            status=_value(draft.status) or RecordStatus.CONFIRMED.value,
            tags=list(draft.tags) if draft.tags else None,
            user_id=draft.user_id,
            created_at=draft.occurred_at or self.clock.now(),
        )

    def record_event(self, draft: RecordDraft) -> FinancialRecord:
        """
        Insert one record.  No duplicate check.

        Postconditions:
            - The record is flushed with status defaulted to "confirmed".
        """
        record = self._build(draft)
        self.session.add(record)
        self.session.flush()
        logger.info(
            "financial_record_created",
            extra={
                "tenant_id": self.tenant_id,
                "record_type": record.record_type,
                "category": record.category,
                "amount": str(record.amount),
                "reference_type": record.reference_type,
                "reference": record.reference,
            },
        )
        return record

    def find_by_reference(
        self,
        reference_type: str,
        reference: str,
        description: str | None = None,
    ) -> FinancialRecord | None:
        stmt = select(FinancialRecord).where(
            FinancialRecord.tenant_id == self.tenant_id,
            FinancialRecord.reference_type == _value(reference_type),
            FinancialRecord.reference == reference,
        )
        if description is not None:
            stmt = stmt.where(FinancialRecord.description == description)
        return self.session.execute(stmt.limit(1)).scalar_one_or_none()

    def record_event_once(self, draft: RecordDraft) -> tuple[FinancialRecord, bool]:
        """
        Insert a record unless one with the same key already exists.

        Returns:
            (record, created) -- ``created`` is False when an existing row
            was returned instead of inserting.
        """
        if draft.reference is not None and draft.reference_type is not None:
            existing = self.find_by_reference(
                draft.reference_type, draft.reference, draft.description
            )
            if existing is not None:
                logger.info(
                    "financial_record_duplicate_skipped",
                    extra={
                        "tenant_id": self.tenant_id,
                        "reference_type": existing.reference_type,
                        "reference": existing.reference,
                    },
                )
                return existing, False

        savepoint = self.session.begin_nested()
        try:
            record = self.record_event(draft)
            savepoint.commit()
            return record, True
        except IntegrityError:
            savepoint.rollback()
            existing = self.find_by_reference(
                draft.reference_type, draft.reference, draft.description
            )
            if existing is None:
                raise
            logger.info(
                "financial_record_race_resolved",
                extra={
                    "tenant_id": self.tenant_id,
                    "reference_type": existing.reference_type,
                    "reference": existing.reference,
                },
            )
            return existing, False
