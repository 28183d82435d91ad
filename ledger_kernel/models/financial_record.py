"""
Module: ledger_kernel.models.financial_record
Responsibility: ORM persistence for the denormalized financial record feed
    used by dashboards, summaries and reports.
Architecture position: Kernel > Models.

Invariants enforced:
    - (tenant_id, reference_type, reference, description) is unique.  Rows
      with a NULL reference are not deduplicated (manual entries).
    - Only rows of type income/expense contribute to profit totals; asset
      and transfer rows are carried for traceability only.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TimestampedBase
from ledger_kernel.domain.codes import RecordStatus


class FinancialRecord(TimestampedBase):
    """
    One denormalized income / expense / transfer / asset event.

    Guarantees:
        - status defaults to "confirmed".
        - created_at is stamped from the recording service's Clock.
    """

    __tablename__ = "financial_records"

    __table_args__ = (
        UniqueConstraint(
            "tenant_id",
            "reference_type",
            "reference",
            "description",
            name="uq_financial_record_reference",
        ),
        Index("idx_record_tenant_created", "tenant_id", "created_at"),
        Index("idx_record_type", "record_type"),
    )

    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)

    record_type: Mapped[str] = mapped_column(String(20), nullable=False)

    category: Mapped[str] = mapped_column(String(100), nullable=False)

    subcategory: Mapped[str | None] = mapped_column(String(100), nullable=True)

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    description: Mapped[str] = mapped_column(Text, nullable=False)

    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)

    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    reference_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=RecordStatus.CONFIRMED.value,
    )

    tags: Mapped[list | None] = mapped_column(JSON, nullable=True)

    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    def __repr__(self) -> str:
        return f"<FinancialRecord {self.record_type} {self.category} {self.amount}>"
