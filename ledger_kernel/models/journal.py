"""
Module: ledger_kernel.models.journal
Responsibility: ORM persistence for journal entries and their lines -- the
    authoritative double-entry record of every business event.
Architecture position: Kernel > Models.  May import from db/ and sibling
    models only.

Invariants enforced:
    - (tenant_id, journal_number) is unique.
    - For every entry: round(sum(debit_amount), 2) == round(sum(credit_amount), 2).
      Checked by JournalService before any row is written.
    - status is always "posted" (no draft/approval lifecycle).

Audit relevance:
    reference_type + reference tie each entry back to its source document
    (POS transaction, service ticket, purchase, payroll).
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TimestampedBase, UUIDString
from ledger_kernel.db.types import ZERO, round_money
from ledger_kernel.domain.codes import JournalEntryStatus
from ledger_kernel.models.account import Account


class JournalEntry(TimestampedBase):
    """
    A posted, balanced journal entry.

    Guarantees:
        - total_amount equals the debit total.
        - lines are loaded in line_number order.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        UniqueConstraint("tenant_id", "journal_number", name="uq_journal_tenant_number"),
        Index("idx_journal_reference", "tenant_id", "reference_type", "reference"),
        Index("idx_journal_entry_date", "entry_date"),
    )

    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)

    journal_number: Mapped[str] = mapped_column(String(50), nullable=False)

    entry_type: Mapped[str] = mapped_column(String(50), nullable=False)

    description: Mapped[str] = mapped_column(Text, nullable=False)

    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    reference_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    total_amount: Mapped[Decimal] = mapped_column(nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=JournalEntryStatus.POSTED.value,
    )

    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    entry_date: Mapped[datetime] = mapped_column(nullable=False)

    lines: Mapped[list["JournalLine"]] = relationship(
        "JournalLine",
        back_populates="entry",
        order_by="JournalLine.line_number",
        cascade="all, delete-orphan",
    )

    @property
    def total_debits(self) -> Decimal:
        return round_money(sum((line.debit_amount for line in self.lines), ZERO))

    @property
    def total_credits(self) -> Decimal:
        return round_money(sum((line.credit_amount for line in self.lines), ZERO))

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits

    def __repr__(self) -> str:
        return f"<JournalEntry {self.journal_number} {self.entry_type}>"


class JournalLine(TimestampedBase):
    """One debit or credit against a single account."""

    __tablename__ = "journal_lines"

    __table_args__ = (
        Index("idx_line_entry", "journal_entry_id"),
        Index("idx_line_account", "account_id"),
    )

    journal_entry_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=False,
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)

    line_number: Mapped[int] = mapped_column(Integer, nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    debit_amount: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)

    credit_amount: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)

    entry: Mapped[JournalEntry] = relationship("JournalEntry", back_populates="lines")

    account: Mapped[Account] = relationship("Account", back_populates="journal_lines")

    @property
    def account_code(self) -> str:
        return self.account.code

    def __repr__(self) -> str:
        return (
            f"<JournalLine {self.line_number} "
            f"Dr {self.debit_amount} Cr {self.credit_amount}>"
        )
