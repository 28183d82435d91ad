"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for the tenant's chart of accounts -- the
    target of every journal line.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - (tenant_id, code) is unique; concurrent bootstrap races collapse onto
      the existing row (see AccountBootstrapper).
    - parent_id, when set, references an account created earlier from the
      same template (parents precede children).

Failure modes:
    - IntegrityError on duplicate (tenant_id, code).
"""

from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TimestampedBase, UUIDString

if TYPE_CHECKING:
    from ledger_kernel.models.journal import JournalLine


class AccountType(str, Enum):
    """Types of accounts in the chart of accounts."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"


class NormalBalance(str, Enum):
    """Normal balance side for an account."""

    DEBIT = "debit"
    CREDIT = "credit"


class Account(TimestampedBase):
    """
    Chart of accounts entry for one tenant.

    Contract:
        Rows are created on demand from the chart template by
        AccountBootstrapper; they are never deleted.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_account_tenant_code"),
        Index("idx_account_type", "account_type"),
        Index("idx_account_parent", "parent_id"),
    )

    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)

    code: Mapped[str] = mapped_column(String(20), nullable=False)

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    account_type: Mapped[str] = mapped_column(String(20), nullable=False)

    # Finer grouping used by the income statement (e.g. cost_of_goods_sold)
    subtype: Mapped[str | None] = mapped_column(String(50), nullable=True)

    normal_balance: Mapped[str] = mapped_column(String(10), nullable=False)

    parent_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=True,
    )

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    parent: Mapped["Account | None"] = relationship(
        "Account",
        remote_side="Account.id",
        back_populates="children",
    )

    children: Mapped[list["Account"]] = relationship(
        "Account",
        back_populates="parent",
    )

    journal_lines: Mapped[list["JournalLine"]] = relationship(
        "JournalLine",
        back_populates="account",
    )

    def __repr__(self) -> str:
        return f"<Account {self.code}: {self.name}>"
