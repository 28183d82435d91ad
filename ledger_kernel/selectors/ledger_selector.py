"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: Read-only ledger queries: chart listing, trial balance,
    income statement and balance sheet.  The ledger is a derived view
    over posted journal lines -- there are no stored balances.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Balances derive from JournalLine rows at query time.
    - Revenue activity is credit minus debit; expense activity is debit
      minus credit.  Gross profit subtracts only accounts whose subtype is
      cost_of_goods_sold.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select

from ledger_kernel.db.types import ZERO, round_money, to_decimal
from ledger_kernel.models.account import Account, AccountType
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_kernel.selectors.base import BaseSelector

COGS_SUBTYPE = "cost_of_goods_sold"


@dataclass(frozen=True)
class TrialBalanceRow:
    account_code: str
    account_name: str
    account_type: str
    debit_total: Decimal
    credit_total: Decimal

    @property
    def balance(self) -> Decimal:
        """Net balance (debits - credits)."""
        return self.debit_total - self.credit_total


@dataclass(frozen=True)
class TrialBalance:
    rows: tuple[TrialBalanceRow, ...]

    @property
    def total_debits(self) -> Decimal:
        return round_money(sum((r.debit_total for r in self.rows), ZERO))

    @property
    def total_credits(self) -> Decimal:
        return round_money(sum((r.credit_total for r in self.rows), ZERO))

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits


@dataclass(frozen=True)
class StatementLine:
    account_code: str
    account_name: str
    subtype: str | None
    amount: Decimal


@dataclass
class IncomeStatement:
    start: datetime | None
    end: datetime | None
    revenue: list[StatementLine] = field(default_factory=list)
    expenses: list[StatementLine] = field(default_factory=list)

    @property
    def total_revenue(self) -> Decimal:
        return sum((line.amount for line in self.revenue), ZERO)

    @property
    def cost_of_goods_sold(self) -> Decimal:
        return sum((line.amount for line in self.expenses if line.subtype == COGS_SUBTYPE), ZERO)

    @property
    def total_expenses(self) -> Decimal:
        return sum((line.amount for line in self.expenses), ZERO)

    @property
    def gross_profit(self) -> Decimal:
        return self.total_revenue - self.cost_of_goods_sold

    @property
    def net_income(self) -> Decimal:
        return self.total_revenue - self.total_expenses


@dataclass
class BalanceSheet:
    """
    Asset, liability and equity balances grouped by account subtype.

    Revenue and expense activity is not closed into retained earnings, so
    it is carried as ``current_earnings`` inside equity.
    """

    as_of: datetime | None
    assets: dict[str, list[StatementLine]] = field(default_factory=dict)
    liabilities: dict[str, list[StatementLine]] = field(default_factory=dict)
    equity: dict[str, list[StatementLine]] = field(default_factory=dict)
    current_earnings: Decimal = ZERO

    @staticmethod
    def _total(section: dict[str, list[StatementLine]]) -> Decimal:
        return sum((line.amount for lines in section.values() for line in lines), ZERO)

    @property
    def total_assets(self) -> Decimal:
        return self._total(self.assets)

    @property
    def total_liabilities(self) -> Decimal:
        return self._total(self.liabilities)

    @property
    def total_equity(self) -> Decimal:
        return self._total(self.equity) + self.current_earnings

    @property
    def is_balanced(self) -> bool:
        return round_money(self.total_assets) == round_money(self.total_liabilities + self.total_equity)

class LedgerSelector(BaseSelector):
    """Derived ledger views for one tenant."""

    def list_accounts(self, active_only: bool = True) -> list[Account]:
        stmt = select(Account).where(Account.tenant_id == self.tenant_id)
        if active_only:
            stmt = stmt.where(Account.is_active.is_(True))
        return list(self.session.execute(stmt.order_by(Account.code)).scalars())

    def get_account(self, code: str) -> Account | None:
        return self.session.execute(
            select(Account).where(Account.tenant_id == self.tenant_id, Account.code == code)
        ).scalar_one_or_none()

    def _activity(self, start: datetime | None = None, end: datetime | None = None):
        stmt = (
            select(
                Account.code,
                Account.name,
                Account.account_type,
                Account.subtype,
                func.coalesce(func.sum(JournalLine.debit_amount), 0),
                func.coalesce(func.sum(JournalLine.credit_amount), 0),
            )
            .join(JournalLine, JournalLine.account_id == Account.id)
            .join(JournalEntry, JournalEntry.id == JournalLine.journal_entry_id)
            .where(JournalEntry.tenant_id == self.tenant_id)
            .group_by(Account.code, Account.name, Account.account_type, Account.subtype)
            .order_by(Account.code)
        )
        if start is not None:
            stmt = stmt.where(JournalEntry.entry_date >= start)
        if end is not None:
            stmt = stmt.where(JournalEntry.entry_date <= end)
        return self.session.execute(stmt).all()

    def trial_balance(self) -> TrialBalance:
        rows = tuple(
            TrialBalanceRow(
                account_code=code,
                account_name=name,
                account_type=account_type,
                debit_total=to_decimal(debits),
                credit_total=to_decimal(credits),
            )
            for code, name, account_type, _subtype, debits, credits in self._activity()
        )
        return TrialBalance(rows=rows)

    def account_balance(self, code: str) -> Decimal:
        """Net debit-minus-credit balance for one account."""
        for row in self.trial_balance().rows:
            if row.account_code == code:
                return row.balance
        return ZERO

    def income_statement(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> IncomeStatement:
        statement = IncomeStatement(start=start, end=end)
        for code, name, account_type, subtype, debits, credits in self._activity(start, end):
            debits = to_decimal(debits)
            credits = to_decimal(credits)
            if account_type == AccountType.REVENUE.value:
                statement.revenue.append(StatementLine(code, name, subtype, credits - debits))
            elif account_type == AccountType.EXPENSE.value:
                statement.expenses.append(StatementLine(code, name, subtype, debits - credits))
        return statement

    def balance_sheet(self, as_of: datetime | None = None) -> BalanceSheet:
        """Balances of every account with activity up to ``as_of`` (inclusive)."""
        sheet = BalanceSheet(as_of=as_of)
        sections = {
            AccountType.ASSET.value: (sheet.assets, "other_asset"),
            AccountType.LIABILITY.value: (sheet.liabilities, "other_liability"),
            AccountType.EQUITY.value: (sheet.equity, "owner_equity"),
        }
        for code, name, account_type, subtype, debits, credits in self._activity(end=as_of):
            debits = to_decimal(debits)
            credits = to_decimal(credits)
            if account_type == AccountType.REVENUE.value:
                sheet.current_earnings += credits - debits
            elif account_type == AccountType.EXPENSE.value:
                sheet.current_earnings -= debits - credits
            else:
                section, default = sections[account_type]
                amount = debits - credits if account_type == AccountType.ASSET.value else credits - debits
                section.setdefault(subtype or default, []).append(StatementLine(code, name, subtype, amount))
        return sheet
