"""
Tests for the double-entry balance rule and JournalService.

An unbalanced request must be rejected before anything is written:
no entry, no lines, no bootstrapped accounts, no sequence allocation.
"""

from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from sqlalchemy import func, select

from ledger_kernel.domain.journal import (
    JournalLineSpec,
    credit,
    debit,
    drop_zero_lines,
    validate_balance,
)
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    EmptyJournalError,
    InvalidJournalLineError,
    UnbalancedEntryError,
)
from ledger_kernel.models import Account, JournalEntry, JournalLine, SequenceCounter
from ledger_kernel.services.journal_service import JournalService

money = st.decimals(
    min_value=Decimal("0.01"),
    max_value=Decimal("10000000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)


def _count(session, model) -> int:
    return session.execute(select(func.count()).select_from(model)).scalar_one()


class TestBalanceRule:

    def test_balanced_entry_passes(self):
        check = validate_balance("test", [debit("1111", Decimal("100")), credit("4110", Decimal("100"))])
        assert check.total_debits == Decimal("100.00")
        assert check.is_balanced

    def test_unbalanced_entry_rejected(self):
        with pytest.raises(UnbalancedEntryError) as exc:
            validate_balance("test", [debit("1111", Decimal("100")), credit("4110", Decimal("99"))])
        assert exc.value.debits == "100.00"
        assert exc.value.credits == "99.00"

    def test_totals_compared_after_rounding(self):
        lines = [debit("1111", Decimal("100.004")), credit("4110", Decimal("100.00"))]
        assert validate_balance("test", lines).is_balanced

    def test_empty_entry_rejected(self):
        with pytest.raises(EmptyJournalError):
            validate_balance("test", [])

    def test_negative_amount_rejected(self):
        with pytest.raises(InvalidJournalLineError):
            JournalLineSpec("1111", debit_amount=Decimal("-1"))

    def test_two_sided_line_rejected(self):
        with pytest.raises(InvalidJournalLineError):
            JournalLineSpec("1111", debit_amount=Decimal("1"), credit_amount=Decimal("1"))

    def test_drop_zero_lines(self):
        lines = [debit("1111", Decimal("5")), debit("5110", Decimal("0")), credit("4110", Decimal("5"))]
        assert [line.account_code for line in drop_zero_lines(lines)] == ["1111", "4110"]

    @settings(max_examples=200)
    @given(amounts=st.lists(money, min_size=1, max_size=8))
    def test_debits_offset_by_single_credit_balance(self, amounts):
        lines = [debit("5210", a) for a in amounts]
        lines.append(credit("1112", sum(amounts, Decimal("0"))))
        assert validate_balance("payroll", lines).is_balanced

    @settings(max_examples=200)
    @given(amounts=st.lists(money, min_size=1, max_size=8), skew=money)
    def test_any_skew_is_rejected(self, amounts, skew):
        lines = [debit("5210", a) for a in amounts]
        lines.append(credit("1112", sum(amounts, Decimal("0")) + skew))
        with pytest.raises(UnbalancedEntryError):
            validate_balance("payroll", lines)


class TestJournalService:

    @pytest.fixture
    def journal(self, session, tenant_id, chart, clock):
        return JournalService(session, tenant_id, chart, clock)

    def test_unbalanced_entry_writes_nothing(self, journal, session):
        with pytest.raises(UnbalancedEntryError):
            journal.create_journal_entry(
                "manual_expense",
                [debit("5220", Decimal("100")), credit("1111", Decimal("99"))],
            )
        assert _count(session, JournalEntry) == 0
        assert _count(session, JournalLine) == 0
        assert _count(session, Account) == 0
        assert _count(session, SequenceCounter) == 0

    def test_posts_balanced_entry(self, journal):
        entry = journal.create_journal_entry(
            "manual_expense",
            [debit("5220", Decimal("250000")), credit("1111", Decimal("250000"))],
            description="March rent",
            reference="rent-2024-03",
            reference_type="manual_expense",
            user_id="u-1",
        )
        assert entry.journal_number == "JRN-20240315-000001"
        assert entry.status == "posted"
        assert entry.total_amount == Decimal("250000")
        assert [line.line_number for line in entry.lines] == [1, 2]
        assert entry.lines[0].account.code == "5220"
        assert entry.lines[1].credit_amount == Decimal("250000")

    def test_journal_numbers_are_sequential(self, journal):
        lines = [debit("1111", Decimal("10")), credit("4300", Decimal("10"))]
        first = journal.create_journal_entry("manual_income", lines)
        second = journal.create_journal_entry("manual_income", lines)
        assert first.journal_number.endswith("-000001")
        assert second.journal_number.endswith("-000002")

    def test_description_defaults_to_entry_type(self, journal):
        entry = journal.create_journal_entry(
            "manual_income", [debit("1111", Decimal("10")), credit("4300", Decimal("10"))]
        )
        assert entry.description == "manual_income"

    def test_unknown_account_code_rejected(self, journal, session):
        with pytest.raises(AccountNotFoundError) as exc:
            journal.create_journal_entry(
                "manual_expense",
                [debit("9999", Decimal("10")), credit("1111", Decimal("10"))],
            )
        assert exc.value.account_code == "9999"
        assert _count(session, JournalEntry) == 0

    def test_find_entry_by_reference(self, journal):
        lines = [debit("1111", Decimal("10")), credit("4300", Decimal("10"))]
        posted = journal.create_journal_entry("manual_income", lines, reference="r-1", reference_type="manual_income")
        assert journal.find_entry("manual_income", "r-1").id == posted.id
        assert journal.find_entry("manual_income", "r-2") is None

    def test_entries_are_tenant_scoped(self, session, chart, clock):
        lines = [debit("1111", Decimal("10")), credit("4300", Decimal("10"))]
        JournalService(session, "acme", chart, clock).create_journal_entry(
            "manual_income", lines, reference="r-1", reference_type="manual_income"
        )
        other = JournalService(session, "globex", chart, clock)
        assert other.find_entry("manual_income", "r-1") is None
        entry = other.create_journal_entry("manual_income", lines)
        assert entry.journal_number.endswith("-000001")
