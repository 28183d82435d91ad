"""Tests for the financial record feed and its summaries."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from ledger_kernel.domain.codes import RecordType
from ledger_kernel.selectors.financial_selector import FinancialSelector, TransactionFilter
from ledger_kernel.services.financial_record_service import FinancialRecordService, RecordDraft

START = datetime(2024, 3, 1, 0, 0, 0, tzinfo=timezone.utc)
END = datetime(2024, 3, 31, 23, 59, 59, tzinfo=timezone.utc)


@pytest.fixture
def records(session, tenant_id, clock):
    return FinancialRecordService(session, tenant_id, clock)


def _draft(record_type, amount, category="sales_revenue", occurred_at=None, **kw) -> RecordDraft:
    return RecordDraft(
        record_type=record_type,
        category=category,
        amount=Decimal(amount),
        description=kw.pop("description", f"{record_type} {amount}"),
        occurred_at=occurred_at,
        **kw,
    )


class TestRecordService:

    def test_status_defaults_to_confirmed(self, records):
        record = records.record_event(_draft(RecordType.INCOME, "1000"))
        assert record.status == "confirmed"
        assert record.record_type == "income"

    def test_record_once_returns_existing(self, records):
        draft = _draft(RecordType.INCOME, "1000", reference="trx-1", reference_type="pos_sale")
        first, created = records.record_event_once(draft)
        second, created_again = records.record_event_once(draft)
        assert created is True
        assert created_again is False
        assert second.id == first.id

    def test_same_reference_different_description_is_distinct(self, records):
        records.record_event_once(_draft(RecordType.INCOME, "1", reference="t", reference_type="x", description="a"))
        _, created = records.record_event_once(
            _draft(RecordType.INCOME, "2", reference="t", reference_type="x", description="b")
        )
        assert created is True


class TestSummary:

    def test_window_is_inclusive_at_both_ends(self, records, session, tenant_id):
        records.record_event(_draft(RecordType.INCOME, "100", occurred_at=START))
        records.record_event(_draft(RecordType.INCOME, "200", occurred_at=END))
        records.record_event(_draft(RecordType.INCOME, "400", occurred_at=START - timedelta(seconds=1)))
        records.record_event(_draft(RecordType.INCOME, "800", occurred_at=END + timedelta(seconds=1)))

        summary = FinancialSelector(session, tenant_id).get_summary(START, END)
        assert summary.total_income == Decimal("300")
        assert summary.transaction_count == 2

    def test_asset_and_transfer_are_not_profit(self, records, session, tenant_id):
        records.record_event(_draft(RecordType.INCOME, "1000"))
        records.record_event(_draft(RecordType.EXPENSE, "300", category="cogs"))
        records.record_event(_draft(RecordType.ASSET, "5000", category="inventory"))
        records.record_event(_draft(RecordType.TRANSFER, "700", category="transfer"))

        summary = FinancialSelector(session, tenant_id).get_summary()
        assert summary.total_income == Decimal("1000")
        assert summary.total_expense == Decimal("300")
        assert summary.net_profit == Decimal("700")
        assert summary.asset_total == Decimal("5000")
        assert summary.transfer_total == Decimal("700")
        assert summary.transaction_count == 4

    def test_category_and_payment_breakdowns(self, records, session, tenant_id):
        records.record_event(_draft(RecordType.INCOME, "100", payment_method="cash"))
        records.record_event(_draft(RecordType.INCOME, "50", payment_method="bank"))
        records.record_event(_draft(RecordType.EXPENSE, "30", category="cogs", payment_method="inventory"))

        summary = FinancialSelector(session, tenant_id).get_summary()
        assert summary.categories["sales_revenue"].income == Decimal("150")
        assert summary.categories["sales_revenue"].count == 2
        assert summary.categories["cogs"].expense == Decimal("30")
        assert summary.payment_methods == {
            "cash": Decimal("100"),
            "bank": Decimal("50"),
            "inventory": Decimal("30"),
        }

    def test_only_confirmed_rows_count(self, records, session, tenant_id):
        records.record_event(_draft(RecordType.INCOME, "100"))
        records.record_event(_draft(RecordType.INCOME, "900", status="pending"))
        assert FinancialSelector(session, tenant_id).get_summary().total_income == Decimal("100")

    def test_other_tenants_are_invisible(self, session, clock, records):
        FinancialRecordService(session, "globex", clock).record_event(_draft(RecordType.INCOME, "999"))
        records.record_event(_draft(RecordType.INCOME, "1"))
        assert FinancialSelector(session, "acme").get_summary().total_income == Decimal("1")


class TestTransactions:

    def test_filters_and_newest_first(self, records, session, tenant_id):
        records.record_event(_draft(RecordType.INCOME, "1", occurred_at=START))
        records.record_event(_draft(RecordType.INCOME, "2", occurred_at=START + timedelta(days=1)))
        records.record_event(_draft(RecordType.EXPENSE, "3", category="cogs", occurred_at=START))

        selector = FinancialSelector(session, tenant_id)
        incomes = selector.get_transactions(TransactionFilter(record_type=RecordType.INCOME))
        assert [r.amount for r in incomes] == [Decimal("2"), Decimal("1")]

        cogs = selector.get_transactions(TransactionFilter(category="cogs"))
        assert len(cogs) == 1

        limited = selector.get_transactions(TransactionFilter(limit=1))
        assert len(limited) == 1


class TestConcurrentRecordOnce:

    def test_lost_insert_race_returns_winner(self, records, session, session_factory, tenant_id, clock,
                                             monkeypatch):
        draft = _draft(RecordType.INCOME, "1000", reference="trx-9", reference_type="pos_sale")
        with session_factory() as other:
            winner = FinancialRecordService(other, tenant_id, clock).record_event(draft)
            other.commit()

        unrelated = records.record_event(_draft(RecordType.EXPENSE, "250", category="utilities"))

        real_lookup = records.find_by_reference
        stale = [True]

        def lookup(*args, **kwargs):
            # The first read misses the row committed by the other session.
            if stale:
                stale.pop()
                return None
            return real_lookup(*args, **kwargs)

        monkeypatch.setattr(records, "find_by_reference", lookup)
        record, created = records.record_event_once(draft)

        assert created is False
        assert record.id == winner.id

        session.commit()
        rows = FinancialSelector(session, tenant_id).get_transactions()
        assert {r.id for r in rows} == {winner.id, unrelated.id}
