"""Tests for payroll records, attendance and the paid-transition translator."""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from ledger_kernel.exceptions import (
    InvalidPayrollTransitionError,
    NegativeNetPayError,
    PayrollNotFoundError,
)
from ledger_kernel.models import FinancialRecord, JournalEntry
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_modules.payroll import PayrollInput, PayrollService, compute_pay


@pytest.fixture
def payroll_service(session, tenant_id, clock, chart):
    return PayrollService(session, tenant_id, clock=clock, template=chart)


@pytest.fixture
def employee(payroll_service):
    return payroll_service.create_employee(
        "EMP-001", "Sari", "Technician", Decimal("4500000"), date(2023, 6, 1), department="Workshop"
    )


def _march_payroll(employee_id) -> PayrollInput:
    return PayrollInput(
        employee_id=str(employee_id),
        period_start=date(2024, 3, 1),
        period_end=date(2024, 3, 31),
        base_salary=Decimal("4500000"),
        overtime=Decimal("300000"),
        allowances=Decimal("200000"),
        tax_deduction=Decimal("150000"),
        social_security=Decimal("50000"),
    )


def _count(session, model, **filters) -> int:
    stmt = select(func.count()).select_from(model)
    for name, value in filters.items():
        stmt = stmt.where(getattr(model, name) == value)
    return session.execute(stmt).scalar_one()


class TestComputePay:

    def test_gross_and_net(self):
        pay = compute_pay(_march_payroll(uuid4()))
        assert pay.gross_pay == Decimal("5000000.00")
        assert pay.total_deductions == Decimal("200000.00")
        assert pay.net_pay == Decimal("4800000.00")

    def test_period_must_be_ordered(self):
        with pytest.raises(ValueError):
            PayrollInput(str(uuid4()), date(2024, 3, 31), date(2024, 3, 1), Decimal("1"))


class TestPayrollLifecycle:

    def test_created_as_draft_with_number(self, payroll_service, employee):
        payroll = payroll_service.create_payroll(_march_payroll(employee.id))
        assert payroll.status == "draft"
        assert payroll.payroll_number == "PAY-202403-00001"
        assert payroll.net_pay == Decimal("4800000")
        assert payroll.paid_date is None

    def test_paid_twice_records_one_expense(self, payroll_service, employee, session, tenant_id):
        payroll = payroll_service.create_payroll(_march_payroll(employee.id))
        payroll_service.update_payroll_status(payroll.id, "paid")
        payroll_service.update_payroll_status(payroll.id, "paid")

        reference = str(payroll.id)
        assert _count(session, FinancialRecord, reference_type="payroll", reference=reference) == 1
        assert _count(session, JournalEntry, reference_type="payroll", reference=reference) == 1

        record = session.execute(
            select(FinancialRecord).where(FinancialRecord.reference == reference)
        ).scalar_one()
        assert record.record_type == "expense"
        assert record.category == "Payroll"
        assert record.subcategory == "Salary"
        assert record.amount == Decimal("4800000")

        ledger = LedgerSelector(session, tenant_id)
        assert ledger.account_balance("5210") == Decimal("4800000")
        assert ledger.account_balance("1112") == Decimal("-4800000")

    def test_paid_sets_paid_date(self, payroll_service, employee, clock):
        payroll = payroll_service.create_payroll(_march_payroll(employee.id))
        paid = payroll_service.update_payroll_status(payroll.id, "paid")
        assert paid.status == "paid"
        assert paid.paid_date == clock.now()

    def test_approved_then_paid(self, payroll_service, employee, session):
        payroll = payroll_service.create_payroll(_march_payroll(employee.id))
        payroll_service.update_payroll_status(payroll.id, "approved")
        assert _count(session, FinancialRecord) == 0
        payroll_service.update_payroll_status(payroll.id, "paid")
        assert _count(session, FinancialRecord) == 1

    def test_paid_is_terminal(self, payroll_service, employee):
        payroll = payroll_service.create_payroll(_march_payroll(employee.id))
        payroll_service.update_payroll_status(payroll.id, "paid")
        with pytest.raises(InvalidPayrollTransitionError) as exc:
            payroll_service.update_payroll_status(payroll.id, "draft")
        assert exc.value.from_status == "paid"

    def test_unknown_status_rejected(self, payroll_service, employee):
        payroll = payroll_service.create_payroll(_march_payroll(employee.id))
        with pytest.raises(InvalidPayrollTransitionError):
            payroll_service.update_payroll_status(payroll.id, "cancelled")

    def test_unknown_payroll(self, payroll_service):
        with pytest.raises(PayrollNotFoundError):
            payroll_service.get_payroll(uuid4())

    def test_numbers_increment(self, payroll_service, employee):
        first = payroll_service.create_payroll(_march_payroll(employee.id))
        second = payroll_service.create_payroll(_march_payroll(employee.id))
        assert first.payroll_number == "PAY-202403-00001"
        assert second.payroll_number == "PAY-202403-00002"

    def test_deductions_above_gross_rejected(self, payroll_service, employee, session):
        data = PayrollInput(
            employee_id=str(employee.id),
            period_start=date(2024, 3, 1),
            period_end=date(2024, 3, 31),
            base_salary=Decimal("1000000"),
            other_deductions=Decimal("1200000"),
        )
        with pytest.raises(NegativeNetPayError) as exc:
            payroll_service.create_payroll(data)
        assert exc.value.total_deductions == "1200000.00"
        assert _count(session, FinancialRecord) == 0

    def test_zero_net_pay_posts_nothing(self, payroll_service, employee, session):
        payroll = payroll_service.create_payroll(PayrollInput(
            employee_id=str(employee.id),
            period_start=date(2024, 3, 1),
            period_end=date(2024, 3, 31),
            base_salary=Decimal("500000"),
            other_deductions=Decimal("500000"),
        ))
        paid = payroll_service.update_payroll_status(payroll.id, "paid")

        assert paid.status == "paid"
        assert _count(session, FinancialRecord) == 0
        assert _count(session, JournalEntry) == 0


class TestAttendance:

    def test_hours_from_clock_times(self, payroll_service, employee):
        row = payroll_service.record_attendance(
            employee.id,
            date(2024, 3, 4),
            clock_in=datetime(2024, 3, 4, 8, 0, tzinfo=timezone.utc),
            clock_out=datetime(2024, 3, 4, 16, 30, tzinfo=timezone.utc),
        )
        assert row.hours_worked == Decimal("8.50")

    def test_attendance_window(self, payroll_service, employee):
        for day in (1, 10, 20):
            payroll_service.record_attendance(employee.id, date(2024, 3, day))
        rows = payroll_service.attendance_for(employee.id, date(2024, 3, 5), date(2024, 3, 20))
        assert [r.work_date for r in rows] == [date(2024, 3, 20), date(2024, 3, 10)]
