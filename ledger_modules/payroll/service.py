"""
Payroll Service (``ledger_modules.payroll.service``).

Responsibility
--------------
Creates payroll records, moves them through ``draft -> approved -> paid``
and, on the paid transition, posts net pay to the ledger:

    Dr Payroll expense 5210   net pay
        Cr Bank 1112              net pay

    expense / Payroll / Salary / payroll -- net pay

Invariants
----------
- Marking a payroll paid is idempotent: the feed record is keyed by
  ``(payroll, payroll id)`` and the journal by the same reference, so a
  repeated call writes nothing new.
- ``paid`` is terminal.

Failure Modes
-------------
- PayrollNotFoundError for an unknown payroll id.
- InvalidPayrollTransitionError for a transition out of ``paid`` or to an
  unknown status.
- NegativeNetPayError when deductions exceed gross pay.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from ledger_kernel.db.types import ZERO, round_money, to_decimal
from ledger_kernel.domain.codes import (
    AccountCode,
    PaymentMethod,
    RecordCategory,
    RecordType,
    ReferenceType,
)
from ledger_kernel.domain.journal import credit, debit
from ledger_kernel.exceptions import (
    InvalidPayrollTransitionError,
    NegativeNetPayError,
    PayrollNotFoundError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.services.financial_record_service import RecordDraft
from ledger_kernel.services.sequence_service import SequenceService
from ledger_modules._posting_helpers import ModuleService
from ledger_modules.payroll.models import ALLOWED_TRANSITIONS, PayrollInput, compute_pay
from ledger_modules.payroll.orm import (
    AttendanceRecordModel,
    EmployeeModel,
    PayrollRecordModel,
    PayrollStatus,
)
from ledger_modules.settlement import settlement_account

logger = get_logger("modules.payroll.service")

ENTRY_TYPE = "payroll_payment"
PAYROLL_PAYMENT_METHOD = PaymentMethod.BANK_TRANSFER.value


def _as_uuid(value: str | UUID) -> UUID:
    return value if isinstance(value, UUID) else UUID(str(value))


class PayrollService(ModuleService):
    """
    Payroll lifecycle for one tenant.

    Non-goals
    ---------
    - Does NOT compute tax withholding; deductions arrive as inputs.
    """

    # =========================================================================
    # Employees and attendance
    # =========================================================================

    def create_employee(
        self,
        employee_number: str,
        name: str,
        position: str,
        salary: Decimal,
        join_date: date,
        department: str | None = None,
    ) -> EmployeeModel:
        with self._unit_of_work():
            employee = EmployeeModel(
                tenant_id=self._tenant_id,
                employee_number=employee_number,
                name=name,
                position=position,
                department=department,
                salary=to_decimal(salary),
                join_date=join_date,
            )
            self._session.add(employee)
            self._session.flush()
            return employee

    def record_attendance(
        self,
        employee_id: str | UUID,
        work_date: date,
        clock_in: datetime | None = None,
        clock_out: datetime | None = None,
        overtime_hours: Decimal = ZERO,
        status: str = "present",
        notes: str | None = None,
    ) -> AttendanceRecordModel:
        """Store one attendance row; hours worked derive from clock in/out."""
        hours = ZERO
        if clock_in is not None and clock_out is not None and clock_out > clock_in:
            seconds = Decimal(int((clock_out - clock_in).total_seconds()))
            hours = round_money(seconds / Decimal(3600))
        with self._unit_of_work():
            attendance = AttendanceRecordModel(
                tenant_id=self._tenant_id,
                employee_id=_as_uuid(employee_id),
                work_date=work_date,
                clock_in=clock_in,
                clock_out=clock_out,
                hours_worked=hours,
                overtime_hours=to_decimal(overtime_hours),
                status=status,
                notes=notes,
            )
            self._session.add(attendance)
            self._session.flush()
            return attendance

    def attendance_for(
        self,
        employee_id: str | UUID,
        start: date | None = None,
        end: date | None = None,
    ) -> list[AttendanceRecordModel]:
        stmt = select(AttendanceRecordModel).where(
            AttendanceRecordModel.tenant_id == self._tenant_id,
            AttendanceRecordModel.employee_id == _as_uuid(employee_id),
        )
        if start is not None:
            stmt = stmt.where(AttendanceRecordModel.work_date >= start)
        if end is not None:
            stmt = stmt.where(AttendanceRecordModel.work_date <= end)
        return list(self._session.execute(stmt.order_by(AttendanceRecordModel.work_date.desc())).scalars())

    # =========================================================================
    # Payroll records
    # =========================================================================

    def next_payroll_number(self) -> str:
        seq = SequenceService(self._session).next_value(f"payroll:{self._tenant_id}")
        return f"PAY-{self._clock.now():%Y%m}-{seq:05d}"

    def create_payroll(self, data: PayrollInput) -> PayrollRecordModel:
        """Create a draft payroll with gross and net pay computed from the inputs."""
        pay = compute_pay(data)
        if pay.net_pay < 0:
            raise NegativeNetPayError(str(pay.gross_pay), str(pay.total_deductions))
        with self._unit_of_work():
            payroll = PayrollRecordModel(
                tenant_id=self._tenant_id,
                employee_id=_as_uuid(data.employee_id),
                payroll_number=self.next_payroll_number(),
                period_start=data.period_start,
                period_end=data.period_end,
                base_salary=to_decimal(data.base_salary),
                overtime=to_decimal(data.overtime),
                bonus=to_decimal(data.bonus),
                allowances=to_decimal(data.allowances),
                gross_pay=pay.gross_pay,
                tax_deduction=to_decimal(data.tax_deduction),
                social_security=to_decimal(data.social_security),
                health_insurance=to_decimal(data.health_insurance),
                other_deductions=to_decimal(data.other_deductions),
                net_pay=pay.net_pay,
                status=PayrollStatus.DRAFT.value,
                notes=data.notes,
                user_id=data.user_id,
            )
            self._session.add(payroll)
            self._session.flush()
            logger.info(
                "payroll_created",
                extra={
                    "payroll_number": payroll.payroll_number,
                    "gross_pay": str(pay.gross_pay),
                    "net_pay": str(pay.net_pay),
                },
            )
            return payroll

    def get_payroll(self, payroll_id: str | UUID) -> PayrollRecordModel:
        payroll = self._session.execute(
            select(PayrollRecordModel).where(
                PayrollRecordModel.tenant_id == self._tenant_id,
                PayrollRecordModel.id == _as_uuid(payroll_id),
            )
        ).scalar_one_or_none()
        if payroll is None:
            raise PayrollNotFoundError(str(payroll_id))
        return payroll

    def update_payroll_status(
        self,
        payroll_id: str | UUID,
        status: str,
        user_id: str | None = None,
    ) -> PayrollRecordModel:
        """
        Transition a payroll.  ``paid`` posts net pay once.

        Postconditions:
            - On ``paid``: paid_date is set, and exactly one payroll expense
              record and one payroll journal entry reference this payroll.
        """
        target = str(getattr(status, "value", status))
        with self._unit_of_work():
            payroll = self.get_payroll(payroll_id)
            allowed = ALLOWED_TRANSITIONS.get(payroll.status, frozenset())
            if target not in allowed:
                raise InvalidPayrollTransitionError(str(payroll.id), payroll.status, target)

            previous = payroll.status
            payroll.status = target
            if target == PayrollStatus.PAID.value:
                if payroll.paid_date is None:
                    payroll.paid_date = self._clock.now()
                self._post_payment(payroll, user_id or payroll.user_id)
            else:
                payroll.paid_date = None
            self._session.flush()

            logger.info(
                "payroll_status_changed",
                extra={
                    "payroll_number": payroll.payroll_number,
                    "from_status": previous,
                    "to_status": target,
                },
            )
            return payroll

    def _post_payment(self, payroll: PayrollRecordModel, user_id: str | None) -> None:
        reference = str(payroll.id)
        if self._records.find_by_reference(ReferenceType.PAYROLL.value, reference) is not None:
            logger.info("payroll_payment_already_recorded", extra={"payroll_number": payroll.payroll_number})
            return

        net_pay = round_money(payroll.net_pay)
        if net_pay <= 0:
            logger.info("payroll_nothing_to_pay", extra={"payroll_number": payroll.payroll_number})
            return

        description = f"Salary {payroll.payroll_number}"
        if self._journal.find_entry(ReferenceType.PAYROLL.value, reference) is None:
            self._journal.create_journal_entry(
                ENTRY_TYPE,
                [
                    debit(AccountCode.PAYROLL_EXPENSE, net_pay, description),
                    credit(settlement_account(PAYROLL_PAYMENT_METHOD), net_pay, f"Salary transfer {payroll.payroll_number}"),
                ],
                description=description,
                reference=reference,
                reference_type=ReferenceType.PAYROLL.value,
                user_id=user_id,
            )
        self._records.record_event_once(
            RecordDraft(
                record_type=RecordType.EXPENSE,
                category=RecordCategory.PAYROLL,
                subcategory="Salary",
                amount=net_pay,
                description=description,
                payment_method=PAYROLL_PAYMENT_METHOD,
                reference=reference,
                reference_type=ReferenceType.PAYROLL,
                user_id=user_id,
            )
        )
