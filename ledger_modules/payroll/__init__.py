"""Payroll records, attendance and the paid-transition translator."""

from ledger_modules.payroll.models import PayrollInput, compute_pay
from ledger_modules.payroll.orm import (
    AttendanceRecordModel,
    EmployeeModel,
    PayrollRecordModel,
    PayrollStatus,
)
from ledger_modules.payroll.service import PayrollService

__all__ = [
    "AttendanceRecordModel",
    "EmployeeModel",
    "PayrollInput",
    "PayrollRecordModel",
    "PayrollService",
    "PayrollStatus",
    "compute_pay",
]
