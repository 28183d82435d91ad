"""
Payroll Domain Models (``ledger_modules.payroll.models``).

Frozen inputs for payroll creation and the gross-to-net computation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from ledger_kernel.db.types import ZERO, round_money, to_decimal
from ledger_modules.payroll.orm import PayrollStatus

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    PayrollStatus.DRAFT.value: frozenset({PayrollStatus.DRAFT.value, PayrollStatus.APPROVED.value, PayrollStatus.PAID.value}),
    PayrollStatus.APPROVED.value: frozenset({PayrollStatus.DRAFT.value, PayrollStatus.APPROVED.value, PayrollStatus.PAID.value}),
    # Paid is terminal; repeating it is allowed and posts nothing new
    PayrollStatus.PAID.value: frozenset({PayrollStatus.PAID.value}),
}


@dataclass(frozen=True)
class PayrollInput:
    employee_id: str
    period_start: date
    period_end: date
    base_salary: Decimal
    overtime: Decimal = ZERO
    bonus: Decimal = ZERO
    allowances: Decimal = ZERO
    tax_deduction: Decimal = ZERO
    social_security: Decimal = ZERO
    health_insurance: Decimal = ZERO
    other_deductions: Decimal = ZERO
    notes: str | None = None
    user_id: str | None = None

    def __post_init__(self) -> None:
        if self.period_end < self.period_start:
            raise ValueError("period_end must not precede period_start")


@dataclass(frozen=True)
class PayBreakdown:
    gross_pay: Decimal
    total_deductions: Decimal
    net_pay: Decimal


def compute_pay(data: PayrollInput) -> PayBreakdown:
    gross = sum(
        (to_decimal(v) for v in (data.base_salary, data.overtime, data.bonus, data.allowances)),
        ZERO,
    )
    deductions = sum(
        (
            to_decimal(v)
            for v in (data.tax_deduction, data.social_security, data.health_insurance, data.other_deductions)
        ),
        ZERO,
    )
    return PayBreakdown(
        gross_pay=round_money(gross),
        total_deductions=round_money(deductions),
        net_pay=round_money(gross - deductions),
    )
