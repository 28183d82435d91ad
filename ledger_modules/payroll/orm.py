"""
Payroll ORM Persistence Models (``ledger_modules.payroll.orm``).

Responsibility:
    Employees, payroll records and attendance.  A payroll record moves
    ``draft -> approved -> paid``; the paid transition is the point at which
    its net pay enters the ledger (see PayrollService).

Invariants enforced:
    - All monetary fields use Decimal (Numeric(38,9)), never float.
    - ``payroll_number`` is unique per tenant.
    - ``gross_pay`` and ``net_pay`` are computed by the service on creation.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TimestampedBase, UUIDString


class PayrollStatus(str, Enum):
    DRAFT = "draft"
    APPROVED = "approved"
    PAID = "paid"


class EmployeeModel(TimestampedBase):
    """An employee on the tenant's payroll."""

    __tablename__ = "employees"

    __table_args__ = (
        UniqueConstraint("tenant_id", "employee_number", name="uq_employee_tenant_number"),
    )

    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    employee_number: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    position: Mapped[str] = mapped_column(String(100), nullable=False)
    department: Mapped[str | None] = mapped_column(String(100), nullable=True)
    salary: Mapped[Decimal] = mapped_column(nullable=False)
    salary_type: Mapped[str] = mapped_column(String(20), nullable=False, default="monthly")
    join_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    bank_account: Mapped[str | None] = mapped_column(String(50), nullable=True)

    payrolls: Mapped[list["PayrollRecordModel"]] = relationship(back_populates="employee")

    def __repr__(self) -> str:
        return f"<Employee {self.employee_number} {self.name}>"


class PayrollRecordModel(TimestampedBase):
    """
    One pay period for one employee.

    Guarantees:
        - gross_pay = base_salary + overtime + bonus + allowances.
        - net_pay = gross_pay - (tax + social security + health insurance + other).
    """

    __tablename__ = "payroll_records"

    __table_args__ = (
        UniqueConstraint("tenant_id", "payroll_number", name="uq_payroll_tenant_number"),
        Index("idx_payroll_employee", "employee_id"),
        Index("idx_payroll_status", "status"),
    )

    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    employee_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("employees.id"),
        nullable=False,
    )
    payroll_number: Mapped[str] = mapped_column(String(50), nullable=False)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)

    base_salary: Mapped[Decimal] = mapped_column(nullable=False)
    overtime: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    bonus: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    allowances: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    gross_pay: Mapped[Decimal] = mapped_column(nullable=False)

    tax_deduction: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    social_security: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    health_insurance: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    other_deductions: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    net_pay: Mapped[Decimal] = mapped_column(nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=PayrollStatus.DRAFT.value)
    paid_date: Mapped[datetime | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    employee: Mapped[EmployeeModel] = relationship(back_populates="payrolls")

    @property
    def total_deductions(self) -> Decimal:
        return self.tax_deduction + self.social_security + self.health_insurance + self.other_deductions

    def __repr__(self) -> str:
        return f"<PayrollRecord {self.payroll_number} {self.status} net={self.net_pay}>"


class AttendanceRecordModel(TimestampedBase):
    """Daily attendance for one employee."""

    __tablename__ = "attendance_records"

    __table_args__ = (
        Index("idx_attendance_employee_date", "employee_id", "work_date"),
    )

    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    employee_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("employees.id"),
        nullable=False,
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    clock_in: Mapped[datetime | None] = mapped_column(nullable=True)
    clock_out: Mapped[datetime | None] = mapped_column(nullable=True)
    hours_worked: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    overtime_hours: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="present")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
