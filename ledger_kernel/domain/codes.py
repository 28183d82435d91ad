"""
Closed vocabularies shared by the journal engine, the record feed and the
domain translators.

Account codes name the template accounts the translators post to; the full
chart lives in ``ledger_config/chart_of_accounts.yaml``.
"""

from enum import Enum


class AccountCode(str, Enum):
    """Template account codes referenced from code."""

    CASH = "1111"
    BANK = "1112"
    ACCOUNTS_RECEIVABLE = "1120"
    INVENTORY = "1130"
    ACCOUNTS_PAYABLE = "2110"
    SALES_REVENUE = "4110"
    SERVICE_REVENUE = "4210"
    OTHER_REVENUE = "4300"
    COST_OF_GOODS_SOLD = "5110"
    WARRANTY_EXPENSE = "5280"
    PAYROLL_EXPENSE = "5210"
    RENT_EXPENSE = "5220"
    UTILITIES_EXPENSE = "5230"
    MARKETING_EXPENSE = "5240"
    SUPPLIES_EXPENSE = "5250"
    MAINTENANCE_EXPENSE = "5260"
    TRANSPORTATION_EXPENSE = "5270"
    MISCELLANEOUS_EXPENSE = "5290"
    BANK_CHARGES = "5320"


class RecordType(str, Enum):
    """Financial record types.  Only INCOME and EXPENSE feed profit totals."""

    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"
    ASSET = "asset"


class RecordStatus(str, Enum):
    CONFIRMED = "confirmed"
    PENDING = "pending"
    CANCELLED = "cancelled"


class RecordCategory(str, Enum):
    SALES_REVENUE = "sales_revenue"
    SERVICE_REVENUE = "service_revenue"
    OTHER_INCOME = "other_income"
    COGS = "cogs"
    INVENTORY = "inventory"
    PAYROLL = "Payroll"
    SERVICE_CANCELLATION = "service_cancellation"
    WARRANTY_RETURN = "warranty_return"
    TRANSFER = "transfer"


class ReferenceType(str, Enum):
    """Source of a journal entry or financial record."""

    POS_SALE = "pos_sale"
    POS_COGS = "pos_cogs"
    SERVICE_TICKET = "service_ticket"
    SERVICE_LABOR = "service_labor"
    SERVICE_PARTS = "service_parts"
    SERVICE_PARTS_COST = "service_parts_cost"
    SERVICE_CANCELLATION = "service_cancellation"
    SERVICE_TICKET_ADJUSTMENT = "service_ticket_adjustment"
    SERVICE_CANCELLATION_AFTER_COMPLETED = "service_cancellation_after_completed"
    SERVICE_CANCELLATION_SERVICE_REVERSAL = "service_cancellation_service_reversal"
    SERVICE_CANCELLATION_PARTS_REVERSAL = "service_cancellation_parts_reversal"
    SERVICE_CANCELLATION_COST_REVERSAL = "service_cancellation_cost_reversal"
    WARRANTY_REFUND = "warranty_refund"
    WARRANTY_LABOR_REVERSAL = "warranty_labor_reversal"
    WARRANTY_PARTS_REVERSAL = "warranty_parts_reversal"
    INVENTORY_PURCHASE = "inventory_purchase"
    PAYROLL = "payroll"
    MANUAL_EXPENSE = "manual_expense"
    MANUAL_INCOME = "manual_income"
    TRANSFER = "transfer"


class PaymentMethod(str, Enum):
    CASH = "cash"
    BANK = "bank"
    BANK_TRANSFER = "bank_transfer"
    CREDIT_CARD = "credit_card"
    ACCOUNTS_RECEIVABLE = "accounts_receivable"
    INVENTORY = "inventory"


class JournalEntryStatus(str, Enum):
    POSTED = "posted"
