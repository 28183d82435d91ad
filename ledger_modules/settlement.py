"""
Settlement and expense account resolution.

Maps how a transaction was paid to the balance-sheet account that moves,
and a manual expense category to its expense account.  Both mappings are
fixed; unknown inputs fall back to a default and are logged, never
rejected.
"""

from __future__ import annotations

from ledger_kernel.domain.codes import AccountCode, PaymentMethod
from ledger_kernel.logging_config import get_logger

logger = get_logger("modules.settlement")

SETTLEMENT_ACCOUNTS: dict[str, AccountCode] = {
    PaymentMethod.CASH.value: AccountCode.CASH,
    PaymentMethod.BANK.value: AccountCode.BANK,
    PaymentMethod.BANK_TRANSFER.value: AccountCode.BANK,
    PaymentMethod.CREDIT_CARD.value: AccountCode.BANK,
    PaymentMethod.ACCOUNTS_RECEIVABLE.value: AccountCode.ACCOUNTS_RECEIVABLE,
}

EXPENSE_ACCOUNTS: dict[str, AccountCode] = {
    "payroll": AccountCode.PAYROLL_EXPENSE,
    "salary": AccountCode.PAYROLL_EXPENSE,
    "rent": AccountCode.RENT_EXPENSE,
    "utilities": AccountCode.UTILITIES_EXPENSE,
    "marketing": AccountCode.MARKETING_EXPENSE,
    "supplies": AccountCode.SUPPLIES_EXPENSE,
    "maintenance": AccountCode.MAINTENANCE_EXPENSE,
    "transportation": AccountCode.TRANSPORTATION_EXPENSE,
    "bank_charges": AccountCode.BANK_CHARGES,
}


def _normalize(value: object) -> str:
    raw = str(getattr(value, "value", value) or "")
    return raw.strip().lower().replace(" ", "_").replace("-", "_")


def settlement_account(payment_method: str | PaymentMethod | None) -> str:
    """Account debited (money in) or credited (money out) for a payment method."""
    key = _normalize(payment_method)
    account = SETTLEMENT_ACCOUNTS.get(key)
    if account is None:
        logger.warning(
            "unknown_payment_method",
            extra={"payment_method": key or None, "fallback_account": AccountCode.CASH.value},
        )
        account = AccountCode.CASH
    return account.value


def expense_account(category: str | None) -> str:
    """Expense account for a manual expense category (miscellaneous if unknown)."""
    return EXPENSE_ACCOUNTS.get(_normalize(category), AccountCode.MISCELLANEOUS_EXPENSE).value
