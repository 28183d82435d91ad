"""Manual expenses, other income and transfers between settlement accounts."""

from ledger_modules.cash.service import CashService

__all__ = ["CashService"]
