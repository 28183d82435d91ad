"""Domain models for the ledger kernel."""

from ledger_kernel.models.account import Account, AccountType, NormalBalance
from ledger_kernel.models.financial_record import FinancialRecord
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_kernel.services.sequence_service import SequenceCounter

__all__ = [
    "Account",
    "AccountType",
    "FinancialRecord",
    "JournalEntry",
    "JournalLine",
    "NormalBalance",
    "SequenceCounter",
]
