"""
Manual Cash Movements (``ledger_modules.cash.service``).

Responsibility
--------------
Expenses, other income and transfers entered by hand from the finance
screen.  Each call writes one balanced journal entry and one feed record:

    expense   Dr expense account (by category)   Cr settlement
    income    Dr settlement                      Cr Other revenue 4300
    transfer  Dr destination settlement          Cr source settlement

Manual entries carry a generated reference so that the feed row and the
journal entry can be matched; they are not deduplicated.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

from ledger_kernel.db.types import round_money, to_decimal
from ledger_kernel.domain.codes import (
    AccountCode,
    RecordCategory,
    RecordType,
    ReferenceType,
)
from ledger_kernel.domain.journal import credit, debit
from ledger_kernel.logging_config import get_logger
from ledger_kernel.services.financial_record_service import RecordDraft
from ledger_modules._posting_helpers import ModuleService, PostingOutcome
from ledger_modules.settlement import expense_account, settlement_account

logger = get_logger("modules.cash.service")


def _positive(amount: Decimal) -> Decimal:
    value = round_money(to_decimal(amount))
    if value <= 0:
        raise ValueError(f"amount must be positive, got {value}")
    return value


class CashService(ModuleService):

    def record_expense(
        self,
        category: str,
        amount: Decimal,
        description: str,
        payment_method: str = "cash",
        subcategory: str | None = None,
        user_id: str | None = None,
    ) -> PostingOutcome:
        """Post an operating expense against the account mapped from ``category``."""
        total = _positive(amount)
        reference = str(uuid4())
        with self._unit_of_work():
            entry = self._journal.create_journal_entry(
                "manual_expense",
                [
                    debit(expense_account(category), total, description),
                    credit(settlement_account(payment_method), total, f"Paid - {description}"),
                ],
                description=description,
                reference=reference,
                reference_type=ReferenceType.MANUAL_EXPENSE.value,
                user_id=user_id,
            )
            record = self._records.record_event(RecordDraft(
                record_type=RecordType.EXPENSE,
                category=category,
                subcategory=subcategory,
                amount=total,
                description=description,
                payment_method=payment_method,
                reference=reference,
                reference_type=ReferenceType.MANUAL_EXPENSE,
                user_id=user_id,
            ))
            return PostingOutcome(entry, (record,))

    def record_income(
        self,
        amount: Decimal,
        description: str,
        payment_method: str = "cash",
        category: str = RecordCategory.OTHER_INCOME.value,
        subcategory: str | None = None,
        user_id: str | None = None,
    ) -> PostingOutcome:
        """Post income that did not come from a sale or a ticket."""
        total = _positive(amount)
        reference = str(uuid4())
        with self._unit_of_work():
            entry = self._journal.create_journal_entry(
                "manual_income",
                [
                    debit(settlement_account(payment_method), total, f"Received - {description}"),
                    credit(AccountCode.OTHER_REVENUE, total, description),
                ],
                description=description,
                reference=reference,
                reference_type=ReferenceType.MANUAL_INCOME.value,
                user_id=user_id,
            )
            record = self._records.record_event(RecordDraft(
                record_type=RecordType.INCOME,
                category=category,
                subcategory=subcategory,
                amount=total,
                description=description,
                payment_method=payment_method,
                reference=reference,
                reference_type=ReferenceType.MANUAL_INCOME,
                user_id=user_id,
            ))
            return PostingOutcome(entry, (record,))

    def record_transfer(
        self,
        amount: Decimal,
        source_method: str,
        destination_method: str,
        description: str = "Transfer",
        user_id: str | None = None,
    ) -> PostingOutcome:
        """
        Move money between settlement accounts (e.g. cash deposited to bank).

        The feed record has type ``transfer`` and never affects profit.
        """
        total = _positive(amount)
        source = settlement_account(source_method)
        destination = settlement_account(destination_method)
        if source == destination:
            raise ValueError("source and destination resolve to the same account")

        reference = str(uuid4())
        with self._unit_of_work():
            entry = self._journal.create_journal_entry(
                "transfer",
                [
                    debit(destination, total, f"Transfer in - {description}"),
                    credit(source, total, f"Transfer out - {description}"),
                ],
                description=description,
                reference=reference,
                reference_type=ReferenceType.TRANSFER.value,
                user_id=user_id,
            )
            record = self._records.record_event(RecordDraft(
                record_type=RecordType.TRANSFER,
                category=RecordCategory.TRANSFER,
                amount=total,
                description=description,
                payment_method=destination_method,
                reference=reference,
                reference_type=ReferenceType.TRANSFER,
                tags=(f"source:{source_method}", f"destination:{destination_method}"),
                user_id=user_id,
            ))
            logger.info(
                "cash_transfer_recorded",
                extra={"amount": str(total), "source_account": source, "destination_account": destination},
            )
            return PostingOutcome(entry, (record,))
