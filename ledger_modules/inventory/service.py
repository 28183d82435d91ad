"""
Inventory Purchase Translator (``ledger_modules.inventory.service``).

Responsibility
--------------
Records a stock purchase as an asset movement:

    Dr Inventory 1130       amount
        Cr settlement account   amount

and one ``asset`` feed record.  Purchases never reach income or expense
totals; the cost is recognised later as COGS when stock is sold, so
counting it at purchase time would double-count it.

Invariants
----------
- Non-positive amounts are ignored (nothing is written).
- A purchase id already posted is not posted again.
"""

from __future__ import annotations

from decimal import Decimal

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
from ledger_modules.settlement import settlement_account

logger = get_logger("modules.inventory.service")

ENTRY_TYPE = "inventory_purchase"


class InventoryPurchaseService(ModuleService):
    """Records inventory purchases against the settlement account that paid."""

    def record_purchase(
        self,
        purchase_id: str,
        amount: Decimal,
        supplier: str | None = None,
        payment_method: str = "cash",
        user_id: str | None = None,
    ) -> PostingOutcome | None:
        """
        Post one purchase.

        Returns:
            None when ``amount`` is not positive; otherwise the outcome,
            with ``created`` False if the purchase was already posted.
        """
        total = round_money(to_decimal(amount))
        if total <= 0:
            logger.info("inventory_purchase_skipped", extra={"purchase_id": purchase_id, "amount": str(total)})
            return None

        description = f"Inventory purchase from {supplier or 'supplier'}"
        with self._unit_of_work():
            existing = self._journal.find_entry(ReferenceType.INVENTORY_PURCHASE.value, purchase_id)
            if existing is not None:
                record = self._records.find_by_reference(ReferenceType.INVENTORY_PURCHASE.value, purchase_id)
                return PostingOutcome(existing, (record,) if record else (), created=False)

            entry = self._journal.create_journal_entry(
                ENTRY_TYPE,
                [
                    debit(AccountCode.INVENTORY, total, description),
                    credit(settlement_account(payment_method), total, f"Payment for purchase {purchase_id}"),
                ],
                description=description,
                reference=purchase_id,
                reference_type=ReferenceType.INVENTORY_PURCHASE.value,
                user_id=user_id,
            )
            record = self._records.record_event(
                RecordDraft(
                    record_type=RecordType.ASSET,
                    category=RecordCategory.INVENTORY,
                    subcategory="Inventory Purchase",
                    amount=total,
                    description=description,
                    payment_method=payment_method,
                    reference=purchase_id,
                    reference_type=ReferenceType.INVENTORY_PURCHASE,
                    user_id=user_id,
                )
            )
            logger.info(
                "inventory_purchase_recorded",
                extra={"purchase_id": purchase_id, "amount": str(total), "supplier": supplier},
            )
            return PostingOutcome(entry, (record,))
