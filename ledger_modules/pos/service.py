"""
POS Sale Translator (``ledger_modules.pos.service``).

Responsibility
--------------
Turns a completed point-of-sale transaction into one balanced journal
entry and two feed records:

    Dr settlement account   revenue
    Dr COGS 5110            cogs
        Cr Sales revenue 4110   revenue
        Cr Inventory 1130       cogs

    income  / sales_revenue / pos_sale  -- revenue
    expense / cogs          / pos_cogs  -- cogs

COGS is quantity times the product's recorded cost (average cost, else
last purchase price, else zero) unless the line carries its own cost.

Invariants
----------
- Journal entry and records are written in one session and commit together.
- A transaction id that already has a ``pos_sale`` journal entry is not
  posted again; the existing entry and records are returned.

Failure Modes
-------------
- Kernel posting errors propagate after the session is rolled back.
"""

from __future__ import annotations

from ledger_kernel.db.types import ZERO, round_money
from ledger_kernel.domain.codes import (
    AccountCode,
    PaymentMethod,
    RecordCategory,
    RecordType,
    ReferenceType,
)
from ledger_kernel.domain.journal import credit, debit, drop_zero_lines
from ledger_kernel.logging_config import get_logger
from ledger_kernel.services.financial_record_service import RecordDraft
from ledger_modules._posting_helpers import ModuleService, PostingOutcome
from ledger_modules.catalog.reader import CatalogReader
from ledger_modules.pos.models import PosSale, SaleAmounts
from ledger_modules.settlement import settlement_account

logger = get_logger("modules.pos.service")

ENTRY_TYPE = "pos_sale"


class PosSaleService(ModuleService):
    """
    Records POS sales in the ledger.

    Non-goals
    ---------
    - Does NOT decrement stock or write the sale header; the route layer
      owns those rows.
    """

    def compute_amounts(self, sale: PosSale) -> SaleAmounts:
        missing = [line.product_id for line in sale.lines if line.unit_cost is None]
        catalog_costs = (
            CatalogReader(self._session, self._tenant_id).unit_costs(missing) if missing else {}
        )
        cogs = ZERO
        for line in sale.lines:
            cost = line.unit_cost if line.unit_cost is not None else catalog_costs.get(line.product_id, ZERO)
            cogs += cost * line.quantity
        return SaleAmounts(revenue=sale.revenue, cogs=round_money(cogs))

    def record_sale(self, sale: PosSale) -> PostingOutcome:
        """
        Post the journal entry and feed records for one sale.

        Postconditions:
            - One ``pos_sale`` journal entry exists for ``transaction_id``.
            - An income record for the revenue and, when COGS > 0, an
              expense record for the COGS.
        """
        with self._unit_of_work():
            existing = self._journal.find_entry(ReferenceType.POS_SALE.value, sale.transaction_id)
            if existing is not None:
                logger.info(
                    "pos_sale_already_posted",
                    extra={
                        "transaction_id": sale.transaction_id,
                        "journal_number": existing.journal_number,
                    },
                )
                records = tuple(
                    r
                    for r in (
                        self._records.find_by_reference(ReferenceType.POS_SALE.value, sale.transaction_id),
                        self._records.find_by_reference(ReferenceType.POS_COGS.value, sale.transaction_id),
                    )
                    if r is not None
                )
                return PostingOutcome(existing, records, created=False)

            amounts = self.compute_amounts(sale)
            if amounts.revenue <= 0 and amounts.cogs <= 0:
                logger.warning("pos_sale_zero_amount", extra={"transaction_id": sale.transaction_id})
                return PostingOutcome(None, (), created=False)

            settlement = settlement_account(sale.payment_method)
            number = sale.transaction_number
            lines = drop_zero_lines([
                debit(settlement, amounts.revenue, f"Payment received {number}"),
                debit(AccountCode.COST_OF_GOODS_SOLD, amounts.cogs, f"COGS {number}"),
                credit(AccountCode.SALES_REVENUE, amounts.revenue, f"Sales revenue {number}"),
                credit(AccountCode.INVENTORY, amounts.cogs, f"Inventory out {number}"),
            ])
            entry = self._journal.create_journal_entry(
                ENTRY_TYPE,
                lines,
                description=f"POS sale {number}",
                reference=sale.transaction_id,
                reference_type=ReferenceType.POS_SALE.value,
                user_id=sale.user_id,
            )

            records = []
            if amounts.revenue > 0:
                records.append(
                    self._records.record_event(
                        RecordDraft(
                            record_type=RecordType.INCOME,
                            category=RecordCategory.SALES_REVENUE,
                            subcategory="POS Sale",
                            amount=amounts.revenue,
                            description=f"POS sale {number}",
                            payment_method=sale.payment_method,
                            reference=sale.transaction_id,
                            reference_type=ReferenceType.POS_SALE,
                            user_id=sale.user_id,
                        )
                    )
                )
            if amounts.cogs > 0:
                records.append(
                    self._records.record_event(
                        RecordDraft(
                            record_type=RecordType.EXPENSE,
                            category=RecordCategory.COGS,
                            subcategory="Cost of Goods Sold",
                            amount=amounts.cogs,
                            description=f"COGS {number}",
                            payment_method=PaymentMethod.INVENTORY,
                            reference=sale.transaction_id,
                            reference_type=ReferenceType.POS_COGS,
                            user_id=sale.user_id,
                        )
                    )
                )

            logger.info(
                "pos_sale_recorded",
                extra={
                    "transaction_id": sale.transaction_id,
                    "revenue": str(amounts.revenue),
                    "cogs": str(amounts.cogs),
                    "settlement_account": settlement,
                },
            )
            return PostingOutcome(entry, tuple(records))
