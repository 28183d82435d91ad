"""
Service Ticket Translator (``ledger_modules.service_ticket.service``).

Responsibility
--------------
Posts the financial consequences of completing a repair ticket:

    Dr settlement account   labor + parts revenue
        Cr Service revenue 4210 labor
        Cr Sales revenue 4110   parts revenue
    Dr COGS 5110            parts cost
        Cr Inventory 1130       parts cost

plus up to three feed records (labor income, parts income, parts cost
expense), each emitted only when its amount is positive.  Also posts
cancellation fees, reversals of completed tickets and warranty refunds.

Invariants
----------
- Ticket handlers fire on every edit, so the call is idempotent.  Each
  component (labor, parts revenue, parts cost) is posted once, and its
  feed record is written in the same unit of work as the journal lines
  that cover it.  A component that first appears on a later call (parts
  added after completion) is posted in an adjusting entry.
- Zero-amount journal lines are omitted.

Failure Modes
-------------
- Kernel posting errors propagate after the session is rolled back.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ledger_kernel.db.types import ZERO, round_money, to_decimal
from ledger_kernel.domain.codes import (
    AccountCode,
    PaymentMethod,
    RecordCategory,
    RecordType,
    ReferenceType,
)
from ledger_kernel.domain.journal import JournalLineSpec, credit, debit, drop_zero_lines
from ledger_kernel.logging_config import get_logger
from ledger_kernel.services.financial_record_service import RecordDraft
from ledger_modules._posting_helpers import ModuleService, PostingOutcome
from ledger_modules.catalog.orm import ServiceTicket
from ledger_modules.catalog.reader import CatalogReader
from ledger_modules.service_ticket.models import (
    CompletedPart,
    ServiceStatus,
    ServiceTicketCompletion,
    TicketAmounts,
    normalize_service_status,
)
from ledger_modules.settlement import settlement_account

logger = get_logger("modules.service_ticket.service")

ENTRY_TYPE = "service_ticket"
ADJUSTMENT_ENTRY_TYPE = "service_ticket_adjustment"
CANCELLATION_ENTRY_TYPE = "service_cancellation"
REVERSAL_ENTRY_TYPE = "service_cancellation_after_completed"
WARRANTY_ENTRY_TYPE = "warranty_refund"


def labor_description(ticket_number: str) -> str:
    return f"Service labor {ticket_number}"


def parts_description(ticket_number: str) -> str:
    return f"Service parts {ticket_number}"


def parts_cost_description(ticket_number: str) -> str:
    return f"Service parts cost {ticket_number}"


@dataclass(frozen=True)
class _Component:
    """One independently balanced slice of a ticket completion."""

    reference_type: ReferenceType
    amount: Decimal
    draft: RecordDraft
    lines: tuple[JournalLineSpec, ...]
    settles: bool


class ServiceTicketService(ModuleService):
    """
    Records service ticket completions, cancellations and warranty refunds.

    Non-goals
    ---------
    - Does NOT move stock for consumed or returned parts.
    - Does NOT re-post a component whose amount changes after it was posted.
    """

    def compute_amounts(self, completion: ServiceTicketCompletion) -> TicketAmounts:
        missing = [p.product_id for p in completion.parts if p.unit_cost is None]
        catalog_costs = (
            CatalogReader(self._session, self._tenant_id).unit_costs(missing) if missing else {}
        )
        cost = ZERO
        for part in completion.parts:
            unit = part.unit_cost if part.unit_cost is not None else catalog_costs.get(part.product_id, ZERO)
            cost += unit * part.quantity
        return TicketAmounts(
            labor_revenue=round_money(to_decimal(completion.labor_cost)),
            parts_revenue=completion.parts_revenue,
            parts_cost=round_money(cost),
        )

    def _components(self, completion: ServiceTicketCompletion, amounts: TicketAmounts) -> list[_Component]:
        ticket_id = completion.ticket_id
        number = completion.ticket_number
        method = completion.payment_method
        components = [
            _Component(
                ReferenceType.SERVICE_LABOR,
                amounts.labor_revenue,
                RecordDraft(
                    record_type=RecordType.INCOME,
                    category=RecordCategory.SERVICE_REVENUE,
                    subcategory="Labor Charge",
                    amount=amounts.labor_revenue,
                    description=labor_description(number),
                    payment_method=method,
                    reference=ticket_id,
                    reference_type=ReferenceType.SERVICE_LABOR,
                    user_id=completion.user_id,
                ),
                (credit(AccountCode.SERVICE_REVENUE, amounts.labor_revenue, labor_description(number)),),
                settles=True,
            ),
            _Component(
                ReferenceType.SERVICE_PARTS,
                amounts.parts_revenue,
                RecordDraft(
                    record_type=RecordType.INCOME,
                    category=RecordCategory.SALES_REVENUE,
                    subcategory="Parts Sale",
                    amount=amounts.parts_revenue,
                    description=parts_description(number),
                    payment_method=method,
                    reference=ticket_id,
                    reference_type=ReferenceType.SERVICE_PARTS,
                    user_id=completion.user_id,
                ),
                (credit(AccountCode.SALES_REVENUE, amounts.parts_revenue, parts_description(number)),),
                settles=True,
            ),
            _Component(
                ReferenceType.SERVICE_PARTS_COST,
                amounts.parts_cost,
                RecordDraft(
                    record_type=RecordType.EXPENSE,
                    category=RecordCategory.COGS,
                    subcategory="Cost of Goods Sold",
                    amount=amounts.parts_cost,
                    description=parts_cost_description(number),
                    payment_method=PaymentMethod.INVENTORY,
                    reference=ticket_id,
                    reference_type=ReferenceType.SERVICE_PARTS_COST,
                    user_id=completion.user_id,
                ),
                (
                    debit(AccountCode.COST_OF_GOODS_SOLD, amounts.parts_cost, parts_cost_description(number)),
                    credit(AccountCode.INVENTORY, amounts.parts_cost, f"Inventory out {number}"),
                ),
                settles=False,
            ),
        ]
        return [c for c in components if c.amount > 0]

    def complete_ticket(self, completion: ServiceTicketCompletion) -> PostingOutcome:
        """
        Post the completion of one ticket (idempotent).

        Components already carrying a feed record are left alone; the rest
        are posted together, in the completion entry on the first call and
        in an adjusting entry afterwards.

        Returns:
            PostingOutcome whose ``created`` is False when nothing new was
            posted.
        """
        with self._unit_of_work():
            amounts = self.compute_amounts(completion)
            ticket_id = completion.ticket_id
            number = completion.ticket_number

            components = self._components(completion, amounts)
            existing = {
                c.reference_type: self._records.find_by_reference(
                    c.reference_type, ticket_id, c.draft.description
                )
                for c in components
            }
            pending = [c for c in components if existing[c.reference_type] is None]

            entry = self._journal.find_entry(ReferenceType.SERVICE_TICKET.value, ticket_id)
            posted = bool(pending)
            if pending:
                settlement_total = sum((c.amount for c in pending if c.settles), ZERO)
                lines = drop_zero_lines([
                    debit(settlement_account(completion.payment_method), settlement_total, f"Service payment {number}"),
                    *(line for c in pending for line in c.lines),
                ])
                if entry is None:
                    entry = self._journal.create_journal_entry(
                        ENTRY_TYPE,
                        lines,
                        description=f"Service ticket {number} completed",
                        reference=ticket_id,
                        reference_type=ReferenceType.SERVICE_TICKET.value,
                        user_id=completion.user_id,
                    )
                else:
                    entry = self._journal.create_journal_entry(
                        ADJUSTMENT_ENTRY_TYPE,
                        lines,
                        description=f"Service ticket {number} adjusted",
                        reference=ticket_id,
                        reference_type=ReferenceType.SERVICE_TICKET_ADJUSTMENT.value,
                        user_id=completion.user_id,
                    )
                for c in pending:
                    existing[c.reference_type], _ = self._records.record_event_once(c.draft)
            elif entry is not None:
                logger.info(
                    "service_ticket_already_posted",
                    extra={"ticket_id": ticket_id, "journal_number": entry.journal_number},
                )

            records = tuple(existing[c.reference_type] for c in components)
            logger.info(
                "service_ticket_completed",
                extra={
                    "ticket_id": ticket_id,
                    "labor_revenue": str(amounts.labor_revenue),
                    "parts_revenue": str(amounts.parts_revenue),
                    "parts_cost": str(amounts.parts_cost),
                    "components_posted": [c.reference_type.value for c in pending],
                },
            )
            return PostingOutcome(entry, records, created=posted)

    def completion_for(
        self,
        ticket: ServiceTicket,
        user_id: str | None = None,
    ) -> ServiceTicketCompletion:
        """Build the completion DTO from a stored ticket and its parts."""
        parts = tuple(
            CompletedPart(
                product_id=part.product_id,
                quantity=part.quantity,
                unit_price=part.unit_price,
                name=part.product.name if part.product is not None else None,
            )
            for part in ticket.parts
        )
        return ServiceTicketCompletion(
            ticket_id=str(ticket.id),
            ticket_number=ticket.ticket_number,
            labor_cost=ticket.labor_cost or ZERO,
            parts=parts,
            payment_method=ticket.payment_method or PaymentMethod.CASH.value,
            user_id=user_id,
        )

    def handle_status_change(
        self,
        ticket: ServiceTicket,
        new_status: str,
        user_id: str | None = None,
    ) -> PostingOutcome | None:
        """
        Apply a status update and post the completion when it lands on ``completed``.

        Other statuses only update the ticket row.  Returns None when
        nothing was posted.
        """
        status = normalize_service_status(new_status)
        if status is None:
            raise ValueError(f"Unknown service status: {new_status!r}")

        ticket.status = status.value
        if status is not ServiceStatus.COMPLETED:
            with self._unit_of_work():
                self._session.flush()
            return None

        if ticket.completed_at is None:
            ticket.completed_at = self._clock.now()
        return self.complete_ticket(self.completion_for(ticket, user_id))

    def record_cancellation_fee(
        self,
        ticket_id: str,
        ticket_number: str,
        fee: Decimal,
        reason: str,
        payment_method: str = PaymentMethod.CASH.value,
        user_id: str | None = None,
    ) -> PostingOutcome | None:
        """
        Post a fee charged for cancelling a ticket (Dr settlement / Cr 4210).

        Returns None when the fee is not positive.  Idempotent per ticket.
        """
        fee = round_money(to_decimal(fee))
        if fee <= 0:
            return None

        with self._unit_of_work():
            existing = self._journal.find_entry(ReferenceType.SERVICE_CANCELLATION.value, ticket_id)
            description = f"Service cancellation fee {ticket_number}"
            created = existing is None
            entry = existing
            if created:
                entry = self._journal.create_journal_entry(
                    CANCELLATION_ENTRY_TYPE,
                    [
                        debit(settlement_account(payment_method), fee, f"Cancellation fee received {ticket_number}"),
                        credit(AccountCode.SERVICE_REVENUE, fee, description),
                    ],
                    description=f"{description} - {reason}",
                    reference=ticket_id,
                    reference_type=ReferenceType.SERVICE_CANCELLATION.value,
                    user_id=user_id,
                )
            record, _ = self._records.record_event_once(RecordDraft(
                record_type=RecordType.INCOME,
                category=RecordCategory.SERVICE_REVENUE,
                subcategory="Cancellation Fee",
                amount=fee,
                description=description,
                payment_method=payment_method,
                reference=ticket_id,
                reference_type=ReferenceType.SERVICE_CANCELLATION,
                user_id=user_id,
            ))
            return PostingOutcome(entry, (record,), created=created)

    def posted_amounts(self, ticket_id: str) -> TicketAmounts:
        """Amounts the ledger holds for a ticket's completion, read from its feed records."""

        def amount(reference_type: ReferenceType) -> Decimal:
            record = self._records.find_by_reference(reference_type, ticket_id)
            return record.amount if record is not None else ZERO

        return TicketAmounts(
            labor_revenue=amount(ReferenceType.SERVICE_LABOR),
            parts_revenue=amount(ReferenceType.SERVICE_PARTS),
            parts_cost=amount(ReferenceType.SERVICE_PARTS_COST),
        )

    def _post_once(
        self,
        entry_type: str,
        reference_type: ReferenceType,
        ticket_id: str,
        description: str,
        lines: list[JournalLineSpec],
        drafts: list[RecordDraft],
        user_id: str | None,
    ) -> PostingOutcome | None:
        lines = drop_zero_lines(lines)
        if not lines:
            return None
        existing = self._journal.find_entry(reference_type.value, ticket_id)
        if existing is not None:
            # Only the records written alongside the existing entry.
            found = (self._records.find_by_reference(d.reference_type, ticket_id, d.description) for d in drafts)
            return PostingOutcome(existing, tuple(r for r in found if r is not None), created=False)

        entry = self._journal.create_journal_entry(
            entry_type,
            lines,
            description=description,
            reference=ticket_id,
            reference_type=reference_type.value,
            user_id=user_id,
        )
        records = tuple(self._records.record_event_once(d)[0] for d in drafts)
        return PostingOutcome(entry, records, created=True)

    def cancel_completed_ticket(
        self,
        ticket_id: str,
        ticket_number: str,
        fee: Decimal,
        reason: str,
        payment_method: str = PaymentMethod.CASH.value,
        user_id: str | None = None,
    ) -> PostingOutcome | None:
        """
        Reverse a completed ticket's revenue and parts cost, keeping an optional fee.

        The reversed amounts are the ones posted at completion.  Labor and
        parts revenue are refunded from the settlement account, the parts
        cost goes back to inventory.  Returns None when there is nothing to
        post.  Idempotent per ticket.
        """
        fee = round_money(to_decimal(fee))
        if fee < 0:
            raise ValueError(f"Cancellation fee must not be negative: {fee}")
        with self._unit_of_work():
            posted = self.posted_amounts(ticket_id)
            settlement = settlement_account(payment_method)
            lines = [
                debit(settlement, fee, f"Cancellation fee received {ticket_number}"),
                credit(AccountCode.SERVICE_REVENUE, fee, f"Service cancellation fee {ticket_number}"),
                debit(AccountCode.SERVICE_REVENUE, posted.labor_revenue, f"Labor revenue reversal {ticket_number}"),
                credit(settlement, posted.labor_revenue, f"Labor refund {ticket_number}"),
                debit(AccountCode.SALES_REVENUE, posted.parts_revenue, f"Parts revenue reversal {ticket_number}"),
                credit(settlement, posted.parts_revenue, f"Parts refund {ticket_number}"),
                debit(AccountCode.INVENTORY, posted.parts_cost, f"Parts returned to inventory {ticket_number}"),
                credit(AccountCode.COST_OF_GOODS_SOLD, posted.parts_cost, f"COGS reversal {ticket_number}"),
            ]
            drafts = []
            if fee > 0:
                drafts.append(RecordDraft(
                    record_type=RecordType.INCOME,
                    category=RecordCategory.SERVICE_REVENUE,
                    subcategory="Cancellation Fee",
                    amount=fee,
                    description=f"Service cancellation fee (after completion) {ticket_number}",
                    payment_method=payment_method,
                    reference=ticket_id,
                    reference_type=ReferenceType.SERVICE_CANCELLATION_AFTER_COMPLETED,
                    user_id=user_id,
                ))
            if posted.labor_revenue > 0:
                drafts.append(RecordDraft(
                    record_type=RecordType.EXPENSE,
                    category=RecordCategory.SERVICE_CANCELLATION,
                    subcategory="Labor Revenue Reversal",
                    amount=posted.labor_revenue,
                    description=f"Service revenue reversal {ticket_number}",
                    payment_method=payment_method,
                    reference=ticket_id,
                    reference_type=ReferenceType.SERVICE_CANCELLATION_SERVICE_REVERSAL,
                    user_id=user_id,
                ))
            if posted.parts_revenue > 0:
                drafts.append(RecordDraft(
                    record_type=RecordType.EXPENSE,
                    category=RecordCategory.SERVICE_CANCELLATION,
                    subcategory="Parts Revenue Reversal",
                    amount=posted.parts_revenue,
                    description=f"Parts revenue reversal {ticket_number}",
                    payment_method=payment_method,
                    reference=ticket_id,
                    reference_type=ReferenceType.SERVICE_CANCELLATION_PARTS_REVERSAL,
                    user_id=user_id,
                ))
            if posted.parts_cost > 0:
                drafts.append(RecordDraft(
                    record_type=RecordType.INCOME,
                    category=RecordCategory.SERVICE_CANCELLATION,
                    subcategory="COGS Reversal",
                    amount=posted.parts_cost,
                    description=f"Parts cost reversal {ticket_number}",
                    payment_method=PaymentMethod.INVENTORY,
                    reference=ticket_id,
                    reference_type=ReferenceType.SERVICE_CANCELLATION_COST_REVERSAL,
                    user_id=user_id,
                ))
            outcome = self._post_once(
                REVERSAL_ENTRY_TYPE,
                ReferenceType.SERVICE_CANCELLATION_AFTER_COMPLETED,
                ticket_id,
                f"Service ticket {ticket_number} cancelled after completion - {reason}",
                lines,
                drafts,
                user_id,
            )
            logger.info(
                "service_ticket_reversed",
                extra={
                    "ticket_id": ticket_id,
                    "fee": str(fee),
                    "labor_revenue": str(posted.labor_revenue),
                    "parts_revenue": str(posted.parts_revenue),
                    "parts_cost": str(posted.parts_cost),
                },
            )
            return outcome

    def refund_warranty(
        self,
        ticket_id: str,
        ticket_number: str,
        fee: Decimal,
        reason: str,
        payment_method: str = PaymentMethod.CASH.value,
        user_id: str | None = None,
    ) -> PostingOutcome | None:
        """
        Refund a completed ticket under warranty.

        The labor and parts revenue collected at completion are paid back
        and charged to warranty expense (5280); the original revenue and
        parts cost stay booked.  An optional fee is kept as service revenue.
        """
        fee = round_money(to_decimal(fee))
        if fee < 0:
            raise ValueError(f"Cancellation fee must not be negative: {fee}")
        with self._unit_of_work():
            posted = self.posted_amounts(ticket_id)
            settlement = settlement_account(payment_method)
            lines = [
                debit(settlement, fee, f"Warranty cancellation fee received {ticket_number}"),
                credit(AccountCode.SERVICE_REVENUE, fee, f"Warranty cancellation fee {ticket_number}"),
                debit(AccountCode.WARRANTY_EXPENSE, posted.labor_revenue, f"Warranty labor refund {ticket_number}"),
                credit(settlement, posted.labor_revenue, f"Labor refunded {ticket_number}"),
                debit(AccountCode.WARRANTY_EXPENSE, posted.parts_revenue, f"Warranty parts refund {ticket_number}"),
                credit(settlement, posted.parts_revenue, f"Parts refunded {ticket_number}"),
            ]
            drafts = []
            if fee > 0:
                drafts.append(RecordDraft(
                    record_type=RecordType.INCOME,
                    category=RecordCategory.SERVICE_REVENUE,
                    subcategory="Warranty Cancellation Fee",
                    amount=fee,
                    description=f"Warranty cancellation fee {ticket_number}",
                    payment_method=payment_method,
                    reference=ticket_id,
                    reference_type=ReferenceType.WARRANTY_REFUND,
                    user_id=user_id,
                ))
            if posted.labor_revenue > 0:
                drafts.append(RecordDraft(
                    record_type=RecordType.EXPENSE,
                    category=RecordCategory.WARRANTY_RETURN,
                    subcategory="Labor Refund",
                    amount=posted.labor_revenue,
                    description=f"Warranty labor refund {ticket_number}",
                    payment_method=payment_method,
                    reference=ticket_id,
                    reference_type=ReferenceType.WARRANTY_LABOR_REVERSAL,
                    user_id=user_id,
                ))
            if posted.parts_revenue > 0:
                drafts.append(RecordDraft(
                    record_type=RecordType.EXPENSE,
                    category=RecordCategory.WARRANTY_RETURN,
                    subcategory="Parts Refund",
                    amount=posted.parts_revenue,
                    description=f"Warranty parts refund {ticket_number}",
                    payment_method=payment_method,
                    reference=ticket_id,
                    reference_type=ReferenceType.WARRANTY_PARTS_REVERSAL,
                    user_id=user_id,
                ))
            outcome = self._post_once(
                WARRANTY_ENTRY_TYPE,
                ReferenceType.WARRANTY_REFUND,
                ticket_id,
                f"Service ticket {ticket_number} warranty refund - {reason}",
                lines,
                drafts,
                user_id,
            )
            logger.info(
                "service_ticket_warranty_refunded",
                extra={"ticket_id": ticket_id, "fee": str(fee), "refund": str(posted.total_revenue)},
            )
            return outcome
