"""
JournalService -- the double-entry journal engine.

Responsibility:
    Validates a proposed set of lines against the balance rule, ensures
    every referenced account exists, allocates a journal number, and
    writes one JournalEntry with its JournalLines.

Architecture position:
    Kernel > Services -- imperative shell.  Called by every domain
    translator in ``ledger_modules``.

Invariants enforced:
    - Balance: round(sum(debits), 2) == round(sum(credits), 2), checked
      BEFORE any row is written.  An unbalanced request leaves the
      session untouched.
    - Account existence: every line's account code resolves to an account
      row (bootstrapped from the template if missing) or the entry is
      rejected with no lines written.
    - Journal numbers are unique per tenant: JRN-<YYYYMMDD>-<seq>, with
      the sequence drawn from a locked counter row.
    - total_amount equals the debit total; status is always "posted".

Failure modes:
    - EmptyJournalError, InvalidJournalLineError, UnbalancedEntryError
      from the domain balance rule.
    - AccountNotFoundError for a code that is neither in the template nor
      in the tenant's chart.

Audit relevance:
    Logs ``journal_write_started``, ``balance_validated`` and
    ``journal_entry_posted`` with the journal number, reference and totals.
"""

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ledger_kernel.domain.chart import ChartTemplate
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.codes import JournalEntryStatus
from ledger_kernel.domain.journal import JournalLineSpec, validate_balance
from ledger_kernel.exceptions import AccountNotFoundError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_kernel.services.account_bootstrapper import AccountBootstrapper
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.journal")


class JournalService(BaseService):
    """
    Creates balanced, posted journal entries for one tenant.

    Contract:
        ``create_journal_entry`` either writes the entry and all its lines
        within the caller's transaction, or raises and writes nothing.

    Non-goals:
        - Does NOT commit.  The caller's transaction is the unit of work.
        - Does NOT deduplicate.  Translators that may re-fire call
          ``find_entry`` first.
    """

    def __init__(
        self,
        session: Session,
        tenant_id: str,
        template: ChartTemplate,
        clock: Clock | None = None,
    ):
        super().__init__(session, tenant_id, clock)
        self.bootstrapper = AccountBootstrapper(session, tenant_id, template, self.clock)
        self.sequences = SequenceService(session)

    def next_journal_number(self) -> str:
        seq = self.sequences.next_value(SequenceService.journal_sequence_name(self.tenant_id))
        return f"JRN-{self.clock.now():%Y%m%d}-{seq:06d}"

    def create_journal_entry(
        self,
        entry_type: str,
        lines: Sequence[JournalLineSpec],
        *,
        description: str | None = None,
        reference: str | None = None,
        reference_type: str | None = None,
        user_id: str | None = None,
    ) -> JournalEntry:
        """
        Post one balanced journal entry.

        Preconditions:
            - ``lines`` is non-empty; each line has non-negative amounts.

        Postconditions:
            - The entry and its lines are flushed to the session.
            - ``entry.total_amount`` equals the rounded debit total.

        Raises:
            EmptyJournalError: no lines.
            UnbalancedEntryError: rounded debits != rounded credits.
            AccountNotFoundError: a code cannot be resolved.
        """
        logger.info(
            "journal_write_started",
            extra={
                "tenant_id": self.tenant_id,
                "entry_type": entry_type,
                "reference_type": reference_type,
                "reference": reference,
                "line_count": len(lines),
            },
        )

        totals = validate_balance(entry_type, lines)
        logger.debug(
            "balance_validated",
            extra={
                "entry_type": entry_type,
                "total_debits": str(totals.total_debits),
                "total_credits": str(totals.total_credits),
            },
        )

        codes = [line.account_code for line in lines]
        accounts = self.bootstrapper.ensure_accounts(codes)
        for code in codes:
            if code not in accounts:
                raise AccountNotFoundError(code, self.tenant_id)

        entry = JournalEntry(
            tenant_id=self.tenant_id,
            journal_number=self.next_journal_number(),
            entry_type=entry_type,
            description=description or entry_type,
            reference=reference,
            reference_type=reference_type,
            total_amount=totals.total_debits,
            status=JournalEntryStatus.POSTED.value,
            user_id=user_id,
            entry_date=self.clock.now(),
        )
        for number, spec in enumerate(lines, start=1):
            entry.lines.append(
                JournalLine(
                    tenant_id=self.tenant_id,
                    account_id=accounts[spec.account_code].id,
                    account=accounts[spec.account_code],
                    line_number=number,
                    description=spec.description,
                    debit_amount=spec.debit_amount,
                    credit_amount=spec.credit_amount,
                )
            )
        self.session.add(entry)
        self.session.flush()

        with LogContext.bind(entry_id=str(entry.id)):
            logger.info(
                "journal_entry_posted",
                extra={
                    "tenant_id": self.tenant_id,
                    "journal_number": entry.journal_number,
                    "entry_type": entry_type,
                    "reference_type": reference_type,
                    "reference": reference,
                    "total_amount": str(entry.total_amount),
                },
            )
        return entry

    def find_entry(self, reference_type: str, reference: str) -> JournalEntry | None:
        """Return the first entry posted for a source document, if any."""
        return self.session.execute(
            select(JournalEntry)
            .where(
                JournalEntry.tenant_id == self.tenant_id,
                JournalEntry.reference_type == reference_type,
                JournalEntry.reference == reference,
            )
            .options(selectinload(JournalEntry.lines).selectinload(JournalLine.account))
            .order_by(JournalEntry.entry_date)
            .limit(1)
        ).scalar_one_or_none()
