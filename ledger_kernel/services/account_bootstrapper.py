"""
AccountBootstrapper -- on-demand materialisation of template accounts.

Responsibility:
    Guarantees that every account code a journal entry references exists
    in the tenant ledger, together with its full ancestor chain, before
    any line is written.

Architecture position:
    Kernel > Services.  Called by JournalService for every entry; may also
    be called directly to materialise the whole template for a new tenant.

Invariants enforced:
    - Closure: for each requested code, every ancestor in the template is
      created too, and parents are always inserted before their children
      (template order).
    - Race safety: each insert runs in its own SAVEPOINT.  If a concurrent
      transaction created the same (tenant_id, code) first, the unique
      constraint fires, the savepoint rolls back, and the existing row is
      re-read.  The outer transaction is left intact.

Failure modes:
    - Codes absent from the template are ignored here; JournalService
      raises AccountNotFoundError if such a code is also absent from the
      tenant's chart.
"""

from typing import Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.domain.chart import AccountTemplate, ChartTemplate
from ledger_kernel.domain.clock import Clock
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.services.base import BaseService

logger = get_logger("services.account_bootstrapper")


class AccountBootstrapper(BaseService):
    """
    Creates missing template accounts for one tenant.

    Contract:
        ``ensure_accounts(codes)`` returns a map code -> Account covering
        every requested code that exists in the template or already exists
        in the tenant's chart.

    Non-goals:
        - Does NOT update existing accounts to match the template.
        - Does NOT commit.
    """

    def __init__(
        self,
        session: Session,
        tenant_id: str,
        template: ChartTemplate,
        clock: Clock | None = None,
    ):
        super().__init__(session, tenant_id, clock)
        self.template = template

    def _existing(self, codes: Iterable[str]) -> dict[str, Account]:
        codes = list(codes)
        if not codes:
            return {}
        rows = self.session.execute(
            select(Account).where(
                Account.tenant_id == self.tenant_id,
                Account.code.in_(codes),
            )
        ).scalars()
        return {acct.code: acct for acct in rows}

    def ensure_accounts(self, codes: Iterable[str]) -> dict[str, Account]:
        """
        Ensure the requested codes and their ancestors exist.

        Postconditions:
            - Every template account in the closure of ``codes`` has a row
              for this tenant.
            - Returned map contains requested codes, closure ancestors, and
              requested non-template codes that already exist.
        """
        requested = [str(getattr(c, "value", c)) for c in codes]
        closure = self.template.closure(requested)
        lookup = {t.code for t in closure} | set(requested)
        accounts = self._existing(lookup)

        for tmpl in closure:
            if tmpl.code in accounts:
                continue
            accounts[tmpl.code] = self._create(tmpl, accounts)

        return accounts

    def initialize_default_accounts(self) -> dict[str, Account]:
        """Materialise the whole template for this tenant."""
        return self.ensure_accounts(self.template.codes)

    def _create(self, tmpl: AccountTemplate, known: dict[str, Account]) -> Account:
        parent = known.get(tmpl.parent_code) if tmpl.parent_code else None
        savepoint = self.session.begin_nested()
        try:
            account = Account(
                tenant_id=self.tenant_id,
                code=tmpl.code,
                name=tmpl.name,
                account_type=tmpl.account_type,
                subtype=tmpl.subtype,
                normal_balance=tmpl.normal_balance,
                parent_id=parent.id if parent is not None else None,
                description=tmpl.description,
                is_active=True,
            )
            self.session.add(account)
            self.session.flush()
            savepoint.commit()
        except IntegrityError:
            savepoint.rollback()
            logger.info(
                "account_create_race",
                extra={"tenant_id": self.tenant_id, "account_code": tmpl.code},
            )
            return self.session.execute(
                select(Account).where(
                    Account.tenant_id == self.tenant_id,
                    Account.code == tmpl.code,
                )
            ).scalar_one()

        logger.info(
            "account_created",
            extra={
                "tenant_id": self.tenant_id,
                "account_code": tmpl.code,
                "parent_code": tmpl.parent_code,
            },
        )
        return account
