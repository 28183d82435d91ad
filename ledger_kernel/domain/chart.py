"""
Chart-of-accounts template value objects.

The template is authored in YAML (``ledger_config``) and parsed into these
frozen types.  The kernel never reads files; it receives a ChartTemplate.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable


@dataclass(frozen=True)
class AccountTemplate:
    """One template account."""

    code: str
    name: str
    account_type: str
    normal_balance: str
    subtype: str | None = None
    parent_code: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class ChartTemplate:
    """
    Ordered, versioned set of template accounts.

    Guarantees:
        - ``accounts`` is in template order; every parent precedes its
          children (validated by the loader).
    """

    version: int
    accounts: tuple[AccountTemplate, ...]
    checksum: str = ""
    _index: dict[str, int] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._index.update({acct.code: i for i, acct in enumerate(self.accounts)})

    def __contains__(self, code: object) -> bool:
        return code in self._index

    def get(self, code: str) -> AccountTemplate | None:
        idx = self._index.get(code)
        return self.accounts[idx] if idx is not None else None

    @property
    def codes(self) -> tuple[str, ...]:
        return tuple(acct.code for acct in self.accounts)

    def closure(self, codes: Iterable[str]) -> list[AccountTemplate]:
        """
        Return the requested template accounts plus all their ancestors,
        in template order.  Codes absent from the template are skipped.
        """
        wanted: set[str] = set()
        for code in codes:
            current = self.get(code)
            while current is not None and current.code not in wanted:
                wanted.add(current.code)
                current = self.get(current.parent_code) if current.parent_code else None
        return [acct for acct in self.accounts if acct.code in wanted]
