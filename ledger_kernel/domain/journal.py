"""
Journal line specifications and the balance rule.

Responsibility:
    Pure value objects describing the lines of a journal entry before they
    are persisted, plus ``validate_balance`` -- the single place where the
    double-entry rule is decided.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Called by
    ``JournalService`` before any row is written.

Invariants enforced:
    - Every line carries a non-negative debit and a non-negative credit,
      and at most one of them is non-zero.
    - round(sum(debits), 2) == round(sum(credits), 2) for every entry.

Failure modes:
    - EmptyJournalError when no lines are supplied.
    - InvalidJournalLineError on a negative amount or a two-sided line.
    - UnbalancedEntryError when rounded totals differ.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Sequence

from ledger_kernel.db.types import ZERO, round_money, to_decimal
from ledger_kernel.exceptions import (
    EmptyJournalError,
    InvalidJournalLineError,
    UnbalancedEntryError,
)


@dataclass(frozen=True)
class JournalLineSpec:
    """One line of a journal entry, addressed by account code."""

    account_code: str
    debit_amount: Decimal = ZERO
    credit_amount: Decimal = ZERO
    description: str | None = None

    def __post_init__(self) -> None:
        code = str(getattr(self.account_code, "value", self.account_code))
        debit = to_decimal(self.debit_amount)
        credit = to_decimal(self.credit_amount)
        object.__setattr__(self, "account_code", code)
        object.__setattr__(self, "debit_amount", debit)
        object.__setattr__(self, "credit_amount", credit)

        if debit < ZERO or credit < ZERO:
            raise InvalidJournalLineError(code, "amounts must be non-negative")
        if debit > ZERO and credit > ZERO:
            raise InvalidJournalLineError(code, "line cannot carry both a debit and a credit")


def debit(account_code: str, amount: Decimal, description: str | None = None) -> JournalLineSpec:
    return JournalLineSpec(account_code, debit_amount=amount, description=description)


def credit(account_code: str, amount: Decimal, description: str | None = None) -> JournalLineSpec:
    return JournalLineSpec(account_code, credit_amount=amount, description=description)


@dataclass(frozen=True)
class BalanceCheck:
    """Rounded totals of a validated entry."""

    total_debits: Decimal
    total_credits: Decimal

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits


def compute_totals(lines: Iterable[JournalLineSpec]) -> BalanceCheck:
    debits = ZERO
    credits = ZERO
    for line in lines:
        debits += line.debit_amount
        credits += line.credit_amount
    return BalanceCheck(round_money(debits), round_money(credits))


def validate_balance(entry_type: str, lines: Sequence[JournalLineSpec]) -> BalanceCheck:
    """
    Check the double-entry rule for a proposed entry.

    Preconditions:
        - ``lines`` contains JournalLineSpec instances (already validated
          individually on construction).

    Postconditions:
        - Returns the rounded totals when they match.

    Raises:
        EmptyJournalError: no lines.
        UnbalancedEntryError: rounded debits != rounded credits.
    """
    if not lines:
        raise EmptyJournalError(entry_type)

    check = compute_totals(lines)
    if not check.is_balanced:
        raise UnbalancedEntryError(
            debits=str(check.total_debits),
            credits=str(check.total_credits),
            entry_type=entry_type,
        )
    return check


def drop_zero_lines(lines: Iterable[JournalLineSpec]) -> list[JournalLineSpec]:
    """Remove lines whose debit and credit are both zero."""
    return [
        line for line in lines
        if line.debit_amount != ZERO or line.credit_amount != ZERO
    ]
