"""
Module: ledger_kernel.db.types
Responsibility: Annotated type aliases and the rounding helper for money
    columns.  Centralizes precision and rounding so that every model and
    service uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.

Invariants enforced:
    - round_money() is the ONLY sanctioned rounding function for financial
      values.  Balance checks compare amounts rounded to MONEY_DECIMAL_PLACES.
    - No floats anywhere in the ledger.  All monetary amounts use Decimal.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Annotated, Any

from sqlalchemy import Numeric, String


# 38 digits total, 9 decimal places stored; 2 decimal places compared
Money = Annotated[Decimal, Numeric(38, 9)]

TenantKey = Annotated[str, String(64)]

ShortCode = Annotated[str, String(50)]

LongText = Annotated[str, String(4000)]


MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP
ZERO = Decimal("0")


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the specified decimal places.

    Args:
        value: The Decimal value to round.
        decimal_places: Number of decimal places to round to.
        rounding: Rounding mode (default: ROUND_HALF_UP).

    Returns:
        Rounded Decimal value.
    """
    quantize_str = "0." + "0" * decimal_places
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def to_decimal(value: Any) -> Decimal:
    """
    Coerce a driver or caller value into a Decimal.

    Aggregates come back as Decimal from PostgreSQL but as float or int
    from SQLite; strings and ints arrive from callers.  None maps to zero.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)
