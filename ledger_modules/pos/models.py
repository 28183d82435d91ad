"""
POS Domain Models (``ledger_modules.pos.models``).

Frozen value objects describing a completed sale as the translator sees
it.  No database identity; the sale header itself lives in
``catalog.orm.SaleTransaction``.
"""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from ledger_kernel.db.types import ZERO, round_money, to_decimal


@dataclass(frozen=True)
class PosSaleLine:
    """
    One sold item.

    ``unit_cost`` overrides the catalog cost lookup when the caller already
    knows the cost at the time of sale.
    """

    product_id: UUID
    quantity: int
    unit_price: Decimal
    unit_cost: Decimal | None = None

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError(f"quantity must be positive, got {self.quantity}")
        object.__setattr__(self, "unit_price", to_decimal(self.unit_price))
        if self.unit_cost is not None:
            object.__setattr__(self, "unit_cost", to_decimal(self.unit_cost))

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class PosSale:
    transaction_id: str
    transaction_number: str
    lines: tuple[PosSaleLine, ...]
    payment_method: str = "cash"
    user_id: str | None = None
    customer_name: str | None = None

    @property
    def revenue(self) -> Decimal:
        return round_money(sum((line.line_total for line in self.lines), ZERO))


@dataclass(frozen=True)
class SaleAmounts:
    """Revenue and COGS computed for one sale."""

    revenue: Decimal
    cogs: Decimal
