"""
CatalogReader -- read-only cost lookups for the translators.

Cost precedence for consumed stock: average cost, then last purchase
price, then zero.  Inventory valuation additionally falls back to the
selling price (see ``valuation_cost``).
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.db.types import ZERO
from ledger_modules.catalog.orm import Product

COST_AVERAGE = "average_cost"
COST_LAST_PURCHASE = "last_purchase_price"
COST_SELLING = "selling_price"
COST_NONE = "none"


def unit_cost(product: Product | None) -> Decimal:
    """Recorded unit cost of a product for COGS."""
    if product is None:
        return ZERO
    if product.average_cost is not None and product.average_cost > 0:
        return product.average_cost
    if product.last_purchase_price is not None and product.last_purchase_price > 0:
        return product.last_purchase_price
    return ZERO


def valuation_cost(product: Product) -> tuple[Decimal, str]:
    """Unit cost used to value stock on hand, and where it came from."""
    cost = unit_cost(product)
    if cost > 0:
        source = COST_AVERAGE if product.average_cost and product.average_cost > 0 else COST_LAST_PURCHASE
        return cost, source
    if product.selling_price is not None and product.selling_price > 0:
        return product.selling_price, COST_SELLING
    return ZERO, COST_NONE


class CatalogReader:

    def __init__(self, session: Session, tenant_id: str):
        self.session = session
        self.tenant_id = tenant_id

    def products(self, product_ids: Iterable[UUID]) -> dict[UUID, Product]:
        ids = list({pid for pid in product_ids})
        if not ids:
            return {}
        rows = self.session.execute(
            select(Product).where(Product.tenant_id == self.tenant_id, Product.id.in_(ids))
        ).scalars()
        return {p.id: p for p in rows}

    def unit_costs(self, product_ids: Iterable[UUID]) -> dict[UUID, Decimal]:
        """Unit cost per product id; unknown products cost zero."""
        ids = list(product_ids)
        found = self.products(ids)
        return {pid: unit_cost(found.get(pid)) for pid in ids}

    def active_products(self) -> list[Product]:
        return list(
            self.session.execute(
                select(Product)
                .where(Product.tenant_id == self.tenant_id, Product.is_active.is_(True))
                .order_by(Product.stock, Product.sku)
            ).scalars()
        )
