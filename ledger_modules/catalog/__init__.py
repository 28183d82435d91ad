"""Catalog read models (products, sale transactions, service tickets)."""

from ledger_modules.catalog.orm import Product, SaleTransaction, ServiceTicket, ServiceTicketPart
from ledger_modules.catalog.reader import CatalogReader, unit_cost, valuation_cost

__all__ = [
    "CatalogReader",
    "Product",
    "SaleTransaction",
    "ServiceTicket",
    "ServiceTicketPart",
    "unit_cost",
    "valuation_cost",
]
