"""Inventory purchase translator (asset events only)."""

from ledger_modules.inventory.service import InventoryPurchaseService

__all__ = ["InventoryPurchaseService"]
