"""POS sale translator."""

from ledger_modules.pos.models import PosSale, PosSaleLine, SaleAmounts
from ledger_modules.pos.service import PosSaleService

__all__ = ["PosSale", "PosSaleLine", "PosSaleService", "SaleAmounts"]
