"""Read-only reporting aggregators."""

from ledger_modules.reporting.service import (
    DashboardStats,
    FinancialReport,
    InventoryReport,
    ReportingService,
    SalesReport,
    ServiceReport,
)

__all__ = [
    "DashboardStats",
    "FinancialReport",
    "InventoryReport",
    "ReportingService",
    "SalesReport",
    "ServiceReport",
]
