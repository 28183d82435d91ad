"""
Service Ticket Domain Models (``ledger_modules.service_ticket.models``).

Ticket status vocabulary (with the legacy Indonesian spellings still found
in older rows) and the frozen completion DTO the translator posts from.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID

from ledger_kernel.db.types import ZERO, round_money, to_decimal


class ServiceStatus(str, Enum):
    PENDING = "pending"
    CHECKING = "checking"
    IN_PROGRESS = "in-progress"
    WAITING_CONFIRMATION = "waiting-confirmation"
    WAITING_PARTS = "waiting-parts"
    COMPLETED = "completed"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


FINAL_STATUSES = frozenset({ServiceStatus.COMPLETED, ServiceStatus.DELIVERED, ServiceStatus.CANCELLED})

LEGACY_STATUS_MAP = {
    "sedang-dicek": ServiceStatus.PENDING,
    "menunggu-konfirmasi": ServiceStatus.WAITING_CONFIRMATION,
    "menunggu-sparepart": ServiceStatus.WAITING_PARTS,
    "sedang-dikerjakan": ServiceStatus.IN_PROGRESS,
    "selesai": ServiceStatus.COMPLETED,
    "sudah-diambil": ServiceStatus.DELIVERED,
    "cencel": ServiceStatus.CANCELLED,
}


def normalize_service_status(value: str | None) -> ServiceStatus | None:
    """Map a stored or submitted status (any case, ``_`` or space separated) to ServiceStatus."""
    if not value:
        return None
    normalized = "-".join(str(value).strip().lower().replace("_", " ").split())
    try:
        return ServiceStatus(normalized)
    except ValueError:
        return LEGACY_STATUS_MAP.get(normalized)


def is_final_status(value: str | None) -> bool:
    return normalize_service_status(value) in FINAL_STATUSES


@dataclass(frozen=True)
class CompletedPart:
    """A product consumed on the ticket, billed at ``unit_price`` each."""

    product_id: UUID
    quantity: int
    unit_price: Decimal
    unit_cost: Decimal | None = None
    name: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "unit_price", to_decimal(self.unit_price))
        if self.unit_cost is not None:
            object.__setattr__(self, "unit_cost", to_decimal(self.unit_cost))

    @property
    def revenue(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class ServiceTicketCompletion:
    ticket_id: str
    ticket_number: str
    labor_cost: Decimal
    parts: tuple[CompletedPart, ...] = ()
    payment_method: str = "cash"
    user_id: str | None = None

    @property
    def parts_revenue(self) -> Decimal:
        return round_money(sum((p.revenue for p in self.parts), ZERO))


@dataclass(frozen=True)
class TicketAmounts:
    labor_revenue: Decimal
    parts_revenue: Decimal
    parts_cost: Decimal

    @property
    def total_revenue(self) -> Decimal:
        return self.labor_revenue + self.parts_revenue
