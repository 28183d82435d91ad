"""Service ticket translator and status vocabulary."""

from ledger_modules.service_ticket.models import (
    CompletedPart,
    ServiceStatus,
    ServiceTicketCompletion,
    is_final_status,
    normalize_service_status,
)
from ledger_modules.service_ticket.service import ServiceTicketService

__all__ = [
    "CompletedPart",
    "ServiceStatus",
    "ServiceTicketCompletion",
    "ServiceTicketService",
    "is_final_status",
    "normalize_service_status",
]
