"""
Ledger Kernel

Tenant-scoped double-entry bookkeeping for the POS / service backend:
- Chart-of-accounts bootstrap from a versioned template
- Balanced journal entries with per-tenant journal numbering
- Idempotent financial record feed
- Read-side summaries derived from records and journal lines
"""

__version__ = "0.1.0"
