"""
Ledger Modules.

Thin orchestration layers over the ledger kernel.  Each translator computes
money amounts for one kind of business event and hands the result to the
kernel's JournalService and FinancialRecordService in one session.

Modules:
- pos: point-of-sale sale completion
- service_ticket: repair ticket completion and cancellation fees
- inventory: stock purchases (asset events, never expense)
- payroll: payroll records and the paid transition
- cash: manual expenses, other income, transfers between settlement accounts
- catalog: read models for products, sales and tickets
- reporting: period summaries over the record feed and catalog tables

Dependency direction: modules import ``ledger_kernel``, ``ledger_config``
and ``ledger_tenancy``; nothing below imports modules.
"""
