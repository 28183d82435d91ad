"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the ledger (route handlers, status-change hooks, the schema sync
CLI) must react to failures without parsing message strings. Every error here:
  1. Has its own class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as instance attributes

Example:
    try:
        journal.create_journal_entry("pos_sale", lines)
    except UnbalancedEntryError as e:
        api_response(code=e.code, debits=e.debits, credits=e.credits)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerKernelError (base)
    |
    +-- PostingError
    |   +-- UnbalancedEntryError
    |   +-- EmptyJournalError
    |   +-- InvalidJournalLineError
    |
    +-- AccountError
    |   +-- AccountNotFoundError
    |
    +-- TenancyError
    |   +-- TenantProvisioningError
    |   +-- SchemaSyncError
    |   +-- UnresolvableTenantConnectionError
    |   +-- TenantNotFoundError
    |   +-- TenantAccessDeniedError
    |       +-- TenantSuspendedError
    |       +-- TenantExpiredError
    |
    +-- PayrollError
    |   +-- PayrollNotFoundError
    |   +-- InvalidPayrollTransitionError
    |
    +-- ConfigurationError
        +-- InvalidChartTemplateError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category    | Code                          | When Raised
------------|-------------------------------|-----------------------------------
Posting     | UNBALANCED_ENTRY              | Rounded debits != rounded credits
            | EMPTY_JOURNAL                 | Entry submitted with no lines
            | INVALID_JOURNAL_LINE          | Negative amount / both sides set
------------|-------------------------------|-----------------------------------
Account     | ACCOUNT_NOT_FOUND             | Line code missing after bootstrap
------------|-------------------------------|-----------------------------------
Tenancy     | TENANT_PROVISIONING_FAILED    | CREATE DATABASE / schema sync failed
            | SCHEMA_SYNC_FAILED            | Migration command failed or timed out
            | TENANT_CONNECTION_UNRESOLVED  | No connection and provisioning off
            | TENANT_NOT_FOUND              | Unknown subdomain / tenant id
            | TENANT_SUSPENDED              | Tenant status is suspended
            | TENANT_EXPIRED                | Trial or subscription lapsed
------------|-------------------------------|-----------------------------------
Payroll     | PAYROLL_NOT_FOUND             | Unknown payroll id
            | INVALID_PAYROLL_TRANSITION    | e.g. paid -> draft
------------|-------------------------------|-----------------------------------
Config      | INVALID_CHART_TEMPLATE        | Template fails structural checks

Duplicate financial records are prevented, never raised: record_event_once
returns the row that already exists.
"""


class LedgerKernelError(Exception):
    """
    Base exception for all ledger errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_KERNEL_ERROR"


# Posting exceptions


class PostingError(LedgerKernelError):
    """Base exception for journal posting errors."""

    code: str = "POSTING_ERROR"


class UnbalancedEntryError(PostingError):
    """Rounded debit total does not equal rounded credit total."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, debits: str, credits: str, entry_type: str):
        self.debits = debits
        self.credits = credits
        self.entry_type = entry_type
        super().__init__(
            f"Journal entry for {entry_type} must be balanced. "
            f"Debit {debits} != Credit {credits}"
        )


class EmptyJournalError(PostingError):
    """Journal entry submitted without lines."""

    code: str = "EMPTY_JOURNAL"

    def __init__(self, entry_type: str):
        self.entry_type = entry_type
        super().__init__(f"Journal entry for {entry_type} has no lines")


class InvalidJournalLineError(PostingError):
    """A single line is malformed (negative amount or both sides populated)."""

    code: str = "INVALID_JOURNAL_LINE"

    def __init__(self, account_code: str, reason: str):
        self.account_code = account_code
        self.reason = reason
        super().__init__(f"Invalid journal line for account {account_code}: {reason}")


# Account exceptions


class AccountError(LedgerKernelError):
    """Base exception for account errors."""

    code: str = "ACCOUNT_ERROR"


class AccountNotFoundError(AccountError):
    """Account code could not be resolved for the tenant."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_code: str, tenant_id: str | None = None):
        self.account_code = account_code
        self.tenant_id = tenant_id
        super().__init__(f"Account not found: {account_code}")


# Tenancy exceptions


class TenancyError(LedgerKernelError):
    """Base exception for tenant routing and provisioning errors."""

    code: str = "TENANCY_ERROR"


class TenantProvisioningError(TenancyError):
    """
    Creating or synchronising a tenant database failed.

    ``reason`` is one of the ``REASON_*`` constants so callers can branch
    on it (e.g. surface ``hint`` to an operator on INSUFFICIENT_PRIVILEGE).
    """

    code: str = "TENANT_PROVISIONING_FAILED"

    REASON_INSUFFICIENT_PRIVILEGE = "INSUFFICIENT_PRIVILEGE"
    REASON_TIMEOUT = "TIMEOUT"
    REASON_SCHEMA_SYNC_FAILED = "SCHEMA_SYNC_FAILED"
    REASON_DATABASE_ERROR = "DATABASE_ERROR"

    def __init__(
        self,
        database_name: str,
        reason: str,
        detail: str,
        sqlstate: str | None = None,
        hint: str | None = None,
    ):
        self.database_name = database_name
        self.reason = reason
        self.detail = detail
        self.sqlstate = sqlstate
        self.hint = hint
        message = f"Failed to provision tenant database {database_name} ({reason}): {detail}"
        if hint:
            message = f"{message}. {hint}"
        super().__init__(message)


class SchemaSyncError(TenancyError):
    """Applying the schema to a tenant database failed or timed out."""

    code: str = "SCHEMA_SYNC_FAILED"

    def __init__(self, detail: str, timed_out: bool = False):
        self.detail = detail
        self.timed_out = timed_out
        super().__init__(f"Schema sync failed: {detail}")


class UnresolvableTenantConnectionError(TenancyError):
    """No connection could be resolved and auto-provisioning is disabled."""

    code: str = "TENANT_CONNECTION_UNRESOLVED"

    def __init__(self, tenant_id: str):
        self.tenant_id = tenant_id
        super().__init__(f"Unable to resolve database connection for tenant {tenant_id}")


class TenantNotFoundError(TenancyError):
    """No tenant is registered under the given subdomain or id."""

    code: str = "TENANT_NOT_FOUND"

    def __init__(self, lookup: str):
        self.lookup = lookup
        super().__init__(f"Tenant not found: {lookup}")


class TenantAccessDeniedError(TenancyError):
    """Tenant exists but may not be served."""

    code: str = "TENANT_ACCESS_DENIED"

    def __init__(self, tenant_id: str, status: str, message: str):
        self.tenant_id = tenant_id
        self.status = status
        super().__init__(message)


class TenantSuspendedError(TenantAccessDeniedError):
    code: str = "TENANT_SUSPENDED"

    def __init__(self, tenant_id: str):
        super().__init__(tenant_id, "suspended", f"Tenant {tenant_id} is suspended")


class TenantExpiredError(TenantAccessDeniedError):
    code: str = "TENANT_EXPIRED"

    def __init__(self, tenant_id: str):
        super().__init__(tenant_id, "expired", f"Subscription for tenant {tenant_id} has expired")


# Payroll exceptions


class PayrollError(LedgerKernelError):
    """Base exception for payroll errors."""

    code: str = "PAYROLL_ERROR"


class PayrollNotFoundError(PayrollError):
    code: str = "PAYROLL_NOT_FOUND"

    def __init__(self, payroll_id: str):
        self.payroll_id = payroll_id
        super().__init__(f"Payroll record not found: {payroll_id}")


class InvalidPayrollTransitionError(PayrollError):
    """Requested status change is not allowed from the current status."""

    code: str = "INVALID_PAYROLL_TRANSITION"

    def __init__(self, payroll_id: str, from_status: str, to_status: str):
        self.payroll_id = payroll_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Payroll {payroll_id} cannot move from {from_status} to {to_status}"
        )



class NegativeNetPayError(PayrollError):
    """Deductions exceed gross pay."""

    code: str = "NEGATIVE_NET_PAY"

    def __init__(self, gross_pay: str, total_deductions: str):
        self.gross_pay = gross_pay
        self.total_deductions = total_deductions
        super().__init__(
            f"Deductions {total_deductions} exceed gross pay {gross_pay}"
        )

# Configuration exceptions


class ConfigurationError(LedgerKernelError):
    """Base exception for configuration errors."""

    code: str = "CONFIGURATION_ERROR"


class InvalidChartTemplateError(ConfigurationError):
    """Chart-of-accounts template failed validation."""

    code: str = "INVALID_CHART_TEMPLATE"

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(
            f"Chart of accounts template invalid: {len(errors)} error(s): "
            + "; ".join(errors)
        )
