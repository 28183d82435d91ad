"""Read-only selectors over the tenant ledger and record feed."""
