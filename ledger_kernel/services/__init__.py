"""Kernel write services.  All flush within the caller's transaction."""
