"""
Module ORM Registry (``ledger_modules._orm_registry``).

Responsibility
--------------
Ensure every SQLAlchemy model is imported so that ``Base.metadata`` holds
the full schema before ``create_tables()`` runs.  The same metadata is
applied to the primary database and to every tenant database.

Usage
-----
``ledger_kernel.db.engine.create_tables``, the schema-sync strategies and
``tests/conftest.py`` call ``import_all_orm_models()``.
"""


def import_all_orm_models() -> None:
    """Import kernel, tenancy and module ORM models.  Idempotent."""
    # Kernel tables first; module tables reference none of them by FK
    import ledger_kernel.models  # noqa: F401
    import ledger_tenancy.orm  # noqa: F401
    import ledger_modules.catalog.orm  # noqa: F401
    import ledger_modules.payroll.orm  # noqa: F401
