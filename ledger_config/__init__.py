"""
ledger_config -- environment settings and the chart-of-accounts template.

Responsibility:
    ``TenancySettings.from_env()`` is the single reader of the tenancy
    environment variables; ``get_chart_template()`` is the single source of
    the template accounts the bootstrapper materialises.

Architecture position:
    Configuration layer.  Sits above ``ledger_kernel`` and below
    ``ledger_tenancy`` / ``ledger_modules``.  The kernel MUST NEVER import
    from ``ledger_config``.
"""

from ledger_config.loader import get_chart_template, load_chart_template
from ledger_config.settings import TenancySettings

__all__ = ["TenancySettings", "get_chart_template", "load_chart_template"]
