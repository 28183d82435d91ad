"""
Chart Template Loader (``ledger_config.loader``).

Responsibility
--------------
Loads the versioned chart-of-accounts YAML and parses it into the kernel's
frozen ``ChartTemplate`` / ``AccountTemplate`` types.

Architecture position
---------------------
**Config layer**.  Sits above ``ledger_kernel``; the kernel never imports
from here.  Module services and the tenancy layer hand the parsed template
to ``AccountBootstrapper``.

Invariants enforced
-------------------
* Codes are unique.
* Every ``parent_code`` names an account listed earlier in the file.
* ``type`` and ``normal_balance`` are drawn from the kernel enums.
* ``compute_checksum`` produces a deterministic SHA-256 hash so a running
  process can report exactly which template version it bootstraps from.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Structural problems  -> ``InvalidChartTemplateError`` listing every error.
"""

from __future__ import annotations

import hashlib
import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from ledger_kernel.domain.chart import AccountTemplate, ChartTemplate
from ledger_kernel.exceptions import InvalidChartTemplateError
from ledger_kernel.models.account import AccountType, NormalBalance

_logger = logging.getLogger("ledger_kernel.config")

DEFAULT_CHART_PATH = Path(__file__).parent / "chart_of_accounts.yaml"

_ACCOUNT_TYPES = {t.value for t in AccountType}
_NORMAL_BALANCES = {b.value for b in NormalBalance}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def validate_chart(data: dict[str, Any]) -> list[str]:
    """Return every structural error in a raw chart document."""
    errors: list[str] = []
    seen: set[str] = set()
    accounts = data.get("accounts")
    if not isinstance(accounts, list) or not accounts:
        return ["'accounts' must be a non-empty list"]

    for i, raw in enumerate(accounts):
        code = str(raw.get("code", "")).strip()
        if not code:
            errors.append(f"accounts[{i}]: missing code")
            continue
        if code in seen:
            errors.append(f"{code}: duplicate code")
        if not raw.get("name"):
            errors.append(f"{code}: missing name")
        if raw.get("type") not in _ACCOUNT_TYPES:
            errors.append(f"{code}: unknown type {raw.get('type')!r}")
        if raw.get("normal_balance") not in _NORMAL_BALANCES:
            errors.append(f"{code}: unknown normal_balance {raw.get('normal_balance')!r}")
        parent = raw.get("parent_code")
        if parent is not None and str(parent) not in seen:
            errors.append(f"{code}: parent {parent} must be listed before its children")
        seen.add(code)
    return errors


def parse_account(data: dict[str, Any]) -> AccountTemplate:
    parent = data.get("parent_code")
    return AccountTemplate(
        code=str(data["code"]),
        name=data["name"],
        account_type=data["type"],
        normal_balance=data["normal_balance"],
        subtype=data.get("subtype"),
        parent_code=str(parent) if parent is not None else None,
        description=data.get("description"),
    )


def parse_chart(data: dict[str, Any]) -> ChartTemplate:
    """
    Parse and validate a raw chart document.

    Raises:
        InvalidChartTemplateError: if ``validate_chart`` reports errors.
    """
    errors = validate_chart(data)
    if errors:
        raise InvalidChartTemplateError(errors)
    return ChartTemplate(
        version=int(data.get("version", 1)),
        accounts=tuple(parse_account(a) for a in data["accounts"]),
        checksum=compute_checksum(data),
    )


def load_chart_template(path: Path | None = None) -> ChartTemplate:
    """Load and parse a chart template file (default: the bundled template)."""
    target = path or DEFAULT_CHART_PATH
    template = parse_chart(load_yaml_file(target))
    _logger.info(
        "chart_template_loaded",
        extra={
            "path": str(target),
            "version": template.version,
            "account_count": len(template.accounts),
            "checksum": template.checksum,
        },
    )
    return template


@lru_cache(maxsize=1)
def get_chart_template() -> ChartTemplate:
    """The bundled template, parsed once per process."""
    return load_chart_template()
