"""
Configuration Loader (``pluridesk_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the typed
``pluridesk_config.schema`` dataclasses.  Services never call this
directly; the single runtime entry point is
``pluridesk_config.get_active_config()``.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Unknown top-level keys are rejected rather than ignored.
* ``compute_checksum`` is a deterministic SHA-256 of the parsed data.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or invalid values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from pluridesk_config.schema import EngineConfig, NumberingConfig

_TOP_LEVEL_KEYS = frozenset({
    "config_id",
    "version",
    "numbering",
    "payment_terms",
    "outsourcing",
    "expenses",
})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_numbering(data: dict[str, Any]) -> NumberingConfig:
    """Parse a NumberingConfig from a dict."""
    defaults = NumberingConfig()
    return NumberingConfig(
        invoice_prefix=str(data.get("invoice_prefix", defaults.invoice_prefix)),
        job_prefix=str(data.get("job_prefix", defaults.job_prefix)),
        quote_prefix=str(data.get("quote_prefix", defaults.quote_prefix)),
        purchase_order_prefix=str(
            data.get("purchase_order_prefix", defaults.purchase_order_prefix)
        ),
        padding=int(data.get("padding", defaults.padding)),
    )


def parse_engine_config(data: dict[str, Any]) -> EngineConfig:
    """
    Parse an ``EngineConfig`` from the top-level YAML dict.

    Raises:
        ValueError: on unknown keys or a value rejected by the schema.
    """
    unknown = set(data) - _TOP_LEVEL_KEYS
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

    defaults = EngineConfig()
    terms = data.get("payment_terms") or {}
    outsourcing = data.get("outsourcing") or {}
    expenses = data.get("expenses") or {}

    categories = expenses.get("categories")
    return EngineConfig(
        config_id=str(data.get("config_id", defaults.config_id)),
        version=int(data.get("version", defaults.version)),
        numbering=parse_numbering(data.get("numbering") or {}),
        default_payment_terms_days=int(
            terms.get("invoice_days", defaults.default_payment_terms_days)
        ),
        quote_validity_days=int(terms.get("quote_validity_days", defaults.quote_validity_days)),
        outsourcing_expense_category=str(
            outsourcing.get("expense_category", defaults.outsourcing_expense_category)
        ),
        outsourcing_payment_terms_days=int(
            outsourcing.get("payment_terms_days", defaults.outsourcing_payment_terms_days)
        ),
        overdue_grace_days=int(expenses.get("overdue_grace_days", defaults.overdue_grace_days)),
        expense_categories=(
            tuple(str(c) for c in categories) if categories else defaults.expense_categories
        ),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 checksum of a parsed configuration dict."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
