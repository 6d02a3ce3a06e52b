"""
stock_config.loader -- YAML loading and parsing into kernel policy objects.

Internal to ``stock_config``; callers use ``get_active_settings()``.

* Missing file     -> ``FileNotFoundError`` propagates.
* Malformed YAML   -> ``yaml.YAMLError`` propagates.
* Invalid values   -> ``ValueError`` from ``StockPolicy.__post_init__``.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from stock_kernel.domain.policy import StockPolicy


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML mapping; an empty file yields {}."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def merge_sections(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Section-wise merge: keys in *override* replace keys in *base*."""
    merged = {k: dict(v) if isinstance(v, dict) else v for k, v in base.items()}
    for section, values in override.items():
        if isinstance(values, dict) and isinstance(merged.get(section), dict):
            merged[section].update(values)
        else:
            merged[section] = values
    return merged


def _decimal(value: Any, key: str) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{key} must be a number, got {value!r}") from None


def parse_policy(data: dict[str, Any]) -> StockPolicy:
    production = data.get("production", {}) or {}
    finished = data.get("finished_goods", {}) or {}
    concurrency = data.get("concurrency", {}) or {}
    pagination = data.get("pagination", {}) or {}

    defaults = StockPolicy()
    return StockPolicy(
        paddy_bags_per_quintal=_decimal(
            production.get("paddy_bags_per_quintal", defaults.paddy_bags_per_quintal),
            "production.paddy_bags_per_quintal",
        ),
        zero_deduction_product_types=tuple(
            str(p) for p in production.get("zero_deduction_product_types") or ()
        ),
        enforce_palti_stock=bool(finished.get("enforce_palti_stock", defaults.enforce_palti_stock)),
        lock_timeout_seconds=float(
            concurrency.get("lock_timeout_seconds", defaults.lock_timeout_seconds)
        ),
        default_page_size=int(pagination.get("default_page_size", defaults.default_page_size)),
        max_page_size=int(pagination.get("max_page_size", defaults.max_page_size)),
    )
