"""
stock_config -- single public entrypoint for stock ledger configuration.

Responsibility:
    ``get_active_settings()`` is the ONLY way to obtain configuration at
    runtime.  No other component reads configuration files or environment
    variables.  Returns ``ActiveSettings``: the kernel ``StockPolicy`` plus
    the database URL.

Architecture position:
    Configuration sits above ``stock_kernel`` and below ``stock_api``.  The
    kernel MUST NEVER import from ``stock_config``.

Resolution order:
    1. ``sets/default.yaml`` shipped with the package.
    2. The YAML file named by ``config_path``, or else by the
       ``STOCK_LEDGER_CONFIG`` environment variable, merged section-wise.
    3. ``DATABASE_URL`` environment variable, if set, wins for the URL.

Every successful call emits a ``STOCK_CONFIG_TRACE`` log record.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from stock_config.loader import load_yaml_file, merge_sections, parse_policy
from stock_kernel.domain.policy import StockPolicy

_logger = logging.getLogger("stock_kernel.config")

_DEFAULT_CONFIG_FILE = Path(__file__).parent / "sets" / "default.yaml"

CONFIG_ENV_VAR = "STOCK_LEDGER_CONFIG"
DATABASE_URL_ENV_VAR = "DATABASE_URL"


@dataclass(frozen=True)
class ActiveSettings:
    policy: StockPolicy
    database_url: str
    source: str


def get_active_settings(config_path: Path | str | None = None) -> ActiveSettings:
    """The ONLY public configuration entrypoint."""
    data = load_yaml_file(_DEFAULT_CONFIG_FILE)
    source = str(_DEFAULT_CONFIG_FILE)

    override = config_path or os.environ.get(CONFIG_ENV_VAR)
    if override:
        data = merge_sections(data, load_yaml_file(Path(override)))
        source = str(override)

    policy = parse_policy(data)
    database_url = os.environ.get(DATABASE_URL_ENV_VAR) or (
        (data.get("database") or {}).get("url") or "sqlite://"
    )

    _logger.info(
        "STOCK_CONFIG_TRACE",
        extra={
            "trace_type": "STOCK_CONFIG_TRACE",
            "config_source": source,
            "paddy_bags_per_quintal": str(policy.paddy_bags_per_quintal),
            "zero_deduction_product_types": list(policy.zero_deduction_product_types),
            "database_dialect": database_url.split(":", 1)[0],
        },
    )
    return ActiveSettings(policy=policy, database_url=database_url, source=source)


__all__ = ["ActiveSettings", "get_active_settings", "CONFIG_ENV_VAR", "DATABASE_URL_ENV_VAR"]
