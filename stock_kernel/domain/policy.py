"""
Stock policy (``stock_kernel.domain.policy``).

The business rules the engines are parameterised by.  Built by
``stock_config`` from YAML; the kernel never reads configuration itself.
Defaults are the production values, so ``StockPolicy()`` is usable as-is.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class StockPolicy:
    # paddy bags deducted per quintal of rice produced
    paddy_bags_per_quintal: Decimal = Decimal("3")
    # product types whose production draws no paddy (matched case-insensitively)
    zero_deduction_product_types: tuple[str, ...] = ()
    enforce_palti_stock: bool = True
    lock_timeout_seconds: float = 5.0
    default_page_size: int = 50
    max_page_size: int = 500

    def __post_init__(self):
        if self.paddy_bags_per_quintal <= 0:
            raise ValueError(
                f"paddy_bags_per_quintal must be positive, got {self.paddy_bags_per_quintal}"
            )
        if self.lock_timeout_seconds <= 0:
            raise ValueError("lock_timeout_seconds must be positive")
        if not 0 < self.default_page_size <= self.max_page_size:
            raise ValueError(
                "default_page_size must be between 1 and max_page_size "
                f"({self.default_page_size} / {self.max_page_size})"
            )

    def deducts_paddy(self, product_type: str) -> bool:
        key = product_type.strip().lower()
        return all(key != p.strip().lower() for p in self.zero_deduction_product_types)
