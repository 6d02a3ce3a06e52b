"""Read-only selectors: the query side of the kernel."""

from stock_kernel.selectors.base import BaseSelector
from stock_kernel.selectors.master_data_selector import MasterDataSelector
from stock_kernel.selectors.movement_selector import MovementSelector

__all__ = [
    "BaseSelector",
    "MasterDataSelector",
    "MovementSelector",
]
