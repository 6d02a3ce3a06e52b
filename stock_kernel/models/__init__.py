"""ORM models for the stock kernel."""

from stock_kernel.models.master_data import Location, Outturn, Packaging
from stock_kernel.models.movements import (
    OpeningBalanceModel,
    PaddyMovementModel,
    RiceProductionModel,
    RiceStockMovementModel,
)

__all__ = [
    "Location",
    "OpeningBalanceModel",
    "Outturn",
    "Packaging",
    "PaddyMovementModel",
    "RiceProductionModel",
    "RiceStockMovementModel",
]
