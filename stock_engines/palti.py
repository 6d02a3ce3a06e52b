"""
stock_engines.palti -- Brand/packaging conversion arithmetic.

Responsibility:
    Convert ``source_bags`` of a packaging of ``source_kg_per_bag`` into the
    whole bags of a ``target_kg_per_bag`` packaging the same rice fills, and
    report the rounding loss.

        total_kg            = source_bags x source_kg_per_bag
        target_bags_exact   = total_kg / target_kg_per_bag
        target_bags         = floor(target_bags_exact)
        shortage_kg         = total_kg - target_bags x target_kg_per_bag
        shortage_bags       = shortage_kg / target_kg_per_bag
        shortage_percentage = shortage_kg / total_kg x 100

    The source balance loses all ``source_bags``; the target balance gains
    ``target_bags``.  ``shortage_kg`` is physical loss: it is reported and
    never credited to any balance.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Failure modes:
    - InvalidPaltiError for non-positive inputs or a conversion that
      yields no whole target bag.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from stock_kernel.domain.quantities import KG_PER_QUINTAL, floor_int, to_decimal
from stock_kernel.exceptions import InvalidPaltiError
from stock_engines.tracer import traced_engine


@dataclass(frozen=True)
class PaltiResult:
    source_bags: int
    source_kg_per_bag: Decimal
    target_kg_per_bag: Decimal
    total_kg: Decimal
    target_bags_exact: Decimal
    target_bags: int
    shortage_kg: Decimal
    shortage_bags: Decimal
    shortage_percentage: Decimal

    @property
    def source_quintals(self) -> Decimal:
        return self.total_kg / KG_PER_QUINTAL

    @property
    def target_quintals(self) -> Decimal:
        return Decimal(self.target_bags) * self.target_kg_per_bag / KG_PER_QUINTAL

    @property
    def shortage_quintals(self) -> Decimal:
        return self.shortage_kg / KG_PER_QUINTAL


@traced_engine("palti", "1.0", fingerprint_fields=("source_bags", "source_kg_per_bag", "target_kg_per_bag"))
def compute_palti(
    *,
    source_bags: int,
    source_kg_per_bag: Decimal,
    target_kg_per_bag: Decimal,
) -> PaltiResult:
    source_kg = to_decimal(source_kg_per_bag)
    target_kg = to_decimal(target_kg_per_bag)
    if source_bags <= 0:
        raise InvalidPaltiError(f"source bags must be positive, got {source_bags}")
    if source_kg <= 0 or target_kg <= 0:
        raise InvalidPaltiError("kg per bag must be positive on both packagings")

    total_kg = Decimal(source_bags) * source_kg
    exact = total_kg / target_kg
    target_bags = floor_int(exact)
    if target_bags < 1:
        raise InvalidPaltiError(
            f"{total_kg} kg does not fill a single {target_kg} kg bag"
        )
    shortage_kg = total_kg - Decimal(target_bags) * target_kg

    return PaltiResult(
        source_bags=source_bags,
        source_kg_per_bag=source_kg,
        target_kg_per_bag=target_kg,
        total_kg=total_kg,
        target_bags_exact=exact,
        target_bags=target_bags,
        shortage_kg=shortage_kg,
        shortage_bags=shortage_kg / target_kg,
        shortage_percentage=shortage_kg / total_kg * Decimal(100),
    )
