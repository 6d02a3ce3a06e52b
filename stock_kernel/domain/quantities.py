"""
Physical quantity helpers (``stock_kernel.domain.quantities``).

Bags are integers.  Weights (kg) and quintals (100 kg) are Decimal and are
never routed through float.  ``round_half_up`` is the only sanctioned way
to turn a fractional bag figure into whole bags.
"""

from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal, InvalidOperation

KG_PER_QUINTAL = Decimal("100")

QUINTAL_PLACES = Decimal("0.0001")
WEIGHT_PLACES = Decimal("0.001")


def to_decimal(value: object) -> Decimal:
    """Coerce int/str/Decimal/float to Decimal via its string form."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("bool is not a quantity")
    if isinstance(value, (int, str, float)):
        try:
            return Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValueError(f"Not a number: {value!r}") from exc
    raise TypeError(f"Cannot convert {type(value).__name__} to Decimal")


def round_half_up(value: Decimal) -> int:
    """Round to the nearest whole number, halves away from zero."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def floor_int(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


def quintals_for(bags: int, kg_per_bag: Decimal) -> Decimal:
    """quintals = bags x kg_per_bag / 100, exact."""
    return Decimal(bags) * to_decimal(kg_per_bag) / KG_PER_QUINTAL


def quantize_quintals(value: Decimal) -> Decimal:
    return value.quantize(QUINTAL_PLACES, rounding=ROUND_HALF_UP)


def quantize_weight(value: Decimal) -> Decimal:
    return value.quantize(WEIGHT_PLACES, rounding=ROUND_HALF_UP)
