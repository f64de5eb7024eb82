"""
Unit-of-measure conversions for stock quantities.

Storage units per product stock model:
  PCS    -> pieces            (displayed as boxes + loose units)
  WEIGHT -> grams             (displayed as kg + g)
  BAGS   -> plain bag count

Every conversion between what a person types (boxes, kg, bags) and what the
ledger stores lives here; nothing else in the package does unit arithmetic.
"""
import enum
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Optional, Tuple

from creditledger.models.product import StockUnit
from creditledger.utils.money import to_decimal

GRAMS_PER_KG = 1000


class Uom(str, enum.Enum):
    BOX = "BOX"
    PCS = "PCS"
    KG = "KG"
    G = "G"
    BAG = "BAG"


# which product stock model each line UOM can be posted against
UOM_STOCK_UNIT = {
    Uom.BOX: StockUnit.PCS,
    Uom.PCS: StockUnit.PCS,
    Uom.KG: StockUnit.WEIGHT,
    Uom.G: StockUnit.WEIGHT,
    Uom.BAG: StockUnit.BAGS,
}


def _upb(units_per_box: Optional[int]) -> int:
    try:
        return max(1, int(units_per_box or 1))
    except (TypeError, ValueError):
        return 1


def combine_pieces(boxes: int, units: int, units_per_box: Optional[int]) -> int:
    return int(boxes) * _upb(units_per_box) + int(units)


def split_pieces(pieces: int, units_per_box: Optional[int]) -> Tuple[int, int]:
    """pieces -> (boxes, loose units)"""
    pieces = max(0, int(pieces or 0))
    return divmod(pieces, _upb(units_per_box))


def combine_grams(kilograms: int, grams: int) -> int:
    return int(kilograms) * GRAMS_PER_KG + int(grams)


def split_grams(grams: int) -> Tuple[int, int]:
    """grams -> (kg, g)"""
    grams = max(0, int(grams or 0))
    return divmod(grams, GRAMS_PER_KG)


def parse_uom(value) -> Uom:
    if isinstance(value, Uom):
        return value
    try:
        return Uom(str(value or "").strip().upper())
    except ValueError:
        raise ValueError(f"Unknown unit of measure: {value!r}")


def stock_unit_for(uom) -> StockUnit:
    return UOM_STOCK_UNIT[parse_uom(uom)]


def to_stock_qty(uom, quantity, units_per_box: Optional[int] = None) -> int:
    """
    Quantity typed in `uom` -> whole storage units.
      BOX: quantity * units_per_box pieces
      PCS: pieces
      KG:  quantity * 1000 grams
      G:   grams
      BAG: bags
    """
    u = parse_uom(uom)
    q = to_decimal(quantity)
    if u == Uom.BOX:
        q = q * _upb(units_per_box)
    elif u == Uom.KG:
        q = q * GRAMS_PER_KG
    return int(q.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def billable_qty(stock_unit, total_qty: int) -> Decimal:
    """Storage quantity -> the quantity prices are quoted in (kg for WEIGHT)."""
    if StockUnit(stock_unit) == StockUnit.WEIGHT:
        return Decimal(int(total_qty)) / GRAMS_PER_KG
    return Decimal(int(total_qty))


def describe_stock(
    stock_unit, current_stock: int, current_stock_grams: int, units_per_box=None
) -> Dict:
    su = StockUnit(stock_unit)
    if su == StockUnit.WEIGHT:
        kg, g = split_grams(current_stock_grams)
        return {"stock_unit": su.value, "grams": int(current_stock_grams or 0), "kg": kg, "g": g}
    if su == StockUnit.BAGS:
        return {"stock_unit": su.value, "bags": int(current_stock or 0)}
    boxes, units = split_pieces(current_stock, units_per_box)
    return {
        "stock_unit": su.value,
        "pieces": int(current_stock or 0),
        "units_per_box": _upb(units_per_box),
        "boxes": boxes,
        "units": units,
    }
