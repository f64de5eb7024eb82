from decimal import Decimal

import pytest

from creditledger.models.product import StockUnit
from creditledger.utils.money import round2, to_decimal
from creditledger.utils.units import (
    Uom,
    billable_qty,
    combine_grams,
    combine_pieces,
    describe_stock,
    parse_uom,
    split_grams,
    split_pieces,
    stock_unit_for,
    to_stock_qty,
)


@pytest.mark.parametrize("upb", [1, 6, 20, 24])
def test_pieces_split_inverts_combine(upb):
    for boxes in (0, 1, 5, 37):
        for units in {0, upb // 2, upb - 1}:
            assert split_pieces(combine_pieces(boxes, units, upb), upb) == (boxes, units)


def test_grams_split_inverts_combine():
    for kg in (0, 1, 12):
        for g in (0, 1, 500, 999):
            assert split_grams(combine_grams(kg, g)) == (kg, g)


def test_split_clamps_negative_and_missing_box_size():
    assert split_pieces(-5, 20) == (0, 0)
    assert split_pieces(7, None) == (7, 0)
    assert split_grams(None) == (0, 0)


def test_to_stock_qty():
    assert to_stock_qty("BOX", 1, 20) == 20
    assert to_stock_qty("box", Decimal("1.5"), 20) == 30
    assert to_stock_qty("PCS", 7) == 7
    assert to_stock_qty("KG", Decimal("2.5")) == 2500
    assert to_stock_qty("G", 250) == 250
    assert to_stock_qty("BAG", 3) == 3


def test_uom_family():
    assert stock_unit_for("BOX") == StockUnit.PCS
    assert stock_unit_for("g") == StockUnit.WEIGHT
    assert stock_unit_for(Uom.BAG) == StockUnit.BAGS


def test_parse_uom_rejects_unknown():
    with pytest.raises(ValueError):
        parse_uom("CRATE")
    with pytest.raises(ValueError):
        parse_uom(None)


def test_parse_uom_accepts_members_and_codes():
    assert parse_uom(Uom.BOX) is Uom.BOX
    assert parse_uom(" kg ") is Uom.KG
    assert stock_unit_for(parse_uom(Uom.PCS)) == StockUnit.PCS


def test_billable_qty_is_kg_for_weight():
    assert billable_qty("WEIGHT", 2500) == Decimal("2.5")
    assert billable_qty("PCS", 20) == Decimal("20")


def test_describe_stock():
    assert describe_stock("PCS", 105, 0, 20)["boxes"] == 5
    assert describe_stock("PCS", 105, 0, 20)["units"] == 5
    d = describe_stock("WEIGHT", 0, 2500)
    assert (d["kg"], d["g"]) == (2, 500)
    assert describe_stock("BAGS", 4, 0) == {"stock_unit": "BAGS", "bags": 4}


def test_to_decimal_blank_is_zero():
    assert to_decimal(None) == 0
    assert to_decimal("") == 0
    assert to_decimal(" 12.5 ") == Decimal("12.5")
    assert round2(2.005) == Decimal("2.01")


@pytest.mark.parametrize("bad", ["abc", "12,50", "NaN", "Infinity", object()])
def test_to_decimal_rejects_garbage(bad):
    with pytest.raises(ValueError):
        to_decimal(bad)
