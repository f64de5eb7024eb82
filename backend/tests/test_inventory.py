import pytest

from creditledger.config import settings
from creditledger.errors import NotFoundError, ValidationError
from creditledger.models.product import Product
from creditledger.models.stock_movement import StockMovement
from creditledger.services.inventory_service import InventoryService


def test_in_and_out_move_cached_stock(db, make_product):
    p = make_product(stock=100, units_per_box=20)
    svc = InventoryService(db)
    svc.record_movement(p.id, "IN", quantity=5, reference="GRN-1")
    svc.record_movement(p.id, "out", quantity=30, reference="SALE-1")
    db.commit()

    assert db.get(Product, p.id).current_stock == 75
    assert svc.stock_from_movements(p.id) == 75
    assert svc.verify(p.id)


def test_weight_product_uses_grams(db, make_product):
    p = make_product(sku="RICE", stock_unit="WEIGHT", grams=1000)
    svc = InventoryService(db)
    m = svc.record_movement(p.id, "IN", quantity=99, quantity_grams=1500, reference="GRN-2")
    db.commit()

    assert m.quantity == 0 and m.quantity_grams == 1500
    p = db.get(Product, p.id)
    assert p.current_stock_grams == 2500
    assert p.current_stock == 0
    assert svc.verify(p.id)

    with pytest.raises(ValidationError):
        svc.record_movement(p.id, "OUT", quantity=1, reference="SALE-2")


@pytest.mark.parametrize(
    "mtype, qty",
    [("IN", 0), ("OUT", 0), ("IN", -3), ("OUT", -1), ("ADJUSTMENT", 0)],
)
def test_invalid_quantities_rejected(db, make_product, mtype, qty):
    p = make_product(stock=10)
    with pytest.raises(ValidationError):
        InventoryService(db).record_movement(p.id, mtype, quantity=qty, reference="X")


def test_unknown_type_product_and_missing_reference(db, make_product):
    p = make_product(stock=10)
    svc = InventoryService(db)
    with pytest.raises(ValidationError):
        svc.record_movement(p.id, "TRANSFER", quantity=1, reference="X")
    with pytest.raises(ValidationError):
        svc.record_movement(p.id, "IN", quantity=1, reference="")
    with pytest.raises(NotFoundError):
        svc.record_movement(9999, "IN", quantity=1, reference="X")


def test_negative_stock_rejected_unless_allowed(db, make_product, monkeypatch):
    p = make_product(stock=5)
    svc = InventoryService(db)
    with pytest.raises(ValidationError):
        svc.record_movement(p.id, "OUT", quantity=6, reference="SALE-3")
    db.rollback()

    monkeypatch.setattr(settings, "ALLOW_NEGATIVE_STOCK", True)
    svc.record_movement(p.id, "OUT", quantity=6, reference="SALE-3")
    db.commit()
    assert db.get(Product, p.id).current_stock == -1
    assert svc.verify(p.id)


def test_reverse_is_idempotent(db, make_product):
    p = make_product(stock=80)
    svc = InventoryService(db)
    svc.record_movement(p.id, "IN", quantity=20, reference="CN-9")

    first = svc.reverse("CN-9")
    second = svc.reverse("CN-9")
    db.commit()

    assert len(first) == 1
    assert first[0].movement_type == "OUT"
    assert first[0].reference == "CN-9:reverse"
    assert second == []
    assert db.get(Product, p.id).current_stock == 80
    assert svc.is_reversed("CN-9")


def test_reverse_without_originals_is_noop(db, make_product):
    make_product(stock=1)
    assert InventoryService(db).reverse("NOPE") == []


def test_reverse_adjustment_flips_sign(db, make_product):
    p = make_product(stock=10)
    svc = InventoryService(db)
    svc.record_movement(p.id, "ADJUSTMENT", quantity=-4, reference="COUNT-1")
    [m] = svc.reverse("COUNT-1")
    db.commit()
    assert m.movement_type == "ADJUSTMENT" and m.quantity == 4
    assert db.get(Product, p.id).current_stock == 10


def test_reapply_only_after_reversal_and_cycles(db, make_product):
    p = make_product(stock=50)
    svc = InventoryService(db)
    svc.record_movement(p.id, "IN", quantity=10, reference="CN-5")
    assert svc.reapply("CN-5") == []

    for _ in range(2):
        assert len(svc.reverse("CN-5")) == 1
        assert db.get(Product, p.id).current_stock == 50
        assert len(svc.reapply("CN-5")) == 1
        assert svc.reapply("CN-5") == []
        assert db.get(Product, p.id).current_stock == 60
    db.commit()

    refs = [m.reference for m in db.query(StockMovement).order_by(StockMovement.id)]
    assert refs.count("CN-5:reverse") == 2
    assert refs.count("CN-5:restore") == 2
    assert svc.verify(p.id)


@pytest.mark.parametrize(
    "reference, source_table",
    [
        ("CN-1:reverse", None),
        ("CN-1:restore", None),
        ("fix CN-1:restore twice", None),
        ("CN-1", "credit_notes"),
    ],
)
def test_manual_movement_cannot_impersonate_credit_note(
    db, make_product, reference, source_table
):
    p = make_product(stock=10)
    svc = InventoryService(db)
    with pytest.raises(ValidationError):
        svc.record_manual_movement(
            product_id=p.id,
            movement_type="IN",
            quantity=1,
            reference=reference,
            source_table=source_table,
            source_id=1,
        )
    db.rollback()
    assert db.query(StockMovement).filter(StockMovement.product_id == p.id).count() == 1

    m = svc.record_manual_movement(
        product_id=p.id, movement_type="IN", quantity=1, reference="CN-1"
    )
    assert m.source_table is None


def test_reverse_scoped_to_source(db, make_product):
    p = make_product(stock=10)
    svc = InventoryService(db)
    svc.record_movement(
        p.id, "IN", quantity=3, reference="CN-7", source_table="credit_notes", source_id=7
    )
    svc.record_movement(p.id, "IN", quantity=50, reference="CN-7")
    svc.record_movement(
        p.id, "IN", quantity=5, reference="CN-7:restore", source_table="receipts", source_id=7
    )

    [m] = svc.reverse("CN-7", source_table="credit_notes", source_id=7)
    assert (m.movement_type, m.quantity, m.source_id) == ("OUT", 3, 7)
    assert svc.is_reversed("CN-7", source_table="credit_notes", source_id=7)
    assert len(svc.reapply("CN-7", source_table="credit_notes", source_id=7)) == 1
    db.commit()

    assert db.get(Product, p.id).current_stock == 68
    assert svc.verify(p.id)


def test_low_stock_weight_in_kg():
    p = Product(stock_unit="WEIGHT", current_stock=0, current_stock_grams=2500, reorder_level=3)
    assert InventoryService.is_low_stock(p)
    p.current_stock_grams = 3001
    assert not InventoryService.is_low_stock(p)


def test_low_stock_pieces_and_no_threshold():
    p = Product(stock_unit="PCS", current_stock=4, current_stock_grams=0, reorder_level=4)
    assert InventoryService.is_low_stock(p)
    p.reorder_level = 0
    assert not InventoryService.is_low_stock(p)
    p.reorder_level = None
    assert not InventoryService.is_low_stock(p)


def test_list_low_stock(db, make_product):
    make_product(sku="LOW", stock=2, reorder_level=5)
    make_product(sku="OK", stock=50, reorder_level=5)
    make_product(sku="FLOUR", stock_unit="WEIGHT", grams=2500, reorder_level=3)
    skus = sorted(p.sku for p in InventoryService(db).list_low_stock())
    assert skus == ["FLOUR", "LOW"]
