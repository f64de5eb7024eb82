from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from creditledger.db import get_db, init_db
from creditledger.main import app
from creditledger.models.product import StockUnit
from creditledger.repositories.invoice_repo import InvoiceRepository
from creditledger.repositories.product_repo import ProductRepository
from creditledger.services.inventory_service import InventoryService


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(
        f"sqlite:///{tmp_path / 'ledger.db'}",
        future=True,
        connect_args={"check_same_thread": False},
    )
    init_db(bind=eng, reset=True)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_product(db):
    """Create a product and post its opening stock as an ADJUSTMENT movement."""

    def _make(
        sku="BOX-20",
        stock=0,
        grams=0,
        stock_unit=StockUnit.PCS.value,
        units_per_box=None,
        reorder_level=None,
        selling_price="10.00",
    ):
        p = ProductRepository(db).create(
            sku=sku,
            name=f"Product {sku}",
            stock_unit=stock_unit,
            units_per_box=units_per_box,
            reorder_level=reorder_level,
            selling_price=Decimal(selling_price),
        )
        is_weight = stock_unit == StockUnit.WEIGHT.value
        if (grams if is_weight else stock):
            InventoryService(db).record_movement(
                p.id,
                "ADJUSTMENT",
                quantity=stock,
                quantity_grams=grams if is_weight else None,
                reference=f"OPENING:{sku}",
                source_table="products",
                source_id=p.id,
                notes="Opening stock",
            )
        db.commit()
        return p

    return _make


@pytest.fixture
def make_invoice(db):
    def _make(number="INV-0001", total="1000.00", status="ISSUED", customer_id=1):
        inv = InvoiceRepository(db).create(
            number, Decimal(total), customer_id=customer_id, status=status
        )
        db.commit()
        return inv

    return _make
