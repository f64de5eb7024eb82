from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from creditledger.api.errors import to_http
from creditledger.db import get_db
from creditledger.errors import LedgerError
from creditledger.schemas.inventory_schema import MovementIn, MovementOut
from creditledger.services.inventory_service import InventoryService

router = APIRouter(prefix="/api/inventory", tags=["inventory"])


@router.get("/products/{product_id}/stock")
def product_stock(product_id: int, db: Session = Depends(get_db)):
    """Cached stock in display units plus the movement fold it must equal."""
    svc = InventoryService(db)
    try:
        product = svc.get_product(product_id)
    except LedgerError as e:
        raise to_http(e)
    d = svc.describe(product)
    d["from_movements"] = svc.stock_from_movements(product_id)
    d["consistent"] = d["from_movements"] == product.stock_level
    return d


@router.get("/low-stock")
def low_stock(db: Session = Depends(get_db)):
    svc = InventoryService(db)
    return [svc.describe(p) for p in svc.list_low_stock()]


@router.get("/movements", response_model=List[MovementOut])
def list_movements(
    product_id: Optional[int] = None,
    reference: Optional[str] = None,
    source_table: Optional[str] = None,
    source_id: Optional[int] = None,
    limit: int = 500,
    db: Session = Depends(get_db),
):
    return InventoryService(db).list_movements(
        product_id=product_id,
        reference=reference,
        source_table=source_table,
        source_id=source_id,
        limit=limit,
    )


@router.post("/movements", response_model=MovementOut, status_code=201)
def record_movement(payload: MovementIn, db: Session = Depends(get_db)):
    """
    Manual stock movement, e.g. an opening ADJUSTMENT.
    payload: { "product_id": 1, "movement_type": "ADJUSTMENT", "quantity": 100, "reference": "OPENING" }
    """
    svc = InventoryService(db)
    try:
        m = svc.record_manual_movement(**payload.model_dump())
        db.commit()
    except LedgerError as e:
        db.rollback()
        raise to_http(e)
    except Exception:
        db.rollback()
        raise
    db.refresh(m)
    return m
