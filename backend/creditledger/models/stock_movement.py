import enum
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text

from creditledger.db import Base


class MovementType(str, enum.Enum):
    IN = "IN"
    OUT = "OUT"
    ADJUSTMENT = "ADJUSTMENT"


class StockMovement(Base):
    """Append-only ledger row. Rows are never updated or deleted."""

    __tablename__ = "stock_movements"
    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    movement_date = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    movement_type = Column(String(16), nullable=False)
    # IN/OUT carry a positive magnitude, ADJUSTMENT a signed delta
    quantity = Column(Integer, nullable=False, default=0)
    quantity_grams = Column(Integer, nullable=True)
    reference = Column(String(128), nullable=False, index=True)
    source_table = Column(String(64), nullable=True)
    source_id = Column(Integer, nullable=True, index=True)
    notes = Column(Text, nullable=True)

