from typing import List, Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from creditledger.models.stock_movement import MovementType, StockMovement


class StockMovementRepository:
    def __init__(self, db: Session):
        self.db = db

    def add(self, movement: StockMovement) -> StockMovement:
        self.db.add(movement)
        self.db.flush()
        return movement

    def _scoped(self, query, source_table: Optional[str], source_id: Optional[int]):
        if source_table is not None:
            query = query.filter(StockMovement.source_table == source_table)
        if source_id is not None:
            query = query.filter(StockMovement.source_id == source_id)
        return query

    def by_reference(
        self,
        reference: str,
        source_table: Optional[str] = None,
        source_id: Optional[int] = None,
    ) -> List[StockMovement]:
        query = self.db.query(StockMovement).filter(StockMovement.reference == reference)
        return self._scoped(query, source_table, source_id).order_by(StockMovement.id).all()

    def latest_among(
        self,
        references: List[str],
        source_table: Optional[str] = None,
        source_id: Optional[int] = None,
    ) -> Optional[StockMovement]:
        query = self.db.query(StockMovement).filter(StockMovement.reference.in_(references))
        return self._scoped(query, source_table, source_id).order_by(StockMovement.id.desc()).first()

    def list(
        self,
        product_id: Optional[int] = None,
        reference: Optional[str] = None,
        source_table: Optional[str] = None,
        source_id: Optional[int] = None,
        limit: int = 500,
    ) -> List[StockMovement]:
        query = self.db.query(StockMovement)
        if product_id is not None:
            query = query.filter(StockMovement.product_id == product_id)
        if reference:
            query = query.filter(StockMovement.reference == reference)
        if source_table:
            query = query.filter(StockMovement.source_table == source_table)
        if source_id is not None:
            query = query.filter(StockMovement.source_id == source_id)
        return query.order_by(StockMovement.id.desc()).limit(limit).all()

    def fold(self, product_id: int) -> int:
        """Sum of signed deltas for a product: IN and ADJUSTMENT add, OUT subtracts."""
        amount = func.coalesce(StockMovement.quantity_grams, StockMovement.quantity)
        delta = case(
            (StockMovement.movement_type == MovementType.OUT.value, -amount),
            else_=amount,
        )
        total = (
            self.db.query(func.coalesce(func.sum(delta), 0))
            .filter(StockMovement.product_id == product_id)
            .scalar()
        )
        return int(total or 0)
