from typing import List, Optional

from sqlalchemy.orm import Session

from creditledger.models.product import Product, StockUnit


class ProductRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, product_id: int) -> Optional[Product]:
        return self.db.query(Product).filter(Product.id == product_id).first()

    def get_for_update(self, product_id: int) -> Optional[Product]:
        """
        Fresh read of the product row with a row lock where the dialect supports it.
        populate_existing overwrites any stale identity-map copy.
        """
        return (
            self.db.query(Product)
            .filter(Product.id == product_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def get_by_sku(self, sku: str) -> Optional[Product]:
        return (
            self.db.query(Product)
            .filter(Product.sku == sku, Product.active == True)
            .first()
        )

    def list_with_reorder_level(self) -> List[Product]:
        return (
            self.db.query(Product)
            .filter(Product.active == True, Product.reorder_level > 0)
            .order_by(Product.name)
            .all()
        )

    def create(
        self,
        sku: str,
        name: str,
        stock_unit: str = StockUnit.PCS.value,
        units_per_box: int = None,
        reorder_level: int = None,
        selling_price=0,
        description: str = None,
    ) -> Product:
        """Products always start empty; opening stock is posted as a movement."""
        p = Product(
            sku=sku,
            name=name,
            description=description,
            selling_price=selling_price,
            stock_unit=StockUnit(stock_unit).value,
            units_per_box=units_per_box if stock_unit == StockUnit.PCS.value else None,
            reorder_level=reorder_level,
            current_stock=0,
            current_stock_grams=0,
        )
        self.db.add(p)
        self.db.flush()
        return p
