import enum

from sqlalchemy import Boolean, Column, Integer, Numeric, String, Text

from creditledger.db import Base


class StockUnit(str, enum.Enum):
    PCS = "PCS"  # current_stock in pieces
    WEIGHT = "WEIGHT"  # current_stock_grams in grams
    BAGS = "BAGS"  # current_stock in bags


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    sku = Column(String(64), unique=True, index=True, nullable=False)
    name = Column(String(256), nullable=False)
    description = Column(Text, nullable=True)
    selling_price = Column(Numeric(12, 2), nullable=False, default=0)
    active = Column(Boolean, default=True, nullable=False)

    stock_unit = Column(String(16), nullable=False, default=StockUnit.PCS.value)
    units_per_box = Column(Integer, nullable=True)
    current_stock = Column(Integer, default=0, nullable=False)
    current_stock_grams = Column(Integer, default=0, nullable=False)
    # kilograms when stock_unit is WEIGHT
    reorder_level = Column(Integer, nullable=True)

    @property
    def is_weight(self) -> bool:
        return self.stock_unit == StockUnit.WEIGHT.value

    @property
    def stock_level(self) -> int:
        """The active stock column: grams for WEIGHT, otherwise pieces or bags."""
        return self.current_stock_grams if self.is_weight else self.current_stock

    def __repr__(self):
        return f"<Product sku={self.sku} unit={self.stock_unit} stock={self.stock_level}>"
