from sqlalchemy import Column, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from creditledger.db import Base


class CreditNoteLine(Base):
    __tablename__ = "credit_note_lines"
    id = Column(Integer, primary_key=True, autoincrement=True)
    credit_note_id = Column(
        Integer, ForeignKey("credit_notes.id"), nullable=False, index=True
    )
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    uom = Column(String(8), nullable=False)  # BOX, PCS, KG, G, BAG
    quantity = Column(Numeric(12, 3), nullable=False)  # in `uom`
    units_per_box = Column(Integer, nullable=True)
    # stock-unit quantity: pieces, grams or bags
    total_qty = Column(Integer, nullable=False)
    unit_price_excl_vat = Column(Numeric(12, 2), nullable=False, default=0)
    unit_vat = Column(Numeric(12, 2), nullable=False, default=0)
    unit_price_incl_vat = Column(Numeric(12, 2), nullable=False, default=0)
    line_total = Column(Numeric(12, 2), nullable=False, default=0)

    credit_note = relationship("CreditNote", back_populates="lines")
