import enum
from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from creditledger.db import Base


class CreditNoteStatus(str, enum.Enum):
    ISSUED = "ISSUED"
    PENDING = "PENDING"
    VOID = "VOID"
    REFUNDED = "REFUNDED"


# statuses whose credit still counts against the linked invoice
ACTIVE_STATUSES = (CreditNoteStatus.ISSUED.value, CreditNoteStatus.PENDING.value)


class CreditNote(Base):
    __tablename__ = "credit_notes"
    id = Column(Integer, primary_key=True, autoincrement=True)
    number = Column(String(32), unique=True, nullable=False, index=True)
    date = Column(Date, nullable=False, default=lambda: datetime.now(timezone.utc).date())
    customer_id = Column(Integer, nullable=False, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=True, index=True)
    reason = Column(String(64), nullable=True)
    reason_note = Column(Text, nullable=True)
    subtotal = Column(Numeric(12, 2), nullable=False, default=0)
    vat_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    status = Column(String(16), nullable=False, default=CreditNoteStatus.ISSUED.value)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    lines = relationship(
        "CreditNoteLine",
        back_populates="credit_note",
        cascade="all, delete-orphan",
        order_by="CreditNoteLine.id",
    )

