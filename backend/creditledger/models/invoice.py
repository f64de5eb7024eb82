from datetime import date, datetime, timezone

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from creditledger.db import Base


class Invoice(Base):
    """
    Issued by the surrounding invoicing layer. Only the settlement columns
    (amount_paid, credits_applied, balance_remaining, status) are written here.
    """

    __tablename__ = "invoices"
    id = Column(Integer, primary_key=True, autoincrement=True)
    invoice_number = Column(String(32), unique=True, nullable=False, index=True)
    customer_id = Column(Integer, nullable=True, index=True)
    invoice_date = Column(Date, default=date.today)
    status = Column(
        String(32), nullable=False, default="ISSUED"
    )  # DRAFT, ISSUED, PARTIALLY_PAID, PAID
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    amount_paid = Column(Numeric(12, 2), nullable=False, default=0)
    credits_applied = Column(Numeric(12, 2), nullable=False, default=0)
    balance_remaining = Column(Numeric(12, 2), nullable=False, default=0)
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    payments = relationship(
        "InvoicePayment", back_populates="invoice", cascade="all, delete-orphan"
    )


class InvoicePayment(Base):
    __tablename__ = "invoice_payments"
    id = Column(Integer, primary_key=True, autoincrement=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=False, index=True)
    payment_date = Column(Date, default=date.today)
    amount = Column(Numeric(12, 2), nullable=False)
    method = Column(String(32), nullable=False, default="cash")
    reference = Column(String(128), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    invoice = relationship("Invoice", back_populates="payments")
