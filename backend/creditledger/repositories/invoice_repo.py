from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from creditledger.models.invoice import Invoice, InvoicePayment


class InvoiceRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, invoice_id: int) -> Optional[Invoice]:
        return self.db.query(Invoice).filter(Invoice.id == invoice_id).first()

    def get_for_update(self, invoice_id: int) -> Optional[Invoice]:
        return (
            self.db.query(Invoice)
            .filter(Invoice.id == invoice_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def create(
        self,
        invoice_number: str,
        total_amount,
        customer_id: int = None,
        status: str = "ISSUED",
    ) -> Invoice:
        inv = Invoice(
            invoice_number=invoice_number,
            customer_id=customer_id,
            status=status,
            total_amount=total_amount,
            amount_paid=0,
            credits_applied=0,
            balance_remaining=total_amount,
        )
        self.db.add(inv)
        self.db.flush()
        return inv

    def payments_total(self, invoice_id: int) -> Decimal:
        total = (
            self.db.query(func.coalesce(func.sum(InvoicePayment.amount), 0))
            .filter(InvoicePayment.invoice_id == invoice_id)
            .scalar()
        )
        return Decimal(str(total or 0))

    def list_payments(self, invoice_id: int):
        return (
            self.db.query(InvoicePayment)
            .filter(InvoicePayment.invoice_id == invoice_id)
            .order_by(InvoicePayment.payment_date.desc(), InvoicePayment.id.desc())
            .all()
        )

    def add_payment(self, payment: InvoicePayment) -> InvoicePayment:
        self.db.add(payment)
        self.db.flush()
        return payment

    def get_payment(self, invoice_id: int, payment_id: int) -> Optional[InvoicePayment]:
        return (
            self.db.query(InvoicePayment)
            .filter(
                InvoicePayment.id == payment_id,
                InvoicePayment.invoice_id == invoice_id,
            )
            .first()
        )

    def delete_payment(self, payment: InvoicePayment):
        self.db.delete(payment)
        self.db.flush()
