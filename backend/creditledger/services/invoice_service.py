from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from creditledger.errors import NotFoundError, ValidationError
from creditledger.models.invoice import Invoice, InvoicePayment
from creditledger.repositories.invoice_repo import InvoiceRepository
from creditledger.services.reconciliation_service import ReconciliationService
from creditledger.utils.money import round2


class InvoiceService:
    """Payments against externally issued invoices; every change re-syncs the balance."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = InvoiceRepository(db)
        self.reconciler = ReconciliationService(db)

    def get_invoice(self, invoice_id: int) -> Invoice:
        inv = self.repo.get(invoice_id)
        if not inv:
            raise NotFoundError(f"Invoice {invoice_id} not found")
        return inv

    def add_payment(
        self,
        invoice_id: int,
        amount,
        payment_date: Optional[date] = None,
        method: str = "cash",
        reference: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> InvoicePayment:
        try:
            amount = round2(amount)
        except ValueError as e:
            raise ValidationError(f"Payment amount: {e}")
        if amount <= 0:
            raise ValidationError("Payment amount must be greater than 0")
        try:
            self.get_invoice(invoice_id)
            payment = self.repo.add_payment(
                InvoicePayment(
                    invoice_id=invoice_id,
                    payment_date=payment_date or date.today(),
                    amount=amount,
                    method=method,
                    reference=reference,
                    notes=notes,
                )
            )
            self.reconciler.reconcile(invoice_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return payment

    def delete_payment(self, invoice_id: int, payment_id: int) -> Invoice:
        try:
            payment = self.repo.get_payment(invoice_id, payment_id)
            if not payment:
                raise NotFoundError(f"Payment {payment_id} not found on invoice {invoice_id}")
            self.repo.delete_payment(payment)
            inv = self.reconciler.reconcile(invoice_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return inv

    def reconcile(self, invoice_id: int) -> Invoice:
        try:
            inv = self.reconciler.reconcile(invoice_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return inv
