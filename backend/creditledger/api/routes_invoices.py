from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from creditledger.api.errors import to_http
from creditledger.db import get_db
from creditledger.errors import LedgerError
from creditledger.schemas.invoice_schema import InvoiceOut, PaymentIn, PaymentOut
from creditledger.services.invoice_service import InvoiceService
from creditledger.services.reconciliation_service import ReconciliationService

router = APIRouter(prefix="/api/invoices", tags=["invoices"])


@router.get("/{invoice_id}", response_model=InvoiceOut)
def get_invoice(invoice_id: int, db: Session = Depends(get_db)):
    try:
        return InvoiceService(db).get_invoice(invoice_id)
    except LedgerError as e:
        raise to_http(e)


@router.post("/{invoice_id}/payments", response_model=PaymentOut, status_code=201)
def add_payment(invoice_id: int, payload: PaymentIn, db: Session = Depends(get_db)):
    try:
        return InvoiceService(db).add_payment(invoice_id, **payload.model_dump())
    except LedgerError as e:
        raise to_http(e)


@router.delete("/{invoice_id}/payments/{payment_id}", response_model=InvoiceOut)
def delete_payment(invoice_id: int, payment_id: int, db: Session = Depends(get_db)):
    try:
        return InvoiceService(db).delete_payment(invoice_id, payment_id)
    except LedgerError as e:
        raise to_http(e)


@router.post("/{invoice_id}/reconcile")
def reconcile(invoice_id: int, db: Session = Depends(get_db)):
    try:
        inv = InvoiceService(db).reconcile(invoice_id)
    except LedgerError as e:
        raise to_http(e)
    return {
        "invoice_id": inv.id,
        "status": inv.status,
        "amount_paid": str(inv.amount_paid),
        "credits_applied": str(inv.credits_applied),
        "balance_remaining": str(inv.balance_remaining),
        "consistent": ReconciliationService(db).is_consistent(inv.id),
    }
