from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from creditledger.errors import LedgerError, NotFoundError, ReconciliationWarning
from creditledger.models.invoice import Invoice
from creditledger.repositories.credit_note_repo import CreditNoteRepository
from creditledger.repositories.invoice_repo import InvoiceRepository
from creditledger.utils.logs import get_logger
from creditledger.utils.money import round2
from creditledger.utils.transactions import smart_transaction

log = get_logger("reconcile")

# settled amounts within this of the total count as paid
PAID_TOLERANCE = Decimal("0.009")


def compute_invoice_status(current: str, total, settled) -> str:
    if current == "DRAFT":
        return "DRAFT"
    t = round2(total)
    s = round2(settled)
    if s <= 0:
        return "ISSUED"
    if s + PAID_TOLERANCE < t:
        return "PARTIALLY_PAID"
    return "PAID"


class ReconciliationService:
    """
    Recomputes an invoice's settlement columns from source rows:

        balance_remaining = total_amount - sum(payments)
                            - sum(total_amount of ISSUED/PENDING credit notes)

    Always a full recomputation, never an increment, so retries and missed
    calls cannot make the balance drift.
    """

    def __init__(self, db: Session):
        self.db = db
        self.invoices = InvoiceRepository(db)
        self.credit_notes = CreditNoteRepository(db)

    def expected_balance(self, invoice: Invoice) -> Decimal:
        paid = self.invoices.payments_total(invoice.id)
        credits = self.credit_notes.active_total_for_invoice(invoice.id)
        return round2(round2(invoice.total_amount) - paid - credits)

    def reconcile(self, invoice_id: int) -> Invoice:
        """Recompute and store. Runs in a SAVEPOINT when a transaction is already open."""
        with smart_transaction(self.db):
            inv = self.invoices.get_for_update(invoice_id)
            if not inv:
                raise NotFoundError(f"Invoice {invoice_id} not found")
            total = round2(inv.total_amount)
            paid = round2(self.invoices.payments_total(inv.id))
            credits = round2(self.credit_notes.active_total_for_invoice(inv.id))

            inv.amount_paid = paid
            inv.credits_applied = credits
            inv.balance_remaining = round2(total - paid - credits)
            inv.status = compute_invoice_status(inv.status, total, paid + credits)
            self.db.flush()
        log.info(
            f"invoice {invoice_id}: total={total} paid={paid} credits={credits} "
            f"balance={inv.balance_remaining} status={inv.status}"
        )
        return inv

    def reconcile_quietly(self, invoice_id: Optional[int]) -> Optional[ReconciliationWarning]:
        """
        reconcile() for callers that must not fail because of it.
        No-op without an invoice; a failure rolls back only the reconciliation.
        """
        if invoice_id is None:
            return None
        try:
            self.reconcile(invoice_id)
            return None
        except (SQLAlchemyError, LedgerError) as e:
            warning = ReconciliationWarning(
                f"Invoice {invoice_id} balance not recomputed: {e}"
            )
            log.warning(str(warning))
            return warning

    def is_consistent(self, invoice_id: int) -> bool:
        inv = self.invoices.get(invoice_id)
        if not inv:
            raise NotFoundError(f"Invoice {invoice_id} not found")
        return round2(inv.balance_remaining) == self.expected_balance(inv)
