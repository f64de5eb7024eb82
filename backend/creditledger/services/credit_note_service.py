import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from creditledger.config import settings
from creditledger.errors import LedgerWarning, NotFoundError, ValidationError
from creditledger.models.credit_note import CreditNote, CreditNoteStatus
from creditledger.models.credit_note_line import CreditNoteLine
from creditledger.models.stock_movement import MovementType
from creditledger.repositories.credit_note_repo import CreditNoteRepository
from creditledger.repositories.invoice_repo import InvoiceRepository
from creditledger.repositories.product_repo import ProductRepository
from creditledger.services.audit_service import AuditService
from creditledger.services.inventory_service import CREDIT_NOTE_SOURCE, InventoryService
from creditledger.services.reconciliation_service import ReconciliationService
from creditledger.utils.logs import get_logger
from creditledger.utils.money import round2, to_decimal
from creditledger.utils.units import (
    Uom,
    billable_qty,
    parse_uom,
    stock_unit_for,
    to_stock_qty,
)

log = get_logger("credit_notes")

ENTITY = CREDIT_NOTE_SOURCE
ISSUABLE = (CreditNoteStatus.ISSUED.value, CreditNoteStatus.PENDING.value)


@dataclass
class IssueResult:
    credit_note: CreditNote
    movements: int = 0
    warnings: List[LedgerWarning] = field(default_factory=list)


class CreditNoteService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = CreditNoteRepository(db)
        self.products = ProductRepository(db)
        self.invoices = InvoiceRepository(db)
        self.inventory = InventoryService(db)
        self.reconciler = ReconciliationService(db)
        self.audit = AuditService(db)

    def next_number(self) -> str:
        """Trailing digits of the latest number + 1, e.g. CN-0007 -> CN-0008."""
        latest = self.repo.latest()
        nxt = 1
        if latest:
            m = re.search(r"(\d+)\s*$", latest.number or "")
            nxt = int(m.group(1)) + 1 if m else latest.id + 1
        return f"{settings.CREDIT_NOTE_PREFIX}{nxt:0{settings.CREDIT_NOTE_NUMBER_WIDTH}d}"

    def get(self, credit_note_id: int) -> CreditNote:
        cn = self.repo.get(credit_note_id)
        if not cn:
            raise NotFoundError(f"Credit note {credit_note_id} not found")
        return cn

    def get_by_number(self, number: str) -> CreditNote:
        cn = self.repo.get_by_number((number or "").strip())
        if not cn:
            raise NotFoundError(f"Credit note {number} not found")
        return cn

    def list(self, q: Optional[str] = None, status: Optional[str] = None, limit: int = 500):
        if status and status.upper() != "ALL":
            status = status.upper()
        else:
            status = None
        return self.repo.list(q=(q or "").strip() or None, status=status, limit=limit)

    def _build_line(self, raw: Dict, default_vat_rate: Decimal):
        """-> (line, quantity in pricing units)"""
        try:
            uom = parse_uom(raw.get("uom"))
        except ValueError as e:
            raise ValidationError(str(e))

        product = self.products.get(raw.get("product_id"))
        if not product:
            raise NotFoundError(f"Product {raw.get('product_id')} not found")
        if stock_unit_for(uom) != product.stock_unit:
            raise ValidationError(
                f"UOM {uom.value} cannot be used for {product.sku} (stocked as {product.stock_unit})"
            )

        try:
            quantity = to_decimal(raw.get("quantity"))
            raw_price = raw.get("unit_price_excl_vat")
            unit_excl = round2(product.selling_price if raw_price is None else raw_price)
            rate = raw.get("vat_rate")
            rate = default_vat_rate if rate is None else to_decimal(rate)
        except ValueError as e:
            raise ValidationError(f"Line for {product.sku}: {e}")

        if quantity <= 0:
            raise ValidationError(f"Quantity for {product.sku} must be greater than 0")
        units_per_box = None
        if uom == Uom.BOX:
            units_per_box = raw.get("units_per_box") or product.units_per_box or 1
        total_qty = to_stock_qty(uom, quantity, units_per_box)
        if total_qty <= 0:
            raise ValidationError(f"Quantity for {product.sku} rounds to zero")

        if unit_excl < 0:
            raise ValidationError("Unit price cannot be negative")
        if rate < 0:
            raise ValidationError("VAT rate cannot be negative")
        unit_vat = round2(unit_excl * rate / 100) if rate > 0 else Decimal("0.00")
        unit_incl = round2(unit_excl + unit_vat)
        bq = billable_qty(product.stock_unit, total_qty)

        line = CreditNoteLine(
            product_id=product.id,
            uom=uom.value,
            quantity=quantity,
            units_per_box=units_per_box,
            total_qty=total_qty,
            unit_price_excl_vat=unit_excl,
            unit_vat=unit_vat,
            unit_price_incl_vat=unit_incl,
            line_total=round2(bq * unit_incl),
        )
        return line, bq

    def issue(
        self,
        customer_id: int,
        lines: List[Dict],
        number: Optional[str] = None,
        credit_note_date: Optional[date] = None,
        invoice_id: Optional[int] = None,
        reason: Optional[str] = None,
        reason_note: Optional[str] = None,
        status: str = CreditNoteStatus.ISSUED.value,
        vat_rate=None,
        actor_id: Optional[str] = None,
    ) -> IssueResult:
        """
        Create a credit note with its lines, post one IN movement per line
        (reference = the credit note number) and re-sync a linked invoice,
        all in one transaction. The audit entry follows the commit.
        """
        status = (status or "").upper()
        if status not in ISSUABLE:
            raise ValidationError(f"A credit note cannot be issued as {status or 'empty status'}")
        if not customer_id:
            raise ValidationError("Please select a customer")
        if not lines:
            raise ValidationError("A credit note needs at least one line")
        try:
            default_rate = to_decimal(settings.DEFAULT_VAT_RATE if vat_rate is None else vat_rate)
        except ValueError as e:
            raise ValidationError(f"VAT rate: {e}")

        warnings: List[LedgerWarning] = []
        try:
            number = (number or "").strip() or self.next_number()
            if self.repo.get_by_number(number):
                raise ValidationError(f"Credit note {number} already exists")
            if invoice_id is not None and not self.invoices.get(invoice_id):
                raise NotFoundError(f"Invoice {invoice_id} not found")

            built = [self._build_line(raw, default_rate) for raw in lines]
            subtotal = sum((bq * l.unit_price_excl_vat for l, bq in built), Decimal("0"))
            vat_amount = sum((bq * l.unit_vat for l, bq in built), Decimal("0"))
            total = sum((l.line_total for l, _ in built), Decimal("0"))
            cn = self.repo.add(
                CreditNote(
                    number=number,
                    date=credit_note_date or date.today(),
                    customer_id=customer_id,
                    invoice_id=invoice_id,
                    reason=reason,
                    reason_note=reason_note,
                    subtotal=round2(subtotal),
                    vat_amount=round2(vat_amount),
                    total_amount=round2(total),
                    status=status,
                ),
                [l for l, _ in built],
            )

            for line in cn.lines:
                product = self.products.get(line.product_id)
                self.inventory.record_movement(
                    product.id,
                    MovementType.IN.value,
                    quantity=0 if product.is_weight else line.total_qty,
                    quantity_grams=line.total_qty if product.is_weight else None,
                    reference=cn.number,
                    source_table=ENTITY,
                    source_id=cn.id,
                    notes="Credit note issued (stock return)",
                )

            w = self.reconciler.reconcile_quietly(invoice_id)
            if w:
                warnings.append(w)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ValidationError(f"Credit note {number} already exists")
        except Exception:
            self.db.rollback()
            raise

        log.info(f"issued {cn.number} id={cn.id} total={cn.total_amount} status={cn.status}")
        w = self.audit.append(
            ENTITY,
            cn.id,
            "credit_note.issue",
            actor_id=actor_id,
            meta={
                "number": cn.number,
                "status": cn.status,
                "total_amount": str(cn.total_amount),
                "invoice_id": invoice_id,
                "lines": len(built),
            },
        )
        if w:
            warnings.append(w)
        return IssueResult(credit_note=self.get(cn.id), movements=len(built), warnings=warnings)
