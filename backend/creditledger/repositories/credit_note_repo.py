from decimal import Decimal
from typing import List, Optional

from sqlalchemy import String, cast, func, or_, update
from sqlalchemy.orm import Session, selectinload

from creditledger.models.credit_note import ACTIVE_STATUSES, CreditNote
from creditledger.models.credit_note_line import CreditNoteLine


class CreditNoteRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, credit_note_id: int) -> Optional[CreditNote]:
        return (
            self.db.query(CreditNote)
            .options(selectinload(CreditNote.lines))
            .filter(CreditNote.id == credit_note_id)
            .first()
        )

    def get_fresh(self, credit_note_id: int) -> Optional[CreditNote]:
        """Read the persisted row, bypassing whatever the session has cached."""
        return (
            self.db.query(CreditNote)
            .filter(CreditNote.id == credit_note_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def get_by_number(self, number: str) -> Optional[CreditNote]:
        return self.db.query(CreditNote).filter(CreditNote.number == number).first()

    def latest(self) -> Optional[CreditNote]:
        return self.db.query(CreditNote).order_by(CreditNote.id.desc()).first()

    def list(
        self, q: Optional[str] = None, status: Optional[str] = None, limit: int = 500
    ) -> List[CreditNote]:
        query = self.db.query(CreditNote)
        if status:
            query = query.filter(CreditNote.status == status)
        if q:
            like = f"%{q}%"
            query = query.filter(
                or_(
                    CreditNote.number.ilike(like),
                    CreditNote.reason.ilike(like),
                    CreditNote.reason_note.ilike(like),
                    cast(CreditNote.date, String).ilike(like),
                )
            )
        return query.order_by(CreditNote.id.desc()).limit(limit).all()

    def add(self, credit_note: CreditNote, lines: List[CreditNoteLine]) -> CreditNote:
        self.db.add(credit_note)
        self.db.flush()
        for line in lines:
            line.credit_note_id = credit_note.id
            credit_note.lines.append(line)
        self.db.flush()
        return credit_note

    def set_status_if(self, credit_note_id: int, expected: str, new: str) -> bool:
        """
        UPDATE credit_notes SET status = :new WHERE id = :id AND status = :expected.
        False means someone else changed the status first.
        """
        result = self.db.execute(
            update(CreditNote)
            .where(CreditNote.id == credit_note_id, CreditNote.status == expected)
            .values(status=new)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def active_total_for_invoice(self, invoice_id: int) -> Decimal:
        total = (
            self.db.query(func.coalesce(func.sum(CreditNote.total_amount), 0))
            .filter(
                CreditNote.invoice_id == invoice_id,
                CreditNote.status.in_(ACTIVE_STATUSES),
            )
            .scalar()
        )
        return Decimal(str(total or 0))
