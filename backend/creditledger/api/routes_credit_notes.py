from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Header
from sqlalchemy.orm import Session

from creditledger.api.errors import to_http
from creditledger.db import get_db
from creditledger.errors import LedgerError
from creditledger.schemas.credit_note_schema import (
    CreditNoteIn,
    CreditNoteOut,
    IssueOut,
    TransitionIn,
    TransitionOut,
)
from creditledger.services.credit_note_service import CreditNoteService
from creditledger.services.transition_service import TransitionService

router = APIRouter(prefix="/api/credit-notes", tags=["credit-notes"])


@router.post("", response_model=IssueOut, status_code=201)
def issue_credit_note(
    payload: CreditNoteIn,
    db: Session = Depends(get_db),
    actor_id: Optional[str] = Header(None, alias="X-Actor-Id"),
):
    svc = CreditNoteService(db)
    try:
        res = svc.issue(
            customer_id=payload.customer_id,
            lines=[l.model_dump() for l in payload.lines],
            number=payload.number,
            credit_note_date=payload.date,
            invoice_id=payload.invoice_id,
            reason=payload.reason,
            reason_note=payload.reason_note,
            status=payload.status,
            vat_rate=payload.vat_rate,
            actor_id=actor_id,
        )
    except LedgerError as e:
        raise to_http(e)
    return {
        "credit_note": CreditNoteOut.model_validate(res.credit_note),
        "movements": res.movements,
        "warnings": [w.as_dict() for w in res.warnings],
    }


@router.get("", response_model=List[CreditNoteOut])
def list_credit_notes(
    q: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 500,
    db: Session = Depends(get_db),
):
    return CreditNoteService(db).list(q=q, status=status, limit=limit)


@router.get("/{credit_note_id}", response_model=CreditNoteOut)
def get_credit_note(credit_note_id: int, db: Session = Depends(get_db)):
    try:
        return CreditNoteService(db).get(credit_note_id)
    except LedgerError as e:
        raise to_http(e)


def _transition(
    event: str,
    credit_note_id: int,
    payload: Optional[TransitionIn],
    db: Session,
    actor_id: Optional[str],
    idempotency_key: Optional[str],
):
    svc = TransitionService(db)
    try:
        res = svc.run(
            credit_note_id,
            event,
            actor_id=actor_id,
            note=payload.note if payload else None,
            idempotency_key=idempotency_key,
        )
    except LedgerError as e:
        raise to_http(e)
    return res.to_dict()


@router.post("/{credit_note_id}/void", response_model=TransitionOut)
def void_credit_note(
    credit_note_id: int,
    payload: Optional[TransitionIn] = Body(None),
    db: Session = Depends(get_db),
    actor_id: Optional[str] = Header(None, alias="X-Actor-Id"),
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
):
    return _transition("void", credit_note_id, payload, db, actor_id, idempotency_key)


@router.post("/{credit_note_id}/refund", response_model=TransitionOut)
def refund_credit_note(
    credit_note_id: int,
    payload: Optional[TransitionIn] = Body(None),
    db: Session = Depends(get_db),
    actor_id: Optional[str] = Header(None, alias="X-Actor-Id"),
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
):
    return _transition("refund", credit_note_id, payload, db, actor_id, idempotency_key)


@router.post("/{credit_note_id}/restore", response_model=TransitionOut)
def restore_credit_note(
    credit_note_id: int,
    payload: Optional[TransitionIn] = Body(None),
    db: Session = Depends(get_db),
    actor_id: Optional[str] = Header(None, alias="X-Actor-Id"),
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
):
    return _transition("restore", credit_note_id, payload, db, actor_id, idempotency_key)
