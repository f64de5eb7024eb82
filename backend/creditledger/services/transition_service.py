from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from creditledger.errors import (
    AuditWriteWarning,
    InvalidTransitionError,
    LedgerWarning,
    NotFoundError,
    ReconciliationWarning,
)
from creditledger.models.credit_note import CreditNoteStatus
from creditledger.models.idempotency import IdempotencyStatus
from creditledger.repositories.credit_note_repo import CreditNoteRepository
from creditledger.repositories.idempotency_repo import IdempotencyRepository
from creditledger.services.audit_service import AuditService
from creditledger.services.credit_note_service import ENTITY
from creditledger.services.inventory_service import InventoryService
from creditledger.services.reconciliation_service import ReconciliationService
from creditledger.utils.logs import get_logger

log = get_logger("transitions")

_WARNING_TYPES = {cls.__name__: cls for cls in (ReconciliationWarning, AuditWriteWarning)}


@dataclass(frozen=True)
class Transition:
    event: str
    allowed_from: Tuple[str, ...]
    to: str
    stock: str  # "reverse" or "reapply"
    notes: str


TRANSITIONS: Dict[str, Transition] = {
    "void": Transition(
        event="void",
        allowed_from=(CreditNoteStatus.ISSUED.value, CreditNoteStatus.PENDING.value),
        to=CreditNoteStatus.VOID.value,
        stock="reverse",
        notes="Credit note void (reversing stock return)",
    ),
    "refund": Transition(
        event="refund",
        allowed_from=(CreditNoteStatus.ISSUED.value, CreditNoteStatus.PENDING.value),
        to=CreditNoteStatus.REFUNDED.value,
        stock="reverse",
        notes="Credit note refund (reversing stock return)",
    ),
    "restore": Transition(
        event="restore",
        allowed_from=(CreditNoteStatus.VOID.value, CreditNoteStatus.REFUNDED.value),
        to=CreditNoteStatus.ISSUED.value,
        stock="reapply",
        notes="Credit note restored (stock return re-applied)",
    ),
}


@dataclass
class TransitionResult:
    credit_note_id: int
    number: str
    event: str
    previous_status: str
    status: str
    movements: int = 0
    warnings: List[LedgerWarning] = field(default_factory=list)
    replayed: bool = False

    @property
    def ok(self) -> bool:
        return True

    def to_dict(self) -> Dict:
        return {
            "ok": True,
            "credit_note_id": self.credit_note_id,
            "number": self.number,
            "event": self.event,
            "previous_status": self.previous_status,
            "status": self.status,
            "movements": self.movements,
            "warnings": [w.as_dict() for w in self.warnings],
        }

    @classmethod
    def from_dict(cls, body: Dict) -> "TransitionResult":
        warnings = [
            _WARNING_TYPES.get(w.get("type"), LedgerWarning)(w.get("message"))
            for w in body.get("warnings") or []
        ]
        return cls(
            credit_note_id=body["credit_note_id"],
            number=body["number"],
            event=body["event"],
            previous_status=body["previous_status"],
            status=body["status"],
            movements=body.get("movements", 0),
            warnings=warnings,
            replayed=True,
        )


class TransitionService:
    """
    Credit note state machine:

        ISSUED/PENDING --void--->   VOID
        ISSUED/PENDING --refund-->  REFUNDED
        VOID/REFUNDED  --restore--> ISSUED

    One transaction per transition: fresh status read, predicate status
    update (where id = ? and status = ?), stock compensation, invoice
    re-sync in a savepoint. The audit entry is written after commit and
    may fail without affecting the outcome.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = CreditNoteRepository(db)
        self.inventory = InventoryService(db)
        self.reconciler = ReconciliationService(db)
        self.audit = AuditService(db)
        self.idem_repo = IdempotencyRepository(db)

    def void(self, credit_note_id: int, **kwargs) -> TransitionResult:
        return self.run(credit_note_id, "void", **kwargs)

    def refund(self, credit_note_id: int, **kwargs) -> TransitionResult:
        return self.run(credit_note_id, "refund", **kwargs)

    def restore(self, credit_note_id: int, **kwargs) -> TransitionResult:
        return self.run(credit_note_id, "restore", **kwargs)

    def run(
        self,
        credit_note_id: int,
        event: str,
        actor_id: Optional[str] = None,
        note: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> TransitionResult:
        rule = TRANSITIONS.get(event)
        if not rule:
            raise InvalidTransitionError(f"Unknown credit note event: {event!r}")

        idem_key = None
        if idempotency_key:
            idem_key = f"credit_note.{event}:{credit_note_id}:{idempotency_key}"
            rec, created = self.idem_repo.begin(
                idem_key, operation=f"credit_note_{event}", credit_note_id=credit_note_id
            )
            if not created:
                if rec is None or rec.status != IdempotencyStatus.COMPLETED:
                    rec = self.idem_repo.wait_for_completion(idem_key)
                    if rec and rec.status == IdempotencyStatus.FAILED:
                        # The owner gave up; retry under the same key.
                        rec, created = self.idem_repo.begin(
                            idem_key, operation=f"credit_note_{event}", credit_note_id=credit_note_id
                        )
            if not created:
                if rec and rec.status == IdempotencyStatus.COMPLETED and rec.response_body:
                    log.info(f"{event} credit note {credit_note_id}: replaying key {idempotency_key!r}")
                    return TransitionResult.from_dict(rec.response_body)
                raise InvalidTransitionError(
                    "Duplicate request still in progress, try again later"
                )

        try:
            result = self._apply(credit_note_id, rule, actor_id, note)
        except Exception as e:
            if idem_key:
                self.idem_repo.mark_failed(idem_key, str(e))
            raise

        if idem_key:
            self.idem_repo.mark_completed(idem_key, result.to_dict())
        return result

    def _apply(
        self, credit_note_id: int, rule: Transition, actor_id: Optional[str], note: Optional[str]
    ) -> TransitionResult:
        warnings: List[LedgerWarning] = []
        try:
            cn = self.repo.get_fresh(credit_note_id)
            if not cn:
                raise NotFoundError(f"Credit note {credit_note_id} not found")
            number, invoice_id, current = cn.number, cn.invoice_id, cn.status

            if current not in rule.allowed_from:
                raise InvalidTransitionError(
                    f"Cannot {rule.event} credit note {number}: status is {current}"
                )
            if not self.repo.set_status_if(cn.id, current, rule.to):
                raise InvalidTransitionError(
                    f"Cannot {rule.event} credit note {number}: status changed concurrently"
                )

            if rule.stock == "reverse":
                movements = self.inventory.reverse(
                    number, notes=rule.notes, source_table=ENTITY, source_id=cn.id
                )
            else:
                movements = self.inventory.reapply(
                    number, notes=rule.notes, source_table=ENTITY, source_id=cn.id
                )

            w = self.reconciler.reconcile_quietly(invoice_id)
            if w:
                warnings.append(w)
            self.db.commit()
        except InvalidTransitionError as e:
            self.db.rollback()
            log.info(str(e))
            self.audit.append(
                ENTITY,
                credit_note_id,
                f"credit_note.{rule.event}.rejected",
                actor_id=actor_id,
                meta={"reason": str(e), "note": note},
            )
            raise
        except Exception:
            self.db.rollback()
            raise

        log.info(
            f"{rule.event} {number}: {current} -> {rule.to}, {len(movements)} stock movement(s)"
        )
        w = self.audit.append(
            ENTITY,
            credit_note_id,
            f"credit_note.{rule.event}",
            actor_id=actor_id,
            meta={
                "number": number,
                "from": current,
                "to": rule.to,
                "movements": len(movements),
                "invoice_id": invoice_id,
                "note": note,
            },
        )
        if w:
            warnings.append(w)

        return TransitionResult(
            credit_note_id=credit_note_id,
            number=number,
            event=rule.event,
            previous_status=current,
            status=rule.to,
            movements=len(movements),
            warnings=warnings,
        )
