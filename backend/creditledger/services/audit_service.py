"""Audit service for recording credit note lifecycle events."""

from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from creditledger.errors import AuditWriteWarning
from creditledger.models.audit_entry import AuditEntry
from creditledger.repositories.audit_repo import AuditRepository
from creditledger.utils.logs import get_logger

log = get_logger("audit")


class AuditService:
    """Best-effort audit trail. A failed write is logged and returned, never raised."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AuditRepository(db)

    def append(
        self,
        entity: str,
        entity_id: int,
        action: str,
        actor_id: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditWriteWarning]:
        """
        Write and commit one entry in its own transaction.
        Call after the business change has committed.
        """
        try:
            self.repo.create(entity, entity_id, action, actor_id=actor_id, meta=meta)
            self.db.commit()
            return None
        except SQLAlchemyError as e:
            self.db.rollback()
            warning = AuditWriteWarning(
                f"Audit write failed for {entity}#{entity_id} {action}: {e}"
            )
            log.warning(str(warning))
            return warning

    def list(self, entity: str, entity_id: int) -> List[AuditEntry]:
        return self.repo.list(entity, entity_id)
