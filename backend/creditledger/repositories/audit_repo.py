from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from creditledger.models.audit_entry import AuditEntry


class AuditRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        entity: str,
        entity_id: int,
        action: str,
        actor_id: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> AuditEntry:
        entry = AuditEntry(
            entity=entity,
            entity_id=entity_id,
            action=action,
            actor_id=actor_id,
            meta=meta or {},
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def list(self, entity: str, entity_id: int, limit: int = 200) -> List[AuditEntry]:
        return (
            self.db.query(AuditEntry)
            .filter(AuditEntry.entity == entity, AuditEntry.entity_id == entity_id)
            .order_by(AuditEntry.id.desc())
            .limit(limit)
            .all()
        )
