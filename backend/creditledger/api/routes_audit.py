from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from creditledger.db import get_db
from creditledger.schemas.audit_schema import AuditEntryOut
from creditledger.services.audit_service import AuditService

router = APIRouter(prefix="/api/audit", tags=["audit"])


@router.get("/{entity}/{entity_id}", response_model=List[AuditEntryOut])
def audit_trail(entity: str, entity_id: int, db: Session = Depends(get_db)):
    """Newest first."""
    return AuditService(db).list(entity, entity_id)
