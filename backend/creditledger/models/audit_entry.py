from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String

from creditledger.db import Base


class AuditEntry(Base):
    __tablename__ = "audit_logs"
    id = Column(Integer, primary_key=True, autoincrement=True)
    entity = Column(String(64), nullable=False, index=True)
    entity_id = Column(Integer, nullable=False, index=True)
    action = Column(String(64), nullable=False)
    actor_id = Column(String(128), nullable=True)  # None for system actions
    meta = Column(JSON, nullable=True)
    created_at = Column(
        DateTime, default=lambda: datetime.now(timezone.utc), index=True
    )
