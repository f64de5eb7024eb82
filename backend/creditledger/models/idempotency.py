import enum
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String

from creditledger.db import Base


class IdempotencyStatus(str, enum.Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class IdempotencyRecord(Base):
    """One row per Idempotency-Key sent to a credit note transition endpoint."""

    __tablename__ = "idempotency_records"
    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(255), unique=True, nullable=False, index=True)
    operation = Column(String(64), nullable=False)  # e.g. credit_note_void
    credit_note_id = Column(Integer, nullable=True, index=True)
    status = Column(String(16), nullable=False, default=IdempotencyStatus.IN_PROGRESS.value)
    # the first completed response, replayed to retries
    response_body = Column(JSON, nullable=True)
    last_error = Column(String(1024), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
