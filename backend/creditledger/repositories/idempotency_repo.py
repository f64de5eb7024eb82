import time
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from creditledger.config import settings
from creditledger.models.idempotency import IdempotencyRecord, IdempotencyStatus
from creditledger.utils.logs import get_logger

log = get_logger("idempotency")


class IdempotencyRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, key: str) -> Optional[IdempotencyRecord]:
        """
        Return the idempotency record for `key`, read fresh from the DB so that
        long-lived sessions do not see a stale status.
        """
        return (
            self.db.query(IdempotencyRecord)
            .filter(IdempotencyRecord.key == key)
            .populate_existing()
            .first()
        )

    def begin(
        self, key: str, operation: str, credit_note_id: Optional[int] = None
    ) -> Tuple[Optional[IdempotencyRecord], bool]:
        """
        Atomically ensure an idempotency row exists.
        Returns (record, created_flag)
          - created_flag == True  -> this call created the IN_PROGRESS row (owner)
          - created_flag == False -> row already existed (concurrent / previous request)

        The insert is committed right away so other sessions see it.
        A FAILED record is taken over by the new attempt.
        """
        log.debug(f"begin(): trying insert key={key!r}")
        try:
            self.db.add(
                IdempotencyRecord(
                    key=key,
                    operation=operation,
                    credit_note_id=credit_note_id,
                    status=IdempotencyStatus.IN_PROGRESS.value,
                )
            )
            self.db.commit()
            return self.get(key), True
        except IntegrityError:
            self.db.rollback()
            log.debug(f"begin(): insert collision for key={key!r}")

        # Take over a FAILED record; the predicate lets only one caller win.
        taken = (
            self.db.query(IdempotencyRecord)
            .filter(
                IdempotencyRecord.key == key,
                IdempotencyRecord.status == IdempotencyStatus.FAILED.value,
            )
            .update(
                {"status": IdempotencyStatus.IN_PROGRESS.value, "last_error": None},
                synchronize_session=False,
            )
        )
        self.db.commit()
        return self.get(key), bool(taken)

    def wait_for_completion(self, key: str, timeout: float = None) -> Optional[IdempotencyRecord]:
        """Poll until the owner of `key` finishes; None if it is still running after `timeout`."""
        timeout = settings.IDEMPOTENCY_WAIT_SECONDS if timeout is None else timeout
        start = time.time()
        while True:
            rec = self.get(key)
            if rec and rec.status != IdempotencyStatus.IN_PROGRESS:
                return rec
            if time.time() - start >= timeout:
                return None
            time.sleep(0.05)

    def mark_completed(self, key: str, response_body: dict) -> IdempotencyRecord:
        rec = self.get(key)
        if not rec:
            raise RuntimeError("Idempotency record missing for key: " + str(key))
        rec.status = IdempotencyStatus.COMPLETED.value
        rec.response_body = response_body
        self.db.commit()
        log.debug(
            f"mark_completed(): key={key!r} response_keys={list(response_body.keys())}"
        )
        return rec

    def mark_failed(self, key: str, error_message: str) -> Optional[IdempotencyRecord]:
        rec = self.get(key)
        if not rec:
            return None
        rec.status = IdempotencyStatus.FAILED.value
        rec.last_error = error_message[:1024]
        self.db.commit()
        return rec
