# app/services/idempotency_service.py
"""
Replay cache for ``POST /cases``.

The draft sync client sends one ``Idempotency-Key`` per provisioning attempt.
If that request is retried (timeout, dropped connection) the first 201 body
is replayed instead of creating a second case for the same draft.

    replay = idempotency_service.lookup(db, key, user.id)
    if replay:
        return JSONResponse(replay.body, status_code=replay.status_code)
    ...
    idempotency_service.remember(db, key, user.id, 201, body, endpoint="POST /api/v1/cases")
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.models import IdempotencyRecord

logger = logging.getLogger(__name__)

MAX_KEY_LENGTH = 255


def normalize_key(key: Optional[str]) -> Optional[str]:
    """Blank or oversized keys disable replay for the request."""
    clean = (key or "").strip()
    if not clean or len(clean) > MAX_KEY_LENGTH:
        return None
    return clean


@dataclass(frozen=True)
class Replay:
    status_code: int
    body: Dict[str, Any]


class IdempotencyService:

    def lookup(self, db: Session, key: Optional[str], user_id: UUID) -> Optional[Replay]:
        key = normalize_key(key)
        if key is None:
            return None

        record = (
            db.query(IdempotencyRecord)
            .filter(
                IdempotencyRecord.idempotency_key == key,
                IdempotencyRecord.user_id == user_id,
                IdempotencyRecord.expires_at > datetime.utcnow(),
            )
            .first()
        )
        if record is None:
            return None

        logger.info("Replaying %s for user=%s key=%s", record.endpoint, user_id, key)
        return Replay(status_code=record.status_code, body=record.response_body)

    def remember(
        self,
        db: Session,
        key: Optional[str],
        user_id: UUID,
        status_code: int,
        body: Dict[str, Any],
        endpoint: str = "",
    ) -> None:
        """Keep the first response for (key, user); later writers lose quietly."""
        key = normalize_key(key)
        if key is None:
            return

        now = datetime.utcnow()
        db.add(IdempotencyRecord(
            idempotency_key=key,
            user_id=user_id,
            endpoint=endpoint,
            status_code=status_code,
            response_body=body,
            created_at=now,
            expires_at=now + timedelta(hours=settings.IDEMPOTENCY_TTL_HOURS),
        ))
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.debug("Replay record already stored for user=%s key=%s", user_id, key)

    def purge_expired(self, db: Session) -> int:
        removed = (
            db.query(IdempotencyRecord)
            .filter(IdempotencyRecord.expires_at < datetime.utcnow())
            .delete(synchronize_session=False)
        )
        db.commit()
        return removed


idempotency_service = IdempotencyService()
