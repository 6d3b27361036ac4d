# timewise_auth/services/sql_store.py
"""TokenStore em banco (compartilhado entre processos)."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Optional

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from timewise_auth.core.errors import StoreError
from timewise_auth.core.store import RefreshRecord, TokenStore
from timewise_auth.models.tokens import RefreshToken, RevokedToken

logger = structlog.get_logger(__name__)


def _to_dt(ts: float) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc)

def _to_ts(value: datetime) -> float:
    # UTCDateTime garante datetime aware na leitura
    return value.timestamp()


class SqlTokenStore(TokenStore):
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def _run(self, op: str, fn):
        try:
            with self._session_factory() as db:
                result = fn(db)
                db.commit()
                return result
        except SQLAlchemyError as e:
            logger.error("token_store_failure", op=op, error=str(e))
            raise StoreError(details={"op": op}) from e

    def set_refresh(self, key: str, record: RefreshRecord) -> None:
        def _op(db):
            db.merge(RefreshToken(token_hash=key, subject_id=record.subject_id, expires_at=_to_dt(record.expires_at)))
        self._run("set_refresh", _op)

    def get_refresh(self, key: str, now: float) -> Optional[RefreshRecord]:
        def _op(db):
            row = db.get(RefreshToken, key)
            if row is None:
                return None
            record = RefreshRecord(subject_id=row.subject_id, expires_at=_to_ts(row.expires_at))
            if record.expired(now):
                db.delete(row)
                return None
            return record
        return self._run("get_refresh", _op)

    def pop_refresh(self, key: str) -> Optional[RefreshRecord]:
        def _op(db):
            row = db.get(RefreshToken, key)
            if row is None:
                return None
            record = RefreshRecord(subject_id=row.subject_id, expires_at=_to_ts(row.expires_at))
            # rowcount decide quem consumiu quando dois processos chegam juntos
            res = db.execute(delete(RefreshToken).where(RefreshToken.token_hash == key))
            return record if res.rowcount == 1 else None
        return self._run("pop_refresh", _op)

    def delete_refresh(self, key: str) -> bool:
        def _op(db):
            res = db.execute(delete(RefreshToken).where(RefreshToken.token_hash == key))
            return res.rowcount > 0
        return self._run("delete_refresh", _op)

    def set_revoked(self, jti: str, expires_at: float) -> None:
        def _op(db):
            row = db.get(RevokedToken, jti)
            if row is None:
                db.add(RevokedToken(jti=jti, expires_at=_to_dt(expires_at)))
            elif _to_ts(row.expires_at) < expires_at:
                row.expires_at = _to_dt(expires_at)
        self._run("set_revoked", _op)

    def is_revoked(self, jti: str, now: float) -> bool:
        def _op(db):
            row = db.get(RevokedToken, jti)
            if row is None:
                return False
            if _to_ts(row.expires_at) <= now:
                db.delete(row)
                return False
            return True
        return self._run("is_revoked", _op)

    def delete_revoked(self, jti: str) -> bool:
        def _op(db):
            res = db.execute(delete(RevokedToken).where(RevokedToken.jti == jti))
            return res.rowcount > 0
        return self._run("delete_revoked", _op)

    def sweep(self, now: float) -> int:
        cutoff = _to_dt(now)
        def _op(db):
            a = db.execute(delete(RefreshToken).where(RefreshToken.expires_at <= cutoff)).rowcount
            b = db.execute(delete(RevokedToken).where(RevokedToken.expires_at <= cutoff)).rowcount
            return (a or 0) + (b or 0)
        return self._run("sweep", _op)

    def counts(self) -> Dict[str, int]:
        def _op(db):
            return {
                "refresh_tokens": db.scalar(select(func.count()).select_from(RefreshToken)) or 0,
                "revoked_tokens": db.scalar(select(func.count()).select_from(RevokedToken)) or 0,
            }
        return self._run("counts", _op)
