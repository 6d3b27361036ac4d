# timewise_auth/core/store.py
"""
Token store: refresh tokens emitidos e jti revogados (blacklist).

A interface é injetada no TokenService; a implementação em memória atende um
único processo, a implementação SQL (timewise_auth.services.sql_store) permite
compartilhar o estado entre instâncias.

Todos os tempos são epoch em segundos (float). Entradas expiram de forma lazy
na leitura e são removidas de vez por sweep().
"""
from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class RefreshRecord:
    subject_id: str
    expires_at: float

    def expired(self, now: float) -> bool:
        return self.expires_at <= now


class TokenStore(ABC):

    @abstractmethod
    def set_refresh(self, key: str, record: RefreshRecord) -> None: ...

    @abstractmethod
    def get_refresh(self, key: str, now: float) -> Optional[RefreshRecord]:
        """Retorna o registro vigente; um registro expirado é apagado e vira None."""

    @abstractmethod
    def pop_refresh(self, key: str) -> Optional[RefreshRecord]:
        """Remove e retorna o registro de forma atômica (consumo único)."""

    @abstractmethod
    def delete_refresh(self, key: str) -> bool: ...

    @abstractmethod
    def set_revoked(self, jti: str, expires_at: float) -> None: ...

    @abstractmethod
    def is_revoked(self, jti: str, now: float) -> bool: ...

    @abstractmethod
    def delete_revoked(self, jti: str) -> bool: ...

    @abstractmethod
    def sweep(self, now: float) -> int:
        """Apaga refresh tokens e entradas da blacklist já expirados. Retorna quantos."""

    def counts(self) -> Dict[str, int]:
        return {}


class InMemoryTokenStore(TokenStore):
    """
    Mapas em memória protegidos por lock: endpoints síncronos do FastAPI rodam
    em threadpool, então pop/set precisam ser atômicos entre threads.
    """

    def __init__(self) -> None:
        self._refresh: Dict[str, RefreshRecord] = {}
        self._revoked: Dict[str, float] = {}
        self._lock = threading.Lock()

    def set_refresh(self, key: str, record: RefreshRecord) -> None:
        with self._lock:
            self._refresh[key] = record

    def get_refresh(self, key: str, now: float) -> Optional[RefreshRecord]:
        with self._lock:
            record = self._refresh.get(key)
            if record is None:
                return None
            if record.expired(now):
                del self._refresh[key]
                return None
            return record

    def pop_refresh(self, key: str) -> Optional[RefreshRecord]:
        with self._lock:
            return self._refresh.pop(key, None)

    def delete_refresh(self, key: str) -> bool:
        with self._lock:
            return self._refresh.pop(key, None) is not None

    def set_revoked(self, jti: str, expires_at: float) -> None:
        with self._lock:
            # revogar de novo não encurta a entrada
            current = self._revoked.get(jti)
            self._revoked[jti] = expires_at if current is None else max(current, expires_at)

    def is_revoked(self, jti: str, now: float) -> bool:
        with self._lock:
            expires_at = self._revoked.get(jti)
            if expires_at is None:
                return False
            if expires_at <= now:
                del self._revoked[jti]
                return False
            return True

    def delete_revoked(self, jti: str) -> bool:
        with self._lock:
            return self._revoked.pop(jti, None) is not None

    def sweep(self, now: float) -> int:
        with self._lock:
            stale_refresh = [k for k, r in self._refresh.items() if r.expired(now)]
            for k in stale_refresh:
                del self._refresh[k]
            stale_revoked = [j for j, exp in self._revoked.items() if exp <= now]
            for j in stale_revoked:
                del self._revoked[j]
            return len(stale_refresh) + len(stale_revoked)

    def counts(self) -> Dict[str, int]:
        with self._lock:
            return {"refresh_tokens": len(self._refresh), "revoked_tokens": len(self._revoked)}
