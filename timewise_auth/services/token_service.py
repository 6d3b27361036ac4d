# timewise_auth/services/token_service.py
"""
Ciclo de vida dos tokens: emissão, verificação, rotação do refresh e logout.

- issue():   access JWT (jti único) + refresh opaco guardado no store
- verify():  blacklist primeiro, depois assinatura/tipo/expiração; falha = None
- refresh(): consome o refresh (uso único) antes de emitir o novo par
- revoke():  coloca o jti na blacklist até o exp do próprio token
"""
from __future__ import annotations

import math
import time
from typing import Callable, Optional, Protocol

import structlog

from timewise_auth.core.config import Settings
from timewise_auth.core.errors import ValidationError
from timewise_auth.core.store import RefreshRecord, TokenStore
from timewise_auth.core.tokens import (
    decode_access,
    encode_access,
    identity_from_claims,
    new_jti,
    new_refresh_token,
    peek_claims,
    refresh_key,
)
from timewise_auth.schemas.identity import Identity
from timewise_auth.schemas.token import TokenPair

logger = structlog.get_logger(__name__)
audit = structlog.get_logger("timewise_auth.audit")

DEFAULT_ACCESS_LIFETIME = 24 * 3600
DEFAULT_REFRESH_LIFETIME = 7 * 86400


class IdentityLookup(Protocol):
    def lookup(self, subject_id: str) -> Optional[Identity]: ...


class TokenService:
    def __init__(
        self,
        *,
        store: TokenStore,
        identities: IdentityLookup,
        secret: str,
        algorithm: str = "HS256",
        access_lifetime: float = DEFAULT_ACCESS_LIFETIME,
        refresh_lifetime: float = DEFAULT_REFRESH_LIFETIME,
        clock: Callable[[], float] = time.time,
    ):
        if access_lifetime < 0 or refresh_lifetime < 0:
            raise ValueError("token lifetimes must not be negative")
        self.store = store
        self.identities = identities
        self._secret = secret
        self._algorithm = algorithm
        self.access_lifetime = access_lifetime
        self.refresh_lifetime = refresh_lifetime
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        store: TokenStore,
        identities: IdentityLookup,
        clock: Callable[[], float] = time.time,
    ) -> "TokenService":
        return cls(
            store=store,
            identities=identities,
            secret=settings.SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
            access_lifetime=settings.access_token_seconds,
            refresh_lifetime=settings.refresh_token_seconds,
            clock=clock,
        )

    # ------------------------------------------------------------------ #
    # emissão
    # ------------------------------------------------------------------ #
    def issue(self, identity: Optional[Identity]) -> TokenPair:
        if identity is None or not str(identity.id or "").strip():
            raise ValidationError("Identity must carry a non-empty subject id")

        now = self._clock()
        jti = new_jti()
        access = encode_access(
            identity,
            jti=jti,
            issued_at=now,
            expires_at=now + self.access_lifetime,
            secret=self._secret,
            algorithm=self._algorithm,
        )

        refresh = new_refresh_token()
        self.store.set_refresh(
            refresh_key(refresh),
            RefreshRecord(subject_id=identity.id, expires_at=now + self.refresh_lifetime),
        )

        # limpeza oportunista dos registros vencidos
        removed = self.store.sweep(now)
        if removed:
            logger.debug("token_store_swept", removed=removed, trigger="issue")

        audit.info("token_issued", subject_id=identity.id, jti=jti)
        return TokenPair(
            access_token=access,
            refresh_token=refresh,
            expires_in=math.ceil(self.access_lifetime),
        )

    # ------------------------------------------------------------------ #
    # verificação
    # ------------------------------------------------------------------ #
    def verify(self, access_token: Optional[str]) -> Optional[Identity]:
        """Retorna a Identity ou None. O motivo da falha nunca sai daqui."""
        if not access_token:
            return None

        claims = peek_claims(access_token)
        jti = claims.get("jti") if claims else None
        if not isinstance(jti, str) or not jti:
            logger.debug("access_token_rejected", reason="malformed")
            return None

        now = self._clock()
        if self.store.is_revoked(jti, now):
            logger.debug("access_token_rejected", reason="revoked", jti=jti)
            return None

        payload = decode_access(access_token, secret=self._secret, algorithm=self._algorithm)
        if payload is None:
            logger.debug("access_token_rejected", reason="signature_or_type", jti=jti)
            return None
        if payload["exp"] <= now:
            logger.debug("access_token_rejected", reason="expired", jti=jti)
            return None

        return identity_from_claims(payload)

    # ------------------------------------------------------------------ #
    # rotação
    # ------------------------------------------------------------------ #
    def refresh(self, refresh_token: Optional[str]) -> Optional[TokenPair]:
        if not refresh_token:
            return None

        # consumido já na leitura: sucesso ou falha, este token não volta a valer
        record = self.store.pop_refresh(refresh_key(refresh_token))
        if record is None:
            # TODO: distinguir reuso de token já consumido e revogar a família
            audit.warning("refresh_rejected", reason="unknown")
            return None

        if record.expired(self._clock()):
            audit.info("refresh_rejected", reason="expired", subject_id=record.subject_id)
            return None

        identity = self.identities.lookup(record.subject_id)
        if identity is None:
            audit.warning("refresh_rejected", reason="subject_unavailable", subject_id=record.subject_id)
            return None

        pair = self.issue(identity)
        audit.info("token_refreshed", subject_id=identity.id)
        return pair

    # ------------------------------------------------------------------ #
    # logout
    # ------------------------------------------------------------------ #
    def revoke(self, access_token: Optional[str]) -> None:
        """Idempotente. Decodifica sem validar assinatura para aceitar tokens quase vencidos."""
        claims = peek_claims(access_token) if access_token else None
        if not claims:
            logger.warning("revoke_ignored", reason="undecodable")
            return
        jti, exp = claims.get("jti"), claims.get("exp")
        if not isinstance(jti, str) or not jti or not isinstance(exp, (int, float)):
            logger.warning("revoke_ignored", reason="missing_claims")
            return

        self.store.set_revoked(jti, float(exp))
        audit.info("token_revoked", jti=jti, subject_id=claims.get("sub"))

    def revoke_refresh(self, refresh_token: Optional[str], subject_id: str) -> bool:
        """Apaga o refresh só se ele pertence a subject_id."""
        if not refresh_token:
            return False
        key = refresh_key(refresh_token)
        record = self.store.get_refresh(key, self._clock())
        if record is None:
            return False
        if record.subject_id != subject_id:
            audit.warning("refresh_revoke_denied", subject_id=subject_id)
            return False
        return self.store.delete_refresh(key)

    def sweep(self) -> int:
        return self.store.sweep(self._clock())
