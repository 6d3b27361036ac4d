# timewise_auth/core/tokens.py
from __future__ import annotations

import hashlib
import math
import secrets
import uuid
from typing import Any, Dict, Optional

from jose import jwt, JWTError

from timewise_auth.schemas.identity import Identity

ACCESS_TYPE = "access"
REFRESH_TOKEN_BYTES = 64

def new_jti() -> str:
    return uuid.uuid4().hex

def new_refresh_token() -> str:
    """Refresh opaco: 64 bytes aleatórios em hex, sem relação com o JWT."""
    return secrets.token_hex(REFRESH_TOKEN_BYTES)

def refresh_key(token: str) -> str:
    # o store guarda só o digest; vazar o store não vaza tokens utilizáveis
    return hashlib.sha256(token.encode("utf-8")).hexdigest()

def _expiry_claim(issued_at: float, expires_at: float) -> int:
    # arredonda para cima: o token nunca vive menos que o configurado.
    # lifetime 0 continua nascendo vencido.
    if expires_at <= issued_at:
        return int(issued_at)
    return math.ceil(expires_at)

def encode_access(
    identity: Identity, *, jti: str, issued_at: float, expires_at: float, secret: str, algorithm: str
) -> str:
    payload: Dict[str, Any] = {
        "type": ACCESS_TYPE,
        "sub": identity.id,
        "email": identity.email,
        "roles": list(identity.roles),
        "jti": jti,
        "iat": int(issued_at),
        "exp": _expiry_claim(issued_at, expires_at),
    }
    if identity.permissions is not None:
        payload["permissions"] = list(identity.permissions)
    return jwt.encode(payload, secret, algorithm=algorithm)

def peek_claims(token: str) -> Optional[Dict[str, Any]]:
    """Lê as claims SEM validar assinatura (logout e checagem de blacklist)."""
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return None
    return claims if isinstance(claims, dict) else None

def decode_access(token: str, *, secret: str, algorithm: str) -> Optional[Dict[str, Any]]:
    """
    Valida assinatura e o marcador de tipo. A expiração é conferida pelo
    TokenService contra o relógio dele (permite lifetime 0 e relógio injetado).
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"verify_exp": False, "verify_aud": False},
        )
    except JWTError:
        return None
    if not isinstance(payload, dict):
        return None
    if payload.get("type") != ACCESS_TYPE:
        return None
    if not payload.get("sub") or not payload.get("jti") or not isinstance(payload.get("exp"), int):
        return None
    return payload

def identity_from_claims(payload: Dict[str, Any]) -> Identity:
    permissions = payload.get("permissions")
    return Identity(
        id=str(payload["sub"]),
        email=payload.get("email") or "",
        roles=list(payload.get("roles") or []),
        permissions=list(permissions) if permissions is not None else None,
    )
