# timewise_auth/core/security_password.py
from __future__ import annotations
from typing import Optional, Tuple
from passlib.context import CryptContext

from timewise_auth.core.errors import ValidationError

pwd_context = CryptContext(
    schemes=["argon2", "bcrypt_sha256", "bcrypt"],
    deprecated="auto",
    argon2__time_cost=2,
    argon2__memory_cost=19456,
    argon2__parallelism=1,
)

PASSWORD_MIN, PASSWORD_MAX = 8, 128

# hash descartável: usuário inexistente custa o mesmo tempo que senha errada
_DUMMY_HASH = pwd_context.hash("timewise-dummy-password")

def ensure_password_policy(password: str) -> None:
    if not isinstance(password, str) or not (PASSWORD_MIN <= len(password) <= PASSWORD_MAX):
        raise ValidationError(f"Password must be {PASSWORD_MIN}-{PASSWORD_MAX} characters.")

def hash_password(plain: str) -> str:
    return pwd_context.hash(plain)

def verify_and_maybe_upgrade(plain: str, stored_hash: Optional[str]) -> Tuple[bool, str | None]:
    if not isinstance(plain, str) or len(plain) > PASSWORD_MAX:
        # nenhuma senha válida passa do limite; o passlib levantaria PasswordSizeError
        pwd_context.verify(str(plain or "")[:PASSWORD_MAX], _DUMMY_HASH)
        return False, None
    if not stored_hash:
        pwd_context.verify(plain, _DUMMY_HASH)
        return False, None
    ok = pwd_context.verify(plain, stored_hash)
    if not ok:
        return False, None
    if pwd_context.needs_update(stored_hash):
        return True, pwd_context.hash(plain)
    return True, None
