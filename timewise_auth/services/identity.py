# timewise_auth/services/identity.py
"""
Diretório de identidades: o core de tokens não é dono dos dados de usuário,
só pede um snapshot (Identity) por subject id ou por credenciais.
"""
from __future__ import annotations

from typing import List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from timewise_auth.core.security_password import verify_and_maybe_upgrade
from timewise_auth.models.role import Role
from timewise_auth.models.user import User
from timewise_auth.models.user_role import role_permissions
from timewise_auth.schemas.identity import Identity

logger = structlog.get_logger(__name__)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()

def _permission_names(db: Session, roles: List[Role]) -> List[str]:
    role_ids = [r.id for r in roles]
    if not role_ids:
        return []
    rows = db.execute(
        select(role_permissions.c.permission).where(role_permissions.c.role_id.in_(role_ids))
    ).all()
    return sorted({p for (p,) in rows})

def identity_for(db: Session, user: User) -> Identity:
    roles = list(user.roles or [])
    return Identity(
        id=str(user.id),
        email=user.email,
        roles=sorted({r.name.lower() for r in roles if r.name}),
        permissions=_permission_names(db, roles),
    )


class SqlIdentityDirectory:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def lookup(self, subject_id: str) -> Optional[Identity]:
        try:
            user_id = int(subject_id)
        except (TypeError, ValueError):
            return None
        with self._session_factory() as db:
            user = db.get(User, user_id)
            if user is None or not user.is_active:
                return None
            return identity_for(db, user)

    def authenticate(self, email: str, password: str) -> Optional[Identity]:
        email = normalize_email(email)
        with self._session_factory() as db:
            user = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
            ok, new_hash = verify_and_maybe_upgrade(password, user.hashed_password if user else None)
            if not ok or user is None:
                return None
            if not user.is_active:
                logger.info("login_rejected_inactive", subject_id=str(user.id))
                return None
            if new_hash:
                user.hashed_password = new_hash
                db.add(user); db.commit()
            return identity_for(db, user)
