# timewise_auth/api/v1/users.py
from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from timewise_auth.api.deps import get_db
from timewise_auth.core.rbac import ensure_can_grant, require_roles, require_min_role
from timewise_auth.crud.user import user_crud
from timewise_auth.schemas.identity import Identity
from timewise_auth.schemas.user import UserCreate, UserUpdate, UserOut, RoleName

router = APIRouter()

_ADMINS = ("superadmin", "admin")

def _get_or_404(db: Session, user_id: int):
    u = user_crud.get(db, user_id)
    if not u:
        raise HTTPException(status_code=404, detail="User not found")
    return u

@router.post("/", response_model=UserOut, status_code=201)
def create_user(
    body: UserCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles(*_ADMINS)),
):
    ensure_can_grant(identity, body.roles)
    u = user_crud.create(
        db,
        name=body.name,
        email=body.email,
        password=body.password,
        roles=body.roles,
        status=body.status,
    )
    return UserOut.from_model(u)

@router.get("/", response_model=List[UserOut],
            dependencies=[Depends(require_roles(*_ADMINS))])
def list_users(
    role: Optional[RoleName] = Query(None),
    q: Optional[str] = Query(None, description="filtra por nome/email"),
    db: Session = Depends(get_db),
):
    return [UserOut.from_model(u) for u in user_crud.search(db, q=q, role=role)]

@router.get("/{user_id}", response_model=UserOut)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_min_role("user")),
):
    # o próprio usuário ou um admin
    if identity.id != str(user_id) and not identity.has_any_role(_ADMINS):
        raise HTTPException(status_code=404, detail="User not found")
    return UserOut.from_model(_get_or_404(db, user_id))

@router.patch("/{user_id}", response_model=UserOut)
def update_user(
    user_id: int,
    body: UserUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles(*_ADMINS)),
):
    u = _get_or_404(db, user_id)
    # alvo acima de quem pede: nem status, nem senha, nem papéis
    ensure_can_grant(identity, [r.name for r in u.roles])
    if body.roles is not None:
        ensure_can_grant(identity, body.roles)
    u = user_crud.update(
        db, u,
        name=body.name,
        status=body.status,
        password=body.password,
        roles=body.roles,
    )
    return UserOut.from_model(u)
