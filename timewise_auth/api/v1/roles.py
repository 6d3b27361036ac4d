from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy import delete, insert, select
from timewise_auth.api.deps import get_db
from timewise_auth.core.rbac import require_roles, require_permissions
from timewise_auth.models.role import Role
from timewise_auth.models.user_role import role_permissions

router = APIRouter()

def _permissions_of(db: Session, role_id: int) -> list[str]:
    rows = db.execute(select(role_permissions.c.permission).where(role_permissions.c.role_id == role_id)).all()
    return sorted(p for (p,) in rows)

@router.get("/", dependencies=[Depends(require_roles("superadmin", "admin"))])
def list_roles(db: Session = Depends(get_db)):
    return [
        {"id": r.id, "name": r.name, "description": r.description, "permissions": _permissions_of(db, r.id)}
        for r in db.scalars(select(Role).order_by(Role.id)).all()
    ]

@router.put("/{role_name}/permissions", dependencies=[Depends(require_permissions("roles:write"))])
def set_role_permissions(
    role_name: str,
    permissions: list[str] = Body(..., embed=True),
    db: Session = Depends(get_db),
):
    role = db.execute(select(Role).where(Role.name == role_name.lower())).scalar_one_or_none()
    if not role:
        raise HTTPException(status_code=404, detail="Role not found")
    wanted = sorted({p.strip() for p in permissions if p and p.strip()})
    db.execute(delete(role_permissions).where(role_permissions.c.role_id == role.id))
    if wanted:
        db.execute(insert(role_permissions), [{"role_id": role.id, "permission": p} for p in wanted])
    db.commit()
    # tokens já emitidos mantêm o snapshot antigo até o próximo refresh
    return {"id": role.id, "name": role.name, "permissions": wanted}
