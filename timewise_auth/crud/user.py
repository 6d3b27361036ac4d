# timewise_auth/crud/user.py
from typing import Iterable, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import select
from timewise_auth.core.errors import ValidationError
from timewise_auth.core.security_password import ensure_password_policy, hash_password
from timewise_auth.models.user import User
from timewise_auth.models.role import Role
from timewise_auth.services.identity import normalize_email

class CRUDUser:
    def get(self, db: Session, user_id: int) -> User | None:
        return db.get(User, user_id)

    def get_by_email(self, db: Session, email: str) -> User | None:
        return db.execute(select(User).where(User.email == normalize_email(email))).scalar_one_or_none()

    def search(self, db: Session, *, q: Optional[str] = None, role: Optional[str] = None) -> List[User]:
        stmt = select(User).order_by(User.id)
        if q:
            like = f"%{q.lower()}%"
            stmt = stmt.where((User.name.ilike(like)) | (User.email.ilike(like)))
        if role:
            stmt = stmt.where(User.roles.any(Role.name == role.lower()))
        return list(db.scalars(stmt).all())

    def resolve_roles(self, db: Session, names: Iterable[str]) -> List[Role]:
        want = sorted({n.strip().lower() for n in names if n and n.strip()})
        if not want:
            return []
        found = list(db.scalars(select(Role).where(Role.name.in_(want))).all())
        missing = set(want) - {r.name for r in found}
        if missing:
            raise ValidationError("Unknown roles.", details={"roles": sorted(missing)})
        return found

    def create(
        self, db: Session, *, name: str, email: str, password: str,
        roles: Iterable[str] = (), status: str = "active",
    ) -> User:
        ensure_password_policy(password)
        email = normalize_email(email)
        if self.get_by_email(db, email):
            raise ValidationError("E-mail already registered.", code="DUPLICATE_EMAIL")
        user = User(name=name, email=email, hashed_password=hash_password(password), status=status)
        user.roles = self.resolve_roles(db, roles)
        db.add(user); db.commit(); db.refresh(user)
        return user

    def update(
        self, db: Session, user: User, *, name: Optional[str] = None, status: Optional[str] = None,
        password: Optional[str] = None, roles: Optional[Iterable[str]] = None,
    ) -> User:
        if name is not None:
            user.name = name
        if status is not None:
            user.status = status
        if password is not None:
            ensure_password_policy(password)
            user.hashed_password = hash_password(password)
        if roles is not None:  # substitui o conjunto de papéis
            user.roles = self.resolve_roles(db, roles)
        db.add(user); db.commit(); db.refresh(user)
        return user

user_crud = CRUDUser()
