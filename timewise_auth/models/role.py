# timewise_auth/models/role.py
from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from timewise_auth.db.base import Base
from timewise_auth.models.user_role import user_roles

ROLE_SUPERADMIN = "superadmin"
ROLE_ADMIN = "admin"
ROLE_USER = "user"
ROLE_GUEST = "guest"

DEFAULT_ROLES = [ROLE_SUPERADMIN, ROLE_ADMIN, ROLE_USER, ROLE_GUEST]


class Role(Base):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(32), nullable=False, unique=True)
    description = Column(String(255), nullable=True)

    # M2M: roles <-> users
    users = relationship(
        "User",
        secondary=user_roles,
        back_populates="roles",
        lazy="selectin",
    )
