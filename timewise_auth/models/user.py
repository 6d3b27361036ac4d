# timewise_auth/models/user.py

from sqlalchemy import Column, DateTime, Integer, String, func
from sqlalchemy.orm import relationship

from timewise_auth.db.base import Base
from timewise_auth.models.user_role import user_roles

STATUS_ACTIVE = "active"
STATUS_DISABLED = "disabled"

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    email = Column(String(160), nullable=False, unique=True, index=True)
    hashed_password = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default=STATUS_ACTIVE)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    roles = relationship("Role", secondary=user_roles, back_populates="users", lazy="selectin")

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE
