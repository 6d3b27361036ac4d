# timewise_auth/schemas/user.py
from __future__ import annotations
from typing import Literal, List, Optional
from pydantic import BaseModel, EmailStr, Field

RoleName = Literal["superadmin", "admin", "user", "guest"]
UserStatus = Literal["active", "disabled"]

class UserBase(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    email: EmailStr
    status: UserStatus = "active"

class UserCreate(UserBase):
    password: str = Field(min_length=8, max_length=128)
    roles: List[RoleName] = Field(default_factory=lambda: ["user"])

class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    status: Optional[UserStatus] = None
    password: Optional[str] = Field(default=None, min_length=8, max_length=128)
    roles: Optional[List[RoleName]] = None  # substitui conjunto de papéis (se enviado)

class UserOut(BaseModel):
    id: int
    name: str
    email: str
    status: Optional[str] = None
    roles: List[str] = []

    model_config = {"from_attributes": True}

    @classmethod
    def from_model(cls, user) -> "UserOut":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            status=user.status,
            roles=sorted(r.name for r in (user.roles or [])),
        )
