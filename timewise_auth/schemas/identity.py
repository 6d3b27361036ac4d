# timewise_auth/schemas/identity.py
from __future__ import annotations
from typing import List, Optional
from pydantic import BaseModel, Field

class Identity(BaseModel):
    """Snapshot do usuário embutido no access token."""
    id: str
    email: str = ""
    roles: List[str] = Field(default_factory=list)
    permissions: Optional[List[str]] = None

    model_config = {"frozen": True}

    def has_any_role(self, allowed) -> bool:
        return bool(set(self.roles) & set(allowed))
