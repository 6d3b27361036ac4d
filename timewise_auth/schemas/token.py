# timewise_auth/schemas/token.py
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

class TokenPair(BaseModel):
    """Resposta do /oauth/token (camelCase no fio)."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    access_token: str = Field(alias="accessToken")
    refresh_token: str = Field(alias="refreshToken")
    expires_in: int = Field(alias="expiresIn")  # segundos
    token_type: str = Field(default="Bearer", alias="tokenType")

class TokenRequest(BaseModel):
    """Corpo do /oauth/token; os campos usados dependem do grant_type."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    grant_type: Optional[str] = Field(default=None, alias="grantType")
    username: Optional[str] = None
    password: Optional[str] = None
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")

class LogoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")
