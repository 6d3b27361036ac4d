# timewise_auth/core/errors.py
from __future__ import annotations

from typing import Any, Dict, Optional


class ConfigError(Exception):
    """Configuração inválida: a aplicação não deve subir."""


class AuthError(Exception):
    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    message: str = "Internal error."

    def __init__(self, message: Optional[str] = None, *, code: Optional[str] = None, details: Any = None):
        super().__init__(message or self.message)
        if message:
            self.message = message
        if code:
            self.code = code
        self.details = details

    @property
    def headers(self) -> Optional[Dict[str, str]]:
        return None

    def to_body(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class ValidationError(AuthError):
    status_code = 400
    code = "VALIDATION_ERROR"
    message = "Invalid request."


class AuthenticationError(AuthError):
    status_code = 401
    code = "INVALID_TOKEN"
    message = "Invalid token"

    @classmethod
    def missing(cls) -> "AuthenticationError":
        return cls("Authentication required", code="AUTHENTICATION_REQUIRED")

    @property
    def headers(self) -> Dict[str, str]:
        return {"WWW-Authenticate": "Bearer"}


class AuthorizationError(AuthError):
    status_code = 403
    code = "FORBIDDEN"
    message = "Insufficient privileges"


class InvalidGrantError(AuthError):
    # mesma resposta para qualquer falha de grant (não vaza o motivo)
    status_code = 400
    code = "INVALID_GRANT"
    message = "Token generation failed"


class RateLimitError(AuthError):
    status_code = 429
    code = "RATE_LIMITED"
    message = "Too many requests"

    def __init__(self, retry_after: int):
        super().__init__(details={"retryAfter": retry_after})
        self.retry_after = retry_after

    @property
    def headers(self) -> Dict[str, str]:
        return {"Retry-After": str(self.retry_after)}


class StoreError(AuthError):
    """Estado inconsistente no token store. Fatal, não repetir."""
    status_code = 500
    code = "STORE_ERROR"
    message = "Token store failure."
