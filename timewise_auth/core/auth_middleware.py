# timewise_auth/core/auth_middleware.py
"""
Estado de autenticação por request:

    NoToken -> TokenPresent -> {Verified, Rejected}
    Verified -> {Authorized, Forbidden}   (decidido pelas dependências de rota)

O middleware só resolve o token e anexa RequestAuth em request.state.auth;
quem recusa a request são as dependências (rotas públicas seguem passando).
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional

import structlog
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from timewise_auth.core.errors import AuthError
from timewise_auth.schemas.identity import Identity

audit = structlog.get_logger("timewise_auth.audit")


class AuthState(str, Enum):
    NO_TOKEN = "no_token"
    TOKEN_PRESENT = "token_present"
    VERIFIED = "verified"
    REJECTED = "rejected"
    AUTHORIZED = "authorized"
    FORBIDDEN = "forbidden"


@dataclass
class RequestAuth:
    state: AuthState = AuthState.NO_TOKEN
    token: Optional[str] = None
    identity: Optional[Identity] = None
    malformed: bool = False

    @property
    def roles(self) -> FrozenSet[str]:
        return frozenset(self.identity.roles) if self.identity else frozenset()

    @property
    def subject_id(self) -> Optional[str]:
        return self.identity.id if self.identity else None


def parse_bearer(authorization: Optional[str]) -> tuple[Optional[str], bool]:
    """Retorna (token, malformed). Só 'Bearer <token>' é aceito."""
    if not authorization:
        return None, False
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1]:
        return None, True
    return parts[1], False


async def resolve_request_auth(request: Request) -> RequestAuth:
    token, malformed = parse_bearer(request.headers.get("Authorization"))
    if token is None:
        return RequestAuth(state=AuthState.NO_TOKEN, malformed=malformed)

    auth = RequestAuth(state=AuthState.TOKEN_PRESENT, token=token)
    service = request.app.state.token_service
    # verify pode tocar o banco (store SQL): fora do event loop
    identity = await run_in_threadpool(service.verify, token)
    if identity is None:
        auth.state = AuthState.REJECTED
    else:
        auth.state = AuthState.VERIFIED
        auth.identity = identity
    return auth


def client_ip(request: Request) -> Optional[str]:
    # X-Forwarded-For é do cliente e não entra aqui. Atrás de proxy, o uvicorn
    # reescreve request.client com --proxy-headers --forwarded-allow-ips.
    return request.client.host if request.client else None


class AuthenticationMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        try:
            auth = await resolve_request_auth(request)
        except AuthError as exc:
            # fora do router: o exception handler da app não alcança
            return JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=exc.headers)
        request.state.auth = auth

        response = await call_next(request)

        if response.status_code in (401, 403):
            audit.warning(
                "access_denied",
                status_code=response.status_code,
                auth_state=auth.state.value,
                subject_id=auth.subject_id,
                method=request.method,
                path=request.url.path,
                ip=client_ip(request),
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
        elif auth.identity is not None:
            audit.debug(
                "request_authenticated",
                status_code=response.status_code,
                subject_id=auth.subject_id,
                method=request.method,
                path=request.url.path,
                ip=client_ip(request),
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
        return response
