from fastapi import Depends, Request

from timewise_auth.core.auth_middleware import AuthState, RequestAuth, resolve_request_auth
from timewise_auth.core.errors import AuthenticationError
from timewise_auth.db.session import get_db
from timewise_auth.schemas.identity import Identity
from timewise_auth.services.identity import SqlIdentityDirectory
from timewise_auth.services.token_service import TokenService

__all__ = ["get_db", "get_token_service", "get_identity_directory", "get_request_auth", "get_current_identity", "get_bearer_token"]

def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service

def get_identity_directory(request: Request) -> SqlIdentityDirectory:
    return request.app.state.identity_directory

# ----------------------------------------------------------------------
# Estado resolvido pelo AuthenticationMiddleware (ou resolvido aqui, se a
# app foi montada sem o middleware)
# ----------------------------------------------------------------------
async def get_request_auth(request: Request) -> RequestAuth:
    auth = getattr(request.state, "auth", None)
    if auth is None:
        auth = await resolve_request_auth(request)
        request.state.auth = auth
    return auth

def get_current_identity(auth: RequestAuth = Depends(get_request_auth)) -> Identity:
    if auth.state == AuthState.NO_TOKEN:
        raise AuthenticationError.missing()
    if auth.identity is None:
        raise AuthenticationError()
    return auth.identity

def get_bearer_token(
    auth: RequestAuth = Depends(get_request_auth),
    _: Identity = Depends(get_current_identity),
) -> str:
    return auth.token
