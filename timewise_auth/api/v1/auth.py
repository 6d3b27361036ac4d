# timewise_auth/api/v1/auth.py
from __future__ import annotations
from typing import Any, Dict
from urllib.parse import parse_qs

import structlog
from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError as PydanticValidationError
from starlette.concurrency import run_in_threadpool

from timewise_auth.api.deps import (
    get_bearer_token,
    get_current_identity,
    get_identity_directory,
    get_token_service,
)
from timewise_auth.core.auth_middleware import client_ip
from timewise_auth.core.errors import InvalidGrantError, ValidationError
from timewise_auth.core.ratelimit import token_rate_limit
from timewise_auth.schemas.identity import Identity
from timewise_auth.schemas.token import LogoutRequest, TokenPair, TokenRequest
from timewise_auth.services.identity import SqlIdentityDirectory
from timewise_auth.services.token_service import TokenService

router = APIRouter()
audit = structlog.get_logger("timewise_auth.audit")

GRANT_PASSWORD = "password"
GRANT_REFRESH = "refresh_token"

# ---------- helpers ----------
async def _read_body(request: Request) -> Dict[str, Any]:
    """Aceita JSON, form-urlencoded ou raw 'a=1&b=2'."""
    ct = request.headers.get("content-type", "").lower()
    raw = await request.body()
    if not raw:
        return {}
    if ct.startswith("application/json"):
        try:
            data = await request.json()
        except ValueError:
            raise ValidationError("Malformed JSON body.", code="INVALID_REQUEST")
        if not isinstance(data, dict):
            raise ValidationError("Expected a JSON object.", code="INVALID_REQUEST")
        return data
    parsed = parse_qs(raw.decode(errors="replace"), keep_blank_values=True)
    return {k: v[0] for k, v in parsed.items() if v}

async def _token_request(request: Request) -> TokenRequest:
    try:
        return TokenRequest.model_validate(await _read_body(request))
    except PydanticValidationError:
        raise ValidationError("Invalid token request.", code="INVALID_REQUEST")

# ---------- endpoints ----------
@router.post(
    "/oauth/token",
    response_model=TokenPair,
    response_model_by_alias=True,
    dependencies=[Depends(token_rate_limit)],
)
async def token(
    request: Request,
    service: TokenService = Depends(get_token_service),
    directory: SqlIdentityDirectory = Depends(get_identity_directory),
):
    body = await _token_request(request)

    if body.grant_type == GRANT_PASSWORD:
        if not body.username or not body.password:
            raise InvalidGrantError()
        identity = await run_in_threadpool(directory.authenticate, body.username, body.password)
        if identity is None:
            audit.warning("login_failed", ip=client_ip(request))
            raise InvalidGrantError()
        return await run_in_threadpool(service.issue, identity)

    if body.grant_type == GRANT_REFRESH:
        pair = await run_in_threadpool(service.refresh, body.refresh_token)
        if pair is None:
            raise InvalidGrantError()
        return pair

    raise ValidationError("Unsupported grant_type.", code="INVALID_REQUEST")

@router.post("/auth/logout")
async def logout(
    request: Request,
    token: str = Depends(get_bearer_token),
    identity: Identity = Depends(get_current_identity),
    service: TokenService = Depends(get_token_service),
):
    body = await _read_body(request)
    try:
        payload = LogoutRequest.model_validate(body)
    except PydanticValidationError:
        raise ValidationError("Invalid logout request.", code="INVALID_REQUEST")
    await run_in_threadpool(service.revoke, token)
    if payload.refresh_token:
        await run_in_threadpool(service.revoke_refresh, payload.refresh_token, identity.id)
    return {"ok": True}

@router.get("/auth/me", response_model=Identity)
def me(identity: Identity = Depends(get_current_identity)):
    return identity
