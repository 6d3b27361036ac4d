# timewise_auth/core/rbac.py
from fastapi import Depends

from timewise_auth.api.deps import get_current_identity, get_request_auth
from timewise_auth.core.auth_middleware import AuthState, RequestAuth
from timewise_auth.core.errors import AuthorizationError
from timewise_auth.models.role import ROLE_ADMIN, ROLE_GUEST, ROLE_SUPERADMIN, ROLE_USER
from timewise_auth.schemas.identity import Identity

_HIERARCHY = [ROLE_GUEST, ROLE_USER, ROLE_ADMIN, ROLE_SUPERADMIN]
_RANK = {name: idx for idx, name in enumerate(_HIERARCHY)}

def require_roles(*roles: str):
    """
    Use: Depends(require_roles("admin", "superadmin"))
    Libera quem tiver ao menos uma das roles.
    """
    if not roles:
        raise RuntimeError("require_roles needs at least one role")
    allowed = {r.lower() for r in roles}

    def dep(
        identity: Identity = Depends(get_current_identity),
        auth: RequestAuth = Depends(get_request_auth),
    ) -> Identity:
        if not identity.has_any_role(allowed):
            auth.state = AuthState.FORBIDDEN
            raise AuthorizationError()
        auth.state = AuthState.AUTHORIZED
        return identity
    return dep

def require_min_role(min_role: str):
    if min_role not in _RANK:
        raise RuntimeError(f"Unknown role: {min_role}")
    need = _RANK[min_role]

    def dep(
        identity: Identity = Depends(get_current_identity),
        auth: RequestAuth = Depends(get_request_auth),
    ) -> Identity:
        for r in identity.roles:
            if _RANK.get(r, -1) >= need:
                auth.state = AuthState.AUTHORIZED
                return identity
        auth.state = AuthState.FORBIDDEN
        raise AuthorizationError()
    return dep

def require_permissions(*permissions: str):
    """Exige todas as permissões; superadmin passa direto."""
    needed = set(permissions)

    def dep(
        identity: Identity = Depends(get_current_identity),
        auth: RequestAuth = Depends(get_request_auth),
    ) -> Identity:
        if ROLE_SUPERADMIN in identity.roles or needed <= set(identity.permissions or ()):
            auth.state = AuthState.AUTHORIZED
            return identity
        auth.state = AuthState.FORBIDDEN
        raise AuthorizationError("Insufficient permissions")
    return dep

def role_rank(roles) -> int:
    return max((_RANK.get(r, -1) for r in roles), default=-1)

def ensure_can_grant(identity: Identity, roles) -> None:
    """Ninguém concede ou retira papel acima do próprio nível."""
    if role_rank(roles) > role_rank(identity.roles):
        raise AuthorizationError("Cannot manage a role above your own")
