# timewise_auth/models/__init__.py
# Carrega módulos para registrar tabelas no metadata:
from timewise_auth.models.user_role import user_roles, role_permissions  # noqa: F401
from timewise_auth.models.role import Role  # noqa: F401
from timewise_auth.models.user import User  # noqa: F401
from timewise_auth.models.tokens import RefreshToken, RevokedToken  # noqa: F401

__all__ = ["User", "Role", "user_roles", "role_permissions", "RefreshToken", "RevokedToken"]
