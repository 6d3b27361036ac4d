# timewise_auth/api/v1/router.py
from fastapi import APIRouter
from timewise_auth.api.v1 import auth, users, roles

# /oauth/token e /auth/* ficam na raiz (contrato do frontend)
root_router = APIRouter()
root_router.include_router(auth.router, tags=["auth"])

api_router = APIRouter()
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(roles.router, prefix="/roles", tags=["roles"])
