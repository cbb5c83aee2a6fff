"""
API模块统一入口
rbac_admin/api/__init__.py
"""
from fastapi import APIRouter

from rbac_admin.api.v1.endpoints import auth, permissions, roles, users

api_router = APIRouter()
api_router.include_router(auth.router)
api_router.include_router(permissions.router)
api_router.include_router(roles.router)
api_router.include_router(users.router)
