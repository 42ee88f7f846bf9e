"""
File: app/api_router.py
Description: 根 API 路由聚合层

本模块负责：
1. 聚合业务领域的 Router (auth, users)
2. 统一设置路由前缀 (如 /auth, /users)
3. 统一设置标签 (Tags) 用于 OpenAPI 文档分组

Author: jinmozhe
Created: 2025-12-05
Updated: 2026-10-19 (Federated sign-in only)
"""

from fastapi import APIRouter

from app.domains.auth.router import router as auth_router
from app.domains.users.router import router as users_router

# 创建根 API 路由
api_router = APIRouter()

# ------------------------------------------------------------------------------
# 注册领域路由
# ------------------------------------------------------------------------------

# 1. 认证模块 (Auth Domain)
api_router.include_router(auth_router, prefix="/auth", tags=["auth"])

# 2. 用户模块 (Users Domain)
api_router.include_router(users_router, prefix="/users", tags=["users"])
