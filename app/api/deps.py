"""
File: app/api/deps.py
Description: 全局依赖注入定义 (DB Session + Authentication)

本模块负责：
1. 数据库会话管理 (get_db / DBSession)
2. JWT 鉴权与用户身份提取 (get_current_user / CurrentUser)

Author: jinmozhe
Created: 2025-12-05
Updated: 2026-10-19
"""

import uuid
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Header
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import UnauthorizedException
from app.db.models.user import User
from app.db.session import AsyncSessionLocal

# ------------------------------------------------------------------------------
# 1. Database Dependencies
# ------------------------------------------------------------------------------


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    获取异步数据库会话依赖。
    async with 确保请求结束 (包括被取消) 时关闭 session，未提交的事务随之回滚。
    """
    async with AsyncSessionLocal() as session:
        yield session


DBSession = Annotated[AsyncSession, Depends(get_db)]


# ------------------------------------------------------------------------------
# 2. Authentication Dependencies (JWT 鉴权)
# ------------------------------------------------------------------------------


async def get_token_from_header(
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    """
    从 Authorization Header 提取 Bearer Token。
    格式要求: Authorization: Bearer <token>
    """
    if not authorization:
        raise UnauthorizedException(message="Missing Authorization Header")

    scheme, _, param = authorization.partition(" ")
    if scheme.lower() != "bearer" or not param:
        raise UnauthorizedException(message="Invalid Authentication Scheme")

    return param


async def get_current_user(
    token: Annotated[str, Depends(get_token_from_header)],
    session: DBSession,
) -> User:
    """
    解析 JWT 并获取当前登录用户。

    流程:
    1. 校验 JWT 签名与有效期 (jose.jwt.decode)
    2. 提取 sub (user_id)，必须是合法 UUID
    3. 查库校验用户是否存在、是否激活、是否软删除
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,  # type: ignore[arg-type]
            algorithms=[settings.ALGORITHM],
        )
    except JWTError:
        # from None 截断异常链，避免暴露底层 jose 异常细节
        raise UnauthorizedException(message="Invalid Token or Expired") from None

    if payload.get("type") != "access":
        raise UnauthorizedException(message="Invalid Token type")

    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise UnauthorizedException(message="Invalid Token: bad sub") from None

    user = await session.get(User, user_id)

    if not user:
        raise UnauthorizedException(message="User not found")

    if user.is_deleted:
        raise UnauthorizedException(message="User has been deleted")

    if not user.is_active:
        raise UnauthorizedException(message="User is inactive")

    return user


# 已登录用户依赖
# 用法: async def endpoint(user: CurrentUser): ...
CurrentUser = Annotated[User, Depends(get_current_user)]
