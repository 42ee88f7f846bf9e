"""
File: app/core/security.py
Description: 安全工具模块 (Argon2id + JWT)

本模块负责：
1. 不可用密码 (Unusable Password): 三方登录创建的账号没有本地密码，
   写入一个随机明文的 Argon2id 哈希，任何人都无法用它完成密码校验
2. JWT 签发: 生成无状态的 Access Token (会话签发)
3. 异步封装: 针对 CPU 密集型的哈希操作提供 async 支持

Author: jinmozhe
Created: 2025-12-05
Updated: 2026-10-19 (Unusable password hash for OAuth-only accounts)
"""

import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import jwt
from pwdlib import PasswordHash
from starlette.concurrency import run_in_threadpool

from app.core.config import settings

# pwdlib[argon2] 默认使用 argon2 算法
password_hash = PasswordHash.recommended()

# 随机明文长度 (字节)，仅用于生成不可用密码
UNUSABLE_PASSWORD_BYTES = 32

# ------------------------------------------------------------------------------
# 1. 密码处理 (Password Hashing)
# ------------------------------------------------------------------------------


def get_password_hash(password: str) -> str:
    """
    生成密码哈希值 (Argon2id)。

    Args:
        password: 明文密码

    Returns:
        str: 加密后的哈希字符串
    """
    return password_hash.hash(password)


async def make_unusable_password_async() -> str:
    """
    为纯三方登录账号生成不可用的密码哈希（在线程池中执行）。

    明文在函数返回后即被丢弃，哈希本身满足 hashed_password 非空约束。
    """
    throwaway = secrets.token_urlsafe(UNUSABLE_PASSWORD_BYTES)
    return await run_in_threadpool(get_password_hash, throwaway)


# ------------------------------------------------------------------------------
# 2. JWT 处理 (JSON Web Token)
# ------------------------------------------------------------------------------


def create_access_token(
    subject: str | Any, expires_delta: timedelta | None = None
) -> str:
    """
    生成 JWT Access Token (短效, 无状态)。

    Args:
        subject: 主体标识 (user_id)
        expires_delta: 自定义过期时间差 (默认 ACCESS_TOKEN_EXPIRE_MINUTES)

    Returns:
        str: 编码后的 JWT 字符串

    Raises:
        ValueError: 如果系统配置中缺失 SECRET_KEY
    """
    if expires_delta:
        expire = datetime.now(UTC) + expires_delta
    else:
        expire = datetime.now(UTC) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    secret_key = settings.SECRET_KEY
    if secret_key is None:
        raise ValueError("SECRET_KEY configuration is missing.")

    # sub: 用户ID / exp: 过期时间戳 / type: Token 类型
    to_encode = {"exp": expire, "sub": str(subject), "type": "access"}

    return jwt.encode(to_encode, secret_key, algorithm=settings.ALGORITHM)
