"""
File: app/domains/auth/exceptions.py
Description: 三方登录异常分类

继承关系：
AppException
└── SocialAuthError                 (message 固定为通用文案，detail 仅供日志)
    ├── UnsupportedProviderError
    ├── InvalidTokenError
    │   ├── AudienceMismatchError
    │   └── UnknownSigningKeyError  (刷新 JWKS 后仍找不到 kid)
    ├── VerificationFailedError     (网络 / 三方 5xx，可整体重试)
    └── StorageFailureError         (持久化失败，无部分提交)

StorageConflictError 不继承 AppException：它只在 AccountLinker 内部流转，
触发一次"回滚 + 重读"，永远不会直接抛给调用方。

Author: jinmozhe
Created: 2026-10-19
"""

from typing import ClassVar

from app.core.exceptions import AppException
from app.domains.auth.constants import AuthError


class SocialAuthError(AppException):
    """三方登录失败基类"""

    error: ClassVar[AuthError] = AuthError.INVALID_TOKEN

    def __init__(self, detail: str = ""):
        super().__init__(self.error)
        # 仅用于日志排障，不进入响应体
        self.detail = detail


class UnsupportedProviderError(SocialAuthError):
    error = AuthError.UNSUPPORTED_PROVIDER


class InvalidTokenError(SocialAuthError):
    error = AuthError.INVALID_TOKEN


class AudienceMismatchError(InvalidTokenError):
    error = AuthError.AUDIENCE_MISMATCH


class UnknownSigningKeyError(InvalidTokenError):
    error = AuthError.UNKNOWN_SIGNING_KEY


class VerificationFailedError(SocialAuthError):
    error = AuthError.VERIFICATION_FAILED


class StorageFailureError(SocialAuthError):
    error = AuthError.STORAGE_FAILURE


class StorageConflictError(Exception):
    """并发首登触发唯一约束冲突 (内部使用)"""
