"""
File: app/domains/auth/constants.py
Description: 认证领域常量定义 (错误码 + 成功提示)
Namespace: auth.*

1. Error 定义: 继承 BaseErrorCode，包含 (HTTP状态, 业务码, 默认文案)
2. Msg 定义: 纯字符串常量，用于 Router 返回成功响应

三方登录失败对客户端统一表现为"身份认证失败"，
不同的业务码仅用于排障 (日志 / 客户端埋点)，绝不携带三方返回的原始错误。

Author: jinmozhe
Created: 2026-01-15
Updated: 2026-10-19 (Federated sign-in error taxonomy)
"""

from starlette.status import (
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from app.core.error_code import BaseErrorCode

AUTH_FAILED_MESSAGE = "身份认证失败"

# ==============================================================================
# 1. 错误码定义 (Error Codes)
# ==============================================================================


class AuthError(BaseErrorCode):
    """
    认证领域错误定义
    Tuple Structure: (HTTP_Status, Code_String, Default_Message)
    """

    # 调用方错误：provider 不在 {google, apple} 内，不可重试
    UNSUPPORTED_PROVIDER = (
        HTTP_401_UNAUTHORIZED,
        "auth.unsupported_provider",
        AUTH_FAILED_MESSAGE,
    )

    # 签名 / 声明校验失败，同一 token 不可重试
    INVALID_TOKEN = (HTTP_401_UNAUTHORIZED, "auth.invalid_token", AUTH_FAILED_MESSAGE)
    AUDIENCE_MISMATCH = (
        HTTP_401_UNAUTHORIZED,
        "auth.audience_mismatch",
        AUTH_FAILED_MESSAGE,
    )
    UNKNOWN_SIGNING_KEY = (
        HTTP_401_UNAUTHORIZED,
        "auth.unknown_signing_key",
        AUTH_FAILED_MESSAGE,
    )

    # 暂时无法连通三方 (网络 / 5xx)，整个登录可重试
    VERIFICATION_FAILED = (
        HTTP_401_UNAUTHORIZED,
        "auth.verification_failed",
        AUTH_FAILED_MESSAGE,
    )

    # 持久化层不可用，不会留下部分提交的数据
    STORAGE_FAILURE = (
        HTTP_500_INTERNAL_SERVER_ERROR,
        "auth.storage_failure",
        AUTH_FAILED_MESSAGE,
    )

    # 账号状态异常 (被冻结 / 已注销)
    ACCOUNT_LOCKED = (HTTP_403_FORBIDDEN, "auth.account_locked", "账户已被冻结")


# ==============================================================================
# 2. 成功提示语 (Success Messages)
# ==============================================================================


class AuthMsg:
    """
    认证领域成功提示文案
    """

    LOGIN_SUCCESS = "登录成功"
    REGISTER_SUCCESS = "注册并登录成功"
    LOGOUT_SUCCESS = "已安全退出"
    REFRESH_SUCCESS = "令牌刷新成功"
