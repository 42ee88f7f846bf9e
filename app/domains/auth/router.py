"""
File: app/domains/auth/router.py
Description: 认证领域 HTTP 路由层

本模块定义认证相关的 API 端点：
1. POST /social/{provider}: 三方登录 (google / apple)，返回用户 + 双 Token
2. POST /refresh: 刷新 (旋转策略，返回新双 Token)
3. POST /logout: 登出 (销毁 Refresh Token)

规范：
- 使用统一响应信封 (ResponseModel.success)
- 使用 AuthServiceDep 进行服务注入
- 引用 AuthMsg 常量作为响应消息
- 三方登录失败统一返回"身份认证失败"，业务码用于区分原因

Author: jinmozhe
Created: 2025-12-05
Updated: 2026-10-19 (Federated sign-in endpoint)
"""

from fastapi import APIRouter, Request

from app.core.response import ResponseModel
from app.domains.auth.constants import AuthMsg
from app.domains.auth.dependencies import AuthServiceDep
from app.domains.auth.schemas import (
    RefreshRequest,
    SocialLoginRequest,
    SocialLoginResult,
    Token,
)

router = APIRouter()


@router.post(
    "/social/{provider}",
    response_model=ResponseModel[SocialLoginResult],
    summary="三方登录 (Google / Apple)",
    description=(
        "提交客户端 SDK 拿到的 ID Token。首次登录自动创建账号，"
        "邮箱已验证的既有账号会自动绑定。成功后返回 Access Token 和 Refresh Token。"
    ),
)
async def social_login(
    request: Request,
    provider: str,
    login_data: SocialLoginRequest,
    service: AuthServiceDep,
) -> ResponseModel[SocialLoginResult]:
    """
    三方登录接口
    """
    result = await service.social_login(provider, login_data.id_token)
    req_id = getattr(request.state, "request_id", None)

    message = AuthMsg.REGISTER_SUCCESS if result.is_new_user else AuthMsg.LOGIN_SUCCESS
    return ResponseModel.success(data=result, message=message, request_id=req_id)


@router.post(
    "/refresh",
    response_model=ResponseModel[Token],
    summary="刷新令牌 (续期)",
    description="使用有效的 Refresh Token 换取新的一对 Token (Token Rotation 策略)。旧 Token 将失效。",
)
async def refresh_token(
    request: Request,
    refresh_data: RefreshRequest,
    service: AuthServiceDep,
) -> ResponseModel[Token]:
    """
    刷新 Token 接口
    """
    token = await service.refresh_token(refresh_data.refresh_token)
    req_id = getattr(request.state, "request_id", None)

    return ResponseModel.success(
        data=token, message=AuthMsg.REFRESH_SUCCESS, request_id=req_id
    )


@router.post(
    "/logout",
    response_model=ResponseModel[None],
    summary="用户登出",
    description="销毁服务端存储的 Refresh Token，使该会话失效。",
)
async def logout(
    request: Request,
    refresh_data: RefreshRequest,
    service: AuthServiceDep,
) -> ResponseModel[None]:
    """
    登出接口
    """
    await service.logout(refresh_data.refresh_token)
    req_id = getattr(request.state, "request_id", None)

    return ResponseModel.success(
        data=None, message=AuthMsg.LOGOUT_SUCCESS, request_id=req_id
    )
