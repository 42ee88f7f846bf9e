"""
File: app/domains/users/router.py
Description: 用户领域 HTTP 路由层

本模块定义了用户相关的 API 端点：
1. GET /me: 查询当前登录用户 (必须鉴权，使用三方登录签发的 Access Token)

规范：
- 只暴露 /me，不提供 /{user_id} 接口，防止越权访问 (IDOR)
- 统一使用 ResponseModel.success 返回

Author: jinmozhe
Created: 2025-12-05
Updated: 2026-10-19
"""

from fastapi import APIRouter, Request

from app.api.deps import CurrentUser
from app.core.response import ResponseModel
from app.domains.users.schemas import UserRead

router = APIRouter()


@router.get(
    "/me",
    response_model=ResponseModel[UserRead],
    summary="获取我的个人资料",
    description="获取当前登录用户的详细信息。需携带有效 Access Token。",
)
async def read_user_me(
    request: Request,
    current_user: CurrentUser,
) -> ResponseModel[UserRead]:
    """
    查询当前用户接口 (Secured)
    """
    req_id = getattr(request.state, "request_id", None)

    return ResponseModel.success(
        data=UserRead.model_validate(current_user),
        request_id=req_id,
    )
