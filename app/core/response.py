"""
File: app/core/response.py
Description: 统一响应信封（Unified Response Envelope）

所有 HTTP 接口（包括登录失败等错误响应）都遵循此契约：
{code, message, data, request_id, timestamp}

失败响应只携带业务码与通用文案，三方校验的内部细节只进入日志。

Author: jinmozhe
Created: 2025-11-24
Updated: 2026-10-19
"""

from datetime import UTC, datetime
from typing import Any, Generic, TypeVar, cast

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class ResponseBase(BaseModel):
    """响应基类"""

    model_config = ConfigDict(from_attributes=True)

    code: str = Field(default="success", description="业务状态码")
    message: str = Field(default="Success", description="响应消息")
    request_id: str | None = Field(default=None, description="请求追踪ID")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="响应生成时间",
    )


class ResponseModel(ResponseBase, Generic[T]):
    """统一响应信封"""

    data: T | None = Field(default=None, description="业务数据")

    @classmethod
    def success(
        cls,
        data: T | None = None,
        message: str = "Success",
        request_id: str | None = None,
    ) -> "ResponseModel[T]":
        """构造成功响应"""
        # Pydantic 模型先转换为 JSON 安全的字典 (UUID / datetime)
        if hasattr(data, "model_dump"):
            data = cast(Any, data).model_dump(mode="json")

        return cls(
            code="success",
            message=message,
            data=data,
            request_id=request_id,
        )

    @classmethod
    def fail(
        cls,
        code: str,
        message: str,
        data: Any = None,
        request_id: str | None = None,
    ) -> "ResponseModel[Any]":
        """构造失败响应"""
        return cls(
            code=code,
            message=message,
            data=data,
            request_id=request_id,
        )
