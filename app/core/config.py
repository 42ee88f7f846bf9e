"""
File: app/core/config.py
Description: 全局应用配置管理（使用 pydantic-settings）

所有配置值通过 .env 文件加载。
本模块负责：
1. 校验环境变量类型
2. 解析复杂类型（如 CORS 列表、三方登录 Audience 白名单）
3. 组装数据库 DSN（默认 postgresql+asyncpg，也允许直接提供完整 DSN）
4. 定义 Redis 连接、JWT 会话与三方登录 (Google / Apple) 校验参数
5. 运行时强制校验必填项，确保应用在配置缺失时快速失败

Author: jinmozhe
Created: 2025-11-24
Updated: 2026-10-19 (Federated Sign-In options)
"""

from typing import Literal

from pydantic import AnyHttpUrl, model_validator
from pydantic_core import MultiHostUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """全局配置对象（唯一真实来源）"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
        case_sensitive=True,
    )

    # --------------------------------------------------------------------------
    # 1. General (通用)
    # --------------------------------------------------------------------------
    PROJECT_NAME: str = "Identity Linking Service"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: Literal["local", "dev", "prod"] = "local"
    DEBUG: bool = False

    # 密钥 (生产环境强制要求高强度随机串)
    # 用于 Access Token 签名
    SECRET_KEY: str | None = None

    # CORS 配置（Pydantic 会自动解析 JSON 字符串列表）
    BACKEND_CORS_ORIGINS: list[AnyHttpUrl] = []

    # --------------------------------------------------------------------------
    # 2. Database (PostgreSQL)
    # --------------------------------------------------------------------------
    POSTGRES_SERVER: str | None = None
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str | None = None
    POSTGRES_PASSWORD: str | None = None
    POSTGRES_DB: str | None = None

    # 连接池配置 (Pool Settings)，SQLite 下忽略
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_PRE_PING: bool = True
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    # 完整 DSN 覆盖（可选）
    SQLALCHEMY_DATABASE_URI: str | None = None

    # --------------------------------------------------------------------------
    # 3. Logging (Loguru)
    # --------------------------------------------------------------------------
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_JSON_FORMAT: bool = False
    LOG_FILE_ENABLED: bool = False
    LOG_DIR: str = "logs"
    LOG_ROTATION: str = "1 hour"
    LOG_RETENTION: str = "7 days"
    LOG_COMPRESSION: str = "zip"
    LOG_DIAGNOSE: bool = True  # 生产环境建议 False，避免变量值进入日志

    # --------------------------------------------------------------------------
    # 4. Redis Settings (Refresh Token 存储)
    # --------------------------------------------------------------------------
    REDIS_URL: str = "redis://localhost:6379/0"

    # --------------------------------------------------------------------------
    # 5. Session Issuance (JWT)
    # --------------------------------------------------------------------------
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    ALGORITHM: str = "HS256"

    # --------------------------------------------------------------------------
    # 6. Federated Sign-In (Google / Apple)
    # --------------------------------------------------------------------------
    # Google: 远程 tokeninfo 校验，aud 必须命中白名单 (Web / iOS / Android client id)
    GOOGLE_TOKENINFO_URL: str = "https://oauth2.googleapis.com/tokeninfo"
    GOOGLE_ALLOWED_AUDIENCES: list[str] = []
    GOOGLE_ISSUERS: list[str] = ["https://accounts.google.com", "accounts.google.com"]

    # Apple: 本地 JWKS 验签，aud 必须命中白名单 (Service ID / Bundle ID)
    APPLE_JWKS_URL: str = "https://appleid.apple.com/auth/keys"
    APPLE_ALLOWED_AUDIENCES: list[str] = []
    APPLE_ISSUER: str = "https://appleid.apple.com"

    # 三方出站请求超时 (秒)
    OAUTH_HTTP_TIMEOUT: float = 5.0

    # exp 校验允许的时钟偏差 (秒)
    OAUTH_CLOCK_SKEW_SECONDS: int = 60

    # 重复登录未携带 email 时 ProviderLink.email 的处理策略
    # preserve: 保留上次快照；clear: 置空
    OAUTH_LINK_EMAIL_POLICY: Literal["preserve", "clear"] = "preserve"

    # --------------------------------------------------------------------------
    # Properties (便捷属性)
    # --------------------------------------------------------------------------
    @property
    def is_production(self) -> bool:
        """是否为生产环境"""
        return self.ENVIRONMENT == "prod"

    @property
    def is_debug(self) -> bool:
        """是否启用调试模式（仅在非生产环境有效）"""
        return self.DEBUG and not self.is_production

    @property
    def is_sqlite(self) -> bool:
        """当前 DSN 是否指向 SQLite (测试/本地调试)"""
        return str(self.SQLALCHEMY_DATABASE_URI or "").startswith("sqlite")

    # --------------------------------------------------------------------------
    # Validators
    # --------------------------------------------------------------------------
    @model_validator(mode="after")
    def _validate_and_build_db_uri(self) -> "Settings":
        """验证必填项并构建数据库连接串。"""
        # 1. 校验 SECRET_KEY
        if not self.SECRET_KEY:
            raise ValueError("SECRET_KEY 必须在 .env 中设置")

        if self.ENVIRONMENT == "prod" and len(self.SECRET_KEY) < 32:
            raise ValueError("生产环境 SECRET_KEY 长度必须 >= 32 字符")

        # 2. 如果 env 直接提供了 DSN，则优先使用
        if self.SQLALCHEMY_DATABASE_URI:
            return self

        # 3. 否则检查 POSTGRES_* 字段是否齐全
        missing_fields: list[str] = []
        required_pg_fields = [
            "POSTGRES_SERVER",
            "POSTGRES_USER",
            "POSTGRES_PASSWORD",
            "POSTGRES_DB",
        ]

        for field in required_pg_fields:
            if not getattr(self, field):
                missing_fields.append(field)

        if missing_fields:
            raise ValueError(
                f"缺少数据库环境变量，无法构建 DSN: {', '.join(missing_fields)}"
            )

        # 4. 自动组装 DSN
        self.SQLALCHEMY_DATABASE_URI = str(
            MultiHostUrl.build(
                scheme="postgresql+asyncpg",
                username=self.POSTGRES_USER,  # type: ignore[arg-type]
                password=self.POSTGRES_PASSWORD,  # type: ignore[arg-type]
                host=self.POSTGRES_SERVER,  # type: ignore[arg-type]
                port=self.POSTGRES_PORT,
                path=self.POSTGRES_DB,  # type: ignore[arg-type]
            )
        )

        return self


# 单例配置对象
# 配置加载失败时，Pydantic 会抛出 ValidationError，包含详细错误信息
settings = Settings()
