"""
File: app/domains/auth/linker.py
Description: 三方身份 -> 本地账号 解析 (Account Linker)

解析顺序：
1. 已有绑定: 按 (provider, provider_user_id) 查 ProviderLink，命中则刷新快照并返回其 User
2. 邮箱合并: 三方带了 email 时，只在"邮箱已验证"的有效用户中查找，命中则新建绑定；
   该用户在同一 provider 下已有其他身份时不合并，落到第 3 步
3. 新建账号: 以上都未命中，新建 User + ProviderLink

并发策略 (乐观插入)：
- 不依赖事务隔离级别，(provider, provider_user_id)、(user_id, provider) 与 users.email
  的唯一约束是最终裁判
- 任意一步触发 IntegrityError 即视为并发冲突：整体回滚，从第 1 步重跑一次
- 第二次仍冲突，或出现其他数据库错误 -> StorageFailureError
- 每次尝试要么整体 commit，要么整体回滚，不会留下半成品

本模块是唯一允许写入 ProviderLink 的代码路径。

Author: jinmozhe
Created: 2026-10-19
"""

from datetime import UTC, datetime
from typing import Any, Literal, NamedTuple

from loguru import logger
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import make_unusable_password_async
from app.db.models.provider_link import ProviderLink
from app.db.models.user import DEFAULT_USER_NAME, User
from app.domains.auth.exceptions import StorageConflictError, StorageFailureError
from app.domains.auth.providers.base import MAX_EMAIL_LENGTH, VerifiedIdentity
from app.domains.auth.repository import ProviderLinkRepository
from app.domains.auth.schemas import ProviderLinkCreate
from app.domains.users.repository import UserRepository
from app.domains.users.schemas import OAuthUserCreate
from app.utils.masking import mask_email, mask_identifier

EmailPolicy = Literal["preserve", "clear"]

# 与 users 表列宽保持一致
MAX_NAME_LENGTH = 100
MAX_AVATAR_LENGTH = 1024


class LinkResult(NamedTuple):
    user: User
    is_new_user: bool


class AccountLinker:
    """
    账号解析器。

    一个实例绑定一个 AsyncSession，事务边界 (commit / rollback) 由本类控制。
    """

    def __init__(self, session: AsyncSession, *, email_policy: EmailPolicy = "preserve"):
        self.session = session
        self.email_policy = email_policy
        self.user_repo = UserRepository(model=User, session=session)
        self.link_repo = ProviderLinkRepository(model=ProviderLink, session=session)

    async def resolve(self, identity: VerifiedIdentity) -> LinkResult:
        """
        解析三方身份对应的本地用户 (已 commit)。

        Raises:
            StorageFailureError: 数据库不可用，或冲突重试后仍失败
        """
        log = logger.bind(
            provider=identity.provider.value,
            sub=mask_identifier(identity.provider_user_id),
        )

        try:
            return await self._resolve_once(identity)
        except StorageConflictError:
            log.info("Concurrent first sign-in detected, re-reading provider link")

        try:
            return await self._resolve_once(identity)
        except StorageConflictError as exc:
            log.error("Provider link still conflicting after retry")
            raise StorageFailureError("unique constraint conflict after retry") from exc

    async def _resolve_once(self, identity: VerifiedIdentity) -> LinkResult:
        try:
            result = await self._run_steps(identity)
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise StorageConflictError(str(exc.orig)) from exc
        except StorageFailureError:
            await self.session.rollback()
            raise
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.opt(exception=exc).error("Account linking failed at storage layer")
            raise StorageFailureError(type(exc).__name__) from exc

        return result

    async def _run_steps(self, identity: VerifiedIdentity) -> LinkResult:
        log = logger.bind(
            provider=identity.provider.value,
            sub=mask_identifier(identity.provider_user_id),
        )

        # 超出列宽的邮箱既不能存，也不能作为合并依据
        if identity.email is not None and len(identity.email) > MAX_EMAIL_LENGTH:
            log.warning("Provider email exceeds column width, ignoring it")
            identity = identity.model_copy(
                update={"email": None, "email_verified": False}
            )

        # 1. 已有绑定 (常规路径)
        link = await self.link_repo.get_by_identity(
            identity.provider.value, identity.provider_user_id
        )
        if link is not None:
            user = await self.user_repo.get(link.user_id)
            if user is None:
                raise StorageFailureError(f"provider link {link.id} has no user")
            await self._refresh_snapshot(link, identity)
            log.bind(user_id=str(user.id)).info("Provider identity resolved by link")
            return LinkResult(user=user, is_new_user=False)

        # 2. 邮箱合并 (只认已验证邮箱；该用户在同一 provider 下不能已有绑定)
        if identity.email is not None:
            user = await self.user_repo.get_by_verified_email(identity.email)
            if user is not None and await self.link_repo.get_by_user_and_provider(
                user.id, identity.provider.value
            ):
                log.bind(user_id=str(user.id)).warning(
                    "Verified email owner already linked to another account "
                    "of this provider, creating a separate user"
                )
                user = None
            if user is not None:
                await self._create_link(user, identity)
                log.bind(
                    user_id=str(user.id), email=mask_email(identity.email)
                ).info("Provider identity linked to existing user by verified email")
                return LinkResult(user=user, is_new_user=False)

        # 3. 新建账号
        user = await self._create_user(identity)
        await self._create_link(user, identity)
        log.bind(user_id=str(user.id)).info("New user created from provider identity")
        return LinkResult(user=user, is_new_user=True)

    async def _refresh_snapshot(
        self, link: ProviderLink, identity: VerifiedIdentity
    ) -> None:
        """
        刷新绑定快照：只覆盖本次实际下发的字段，缺失字段保留上次的值。
        email 缺失时按 email_policy 处理。
        """
        # 赋值新 dict，JSON 列的原地修改不会被 ORM 追踪
        changes: dict[str, Any] = {
            "extra_data": {**(link.extra_data or {}), **identity.snapshot()}
        }

        if identity.email is not None:
            changes["email"] = identity.email
        elif self.email_policy == "clear":
            changes["email"] = None

        await self.link_repo.update(link, changes)

    async def _create_link(self, user: User, identity: VerifiedIdentity) -> ProviderLink:
        return await self.link_repo.create(
            ProviderLinkCreate(
                user_id=user.id,
                provider=identity.provider.value,
                provider_user_id=identity.provider_user_id,
                email=identity.email,
                extra_data=identity.snapshot(),
            )
        )

    async def _create_user(self, identity: VerifiedIdentity) -> User:
        email = identity.email
        # 邮箱已被其他账号占用 (含未验证 / 已注销账号) 时，新账号不写 email
        if email is not None and await self.user_repo.email_exists(email):
            email = None

        avatar = identity.avatar_url
        if avatar is not None and len(avatar) > MAX_AVATAR_LENGTH:
            avatar = None

        return await self.user_repo.create(
            OAuthUserCreate(
                name=(identity.display_name or DEFAULT_USER_NAME)[:MAX_NAME_LENGTH],
                email=email,
                email_verified_at=(
                    datetime.now(UTC)
                    if email is not None and identity.email_verified
                    else None
                ),
                avatar=avatar,
                hashed_password=await make_unusable_password_async(),
            )
        )
