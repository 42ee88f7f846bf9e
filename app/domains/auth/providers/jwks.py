"""
File: app/domains/auth/providers/jwks.py
Description: Apple 签名公钥缓存 (JWKS Key Material Cache)

策略：
1. get(kid): 只读内存，命中即返回
2. refresh(): 拉取完整 key set 并整体替换缓存
   并发调用合并为同一个进行中的拉取任务 (single-flight)，避免惊群
3. get_or_refresh(kid): 未命中时强制刷新一次，刷新后仍未命中则判定为未知签名密钥

不做 TTL 过期：Apple 轮换密钥后旧 key 会保留一段时间，
过期但仍有效的 key 留在缓存里无害，新 kid 出现时自然触发刷新。

Author: jinmozhe
Created: 2026-10-19
"""

import asyncio
from typing import Any

import httpx
from loguru import logger

from app.domains.auth.exceptions import UnknownSigningKeyError, VerificationFailedError


class AppleKeyCache:
    """
    进程内 JWKS 缓存，进程内唯一被并发修改的共享状态。
    """

    def __init__(self, http_client: httpx.AsyncClient, jwks_url: str):
        self.http_client = http_client
        self.jwks_url = jwks_url
        self._keys: dict[str, dict[str, Any]] = {}
        self._inflight: asyncio.Task[None] | None = None

    @property
    def key_ids(self) -> frozenset[str]:
        return frozenset(self._keys)

    def get(self, kid: str) -> dict[str, Any] | None:
        """返回缓存中的 JWK (dict)，不存在时返回 None"""
        return self._keys.get(kid)

    async def refresh(self) -> None:
        """
        重新拉取 JWKS。

        已有拉取在进行时直接等待同一个任务；
        shield 保证某个等待者被取消时，共享的拉取任务不会被一起取消。
        """
        task = self._inflight
        if task is None:
            task = asyncio.create_task(self._fetch_and_swap())
            task.add_done_callback(self._on_refresh_done)
            self._inflight = task
        await asyncio.shield(task)

    async def get_or_refresh(self, kid: str) -> dict[str, Any]:
        """
        获取签名公钥，未命中时最多刷新一次。

        Raises:
            UnknownSigningKeyError: 刷新后仍不存在该 kid
            VerificationFailedError: JWKS 拉取失败
        """
        key = self.get(kid)
        if key is not None:
            return key

        logger.bind(kid=kid).info("Apple signing key not cached, refreshing JWKS")
        await self.refresh()

        key = self.get(kid)
        if key is None:
            raise UnknownSigningKeyError(f"kid {kid!r} not in Apple JWKS after refresh")
        return key

    def _on_refresh_done(self, task: asyncio.Task[None]) -> None:
        if self._inflight is task:
            self._inflight = None
        # 所有等待者都被取消时，避免 "exception was never retrieved"
        if not task.cancelled():
            task.exception()

    async def _fetch_and_swap(self) -> None:
        try:
            response = await self.http_client.get(self.jwks_url)
        except httpx.HTTPError as exc:
            raise VerificationFailedError(f"JWKS request failed: {exc!r}") from exc

        if not response.is_success:
            raise VerificationFailedError(
                f"JWKS endpoint returned HTTP {response.status_code}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise VerificationFailedError("JWKS response is not JSON") from exc

        raw_keys = payload.get("keys") if isinstance(payload, dict) else None
        if not isinstance(raw_keys, list):
            raise VerificationFailedError("JWKS response has no 'keys' list")

        keys = {
            item["kid"]: item
            for item in raw_keys
            if isinstance(item, dict) and isinstance(item.get("kid"), str)
        }

        # 整体替换，读者不会看到半更新的 key set
        self._keys = keys
        logger.bind(key_count=len(keys)).info("Apple JWKS refreshed")
