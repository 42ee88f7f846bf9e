"""
File: tests/unit/test_google_verifier.py
Description: Google ID Token 校验单元测试 (tokeninfo introspection)

Author: jinmozhe
Created: 2026-10-19
"""

from collections.abc import AsyncGenerator
from typing import Any

import httpx
import pytest
import pytest_asyncio
from pytest_httpx import HTTPXMock

from app.domains.auth.exceptions import (
    AudienceMismatchError,
    InvalidTokenError,
    VerificationFailedError,
)
from app.domains.auth.providers import (
    GoogleTokenVerifier,
    GoogleVerifierConfig,
    SocialProvider,
)

TOKENINFO_URL = "https://oauth2.googleapis.test/tokeninfo"
WEB_CLIENT_ID = "web-client.apps.googleusercontent.com"
IOS_CLIENT_ID = "ios-client.apps.googleusercontent.com"


def tokeninfo(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "iss": "https://accounts.google.com",
        "aud": WEB_CLIENT_ID,
        "sub": "110248495921238986420",
        "email": "Alice@Example.com",
        "email_verified": "true",
        "name": "Alice",
        "picture": "https://lh3.googleusercontent.com/a/alice",
        "locale": "en",
        "exp": "1760000000",
    }
    payload.update(overrides)
    return {key: value for key, value in payload.items() if value is not None}


@pytest_asyncio.fixture
async def google_verifier() -> AsyncGenerator[GoogleTokenVerifier, None]:
    async with httpx.AsyncClient() as outbound:
        yield GoogleTokenVerifier(
            GoogleVerifierConfig(
                allowed_audiences=frozenset({WEB_CLIENT_ID, IOS_CLIENT_ID}),
                tokeninfo_url=TOKENINFO_URL,
            ),
            outbound,
        )


@pytest.mark.asyncio
async def test_verify_maps_tokeninfo(
    google_verifier: GoogleTokenVerifier, httpx_mock: HTTPXMock
) -> None:
    """测试：tokeninfo 字段映射，email 归一化，字符串 "true" 解析为布尔"""
    httpx_mock.add_response(json=tokeninfo())

    identity = await google_verifier.verify("google-id-token")

    assert identity.provider == SocialProvider.GOOGLE
    assert identity.provider_user_id == "110248495921238986420"
    assert identity.email == "alice@example.com"
    assert identity.email_verified is True
    assert identity.display_name == "Alice"
    assert identity.avatar_url == "https://lh3.googleusercontent.com/a/alice"
    assert identity.attributes == {"locale": "en"}

    request = httpx_mock.get_request()
    assert request is not None
    assert request.method == "GET"
    assert request.url.params["id_token"] == "google-id-token"


@pytest.mark.asyncio
async def test_ios_client_audience_is_accepted(
    google_verifier: GoogleTokenVerifier, httpx_mock: HTTPXMock
) -> None:
    httpx_mock.add_response(json=tokeninfo(aud=IOS_CLIENT_ID))

    identity = await google_verifier.verify("google-id-token")

    assert identity.provider_user_id == "110248495921238986420"


@pytest.mark.asyncio
async def test_unverified_email_flag(
    google_verifier: GoogleTokenVerifier, httpx_mock: HTTPXMock
) -> None:
    httpx_mock.add_response(json=tokeninfo(email_verified="false"))

    identity = await google_verifier.verify("google-id-token")

    assert identity.email == "alice@example.com"
    assert identity.email_verified is False


@pytest.mark.asyncio
async def test_audience_mismatch(
    google_verifier: GoogleTokenVerifier, httpx_mock: HTTPXMock
) -> None:
    httpx_mock.add_response(json=tokeninfo(aud="someone-elses-client"))

    with pytest.raises(AudienceMismatchError):
        await google_verifier.verify("google-id-token")


@pytest.mark.asyncio
async def test_foreign_issuer(
    google_verifier: GoogleTokenVerifier, httpx_mock: HTTPXMock
) -> None:
    httpx_mock.add_response(json=tokeninfo(iss="https://evil.example.com"))

    with pytest.raises(InvalidTokenError):
        await google_verifier.verify("google-id-token")


@pytest.mark.asyncio
async def test_missing_sub(
    google_verifier: GoogleTokenVerifier, httpx_mock: HTTPXMock
) -> None:
    httpx_mock.add_response(json=tokeninfo(sub=None))

    with pytest.raises(InvalidTokenError):
        await google_verifier.verify("google-id-token")


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [400, 401, 500, 503])
async def test_non_2xx_is_verification_failure(
    google_verifier: GoogleTokenVerifier, httpx_mock: HTTPXMock, status_code: int
) -> None:
    """测试：tokeninfo 任何非 2xx 响应都视为 VerificationFailed"""
    httpx_mock.add_response(
        status_code=status_code, json={"error": "invalid_token"}
    )

    with pytest.raises(VerificationFailedError) as exc_info:
        await google_verifier.verify("google-id-token")

    # 三方原始错误不进入对外文案
    assert exc_info.value.message == "身份认证失败"


@pytest.mark.asyncio
async def test_network_failure(
    google_verifier: GoogleTokenVerifier, httpx_mock: HTTPXMock
) -> None:
    httpx_mock.add_exception(httpx.ConnectTimeout("connect timed out"))

    with pytest.raises(VerificationFailedError) as exc_info:
        await google_verifier.verify("google-id-token")

    # detail 中不能出现 token (请求 URL 带着 id_token)
    assert "google-id-token" not in exc_info.value.detail


@pytest.mark.asyncio
async def test_non_json_body(
    google_verifier: GoogleTokenVerifier, httpx_mock: HTTPXMock
) -> None:
    httpx_mock.add_response(text="<html>bad gateway</html>")

    with pytest.raises(VerificationFailedError):
        await google_verifier.verify("google-id-token")


@pytest.mark.asyncio
async def test_json_body_that_is_not_an_object(
    google_verifier: GoogleTokenVerifier, httpx_mock: HTTPXMock
) -> None:
    """测试：tokeninfo 返回 JSON 数组 -> 与非 JSON 一致，视为 VerificationFailed"""
    httpx_mock.add_response(json=["unexpected"])

    with pytest.raises(VerificationFailedError):
        await google_verifier.verify("google-id-token")


@pytest.mark.asyncio
async def test_overlong_email_is_treated_as_absent(
    google_verifier: GoogleTokenVerifier, httpx_mock: HTTPXMock
) -> None:
    httpx_mock.add_response(json=tokeninfo(email=f"{'a' * 250}@example.com"))

    identity = await google_verifier.verify("google-id-token")

    assert identity.email is None
    assert identity.email_verified is False
