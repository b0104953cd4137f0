#    Copyright 2025 FAO
#
#    Licensed under the Apache License, Version 2.0 (the "License");
#    you may not use this file except in compliance with the License.
#    You may obtain a copy of the License at
#
#        http://www.apache.org/licenses/LICENSE-2.0
#
#    Unless required by applicable law or agreed to in writing, software
#    distributed under the License is distributed on an "AS IS" BASIS,
#    WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#    See the License for the specific language governing permissions and
#    limitations under the License.
#
#    Author: Carlo Cancellieri (ccancellieri@gmail.com)
#    Company: FAO, Viale delle Terme di Caracalla, 00100 Rome, Italy
#    Contact: copyright@fao.org - http://fao.org/contact-us/terms/en/

# shared/tests/test_github_client.py
import json

import httpx
import pytest

from insights_auth.shared.exceptions import ConfigurationMissing, ExchangeFailed, ProfileFetchFailed
from insights_auth.shared.github import GitHubOAuthClient

PROFILE = {"id": 42, "login": "bob", "email": None, "avatar_url": "https://avatars/42", "name": "Bob"}


def make_client(handler, client_id="client-id", client_secret="client-secret"):
    return GitHubOAuthClient(
        client_id=client_id,
        client_secret=client_secret,
        transport=httpx.MockTransport(handler),
    )


def github_handler(token_body=None, user_status=200, user_body=None, calls=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        if request.url.path == "/login/oauth/access_token":
            return httpx.Response(200, json=token_body if token_body is not None else {"access_token": "gho_t1"})
        if request.url.path == "/user":
            return httpx.Response(user_status, json=user_body if user_body is not None else PROFILE)
        return httpx.Response(404)
    return handler


@pytest.mark.asyncio
async def test_exchange_code():
    calls = []
    client = make_client(github_handler(calls=calls))

    token = await client.exchange_code("abc123")

    assert token == "gho_t1"
    request = calls[0]
    assert request.method == "POST"
    assert request.headers["Accept"] == "application/json"
    assert json.loads(request.content) == {
        "client_id": "client-id", "client_secret": "client-secret", "code": "abc123",
    }


@pytest.mark.asyncio
async def test_exchange_without_configuration():
    calls = []
    client = make_client(github_handler(calls=calls), client_secret=None)

    with pytest.raises(ConfigurationMissing, match="GitHub OAuth not configured") as exc_info:
        await client.exchange_code("abc123")
    assert exc_info.value.status_code == 500
    assert calls == []


@pytest.mark.asyncio
async def test_exchange_provider_error():
    client = make_client(github_handler(token_body={
        "error": "bad_verification_code", "error_description": "The code passed is incorrect or expired.",
    }))

    with pytest.raises(ExchangeFailed, match="incorrect or expired") as exc_info:
        await client.exchange_code("used-code")
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_exchange_without_access_token():
    client = make_client(github_handler(token_body={"token_type": "bearer"}))

    with pytest.raises(ExchangeFailed, match="No access token") as exc_info:
        await client.exchange_code("abc123")
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_exchange_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ExchangeFailed) as exc_info:
        await make_client(handler).exchange_code("abc123")
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_fetch_profile():
    calls = []
    client = make_client(github_handler(calls=calls))

    profile = await client.fetch_profile("gho_t1")

    assert profile["id"] == 42
    assert calls[0].headers["Authorization"] == "Bearer gho_t1"
    assert calls[0].headers["Accept"] == "application/vnd.github+json"


@pytest.mark.asyncio
async def test_fetch_profile_rejected_token():
    client = make_client(github_handler(user_status=401, user_body={"message": "Bad credentials"}))

    with pytest.raises(ProfileFetchFailed) as exc_info:
        await client.fetch_profile("revoked")
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_fetch_profile_upstream_failure():
    client = make_client(github_handler(user_status=502, user_body={}))

    with pytest.raises(ProfileFetchFailed) as exc_info:
        await client.fetch_profile("gho_t1")
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_fetch_profile_timeout():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(ProfileFetchFailed, match="timed out") as exc_info:
        await make_client(handler).fetch_profile("gho_t1")
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_authenticate():
    result = await make_client(github_handler()).authenticate("abc123")

    assert result == {
        "success": True,
        "access_token": "gho_t1",
        "github_id": 42,
        "login": "bob",
        "email": None,
        "avatar_url": "https://avatars/42",
        "name": "Bob",
    }
