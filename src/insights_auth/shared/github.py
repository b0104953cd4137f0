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

import logging
from typing import Optional, Any, Dict

import httpx

from insights_auth.shared.config import GITHUB_API_URL, GITHUB_OAUTH_URL, ServerSettings
from insights_auth.shared.exceptions import (
    ConfigurationMissing,
    ExchangeFailed,
    ProfileFetchFailed,
)
from insights_auth.shared.jwt_utils import mask_token

logger = logging.getLogger(__name__)

GITHUB_API_VERSION = "2022-11-28"


class GitHubOAuthClient:
    """
    Confidential side of the GitHub authorization-code flow.

    Holds the client secret, so it must only ever run on the server.
    """

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        oauth_url: str = GITHUB_OAUTH_URL,
        api_url: str = GITHUB_API_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            client_id: OAuth App client id.
            client_secret: OAuth App client secret.
            oauth_url: Base of the authorize/access_token endpoints.
            api_url: Base of the REST API serving `/user`.
            timeout: Bound, in seconds, applied to every outbound call.
            transport: Optional httpx transport (tests use `httpx.MockTransport`).
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.oauth_url = oauth_url.rstrip("/")
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: ServerSettings, **kwargs) -> "GitHubOAuthClient":
        secret = settings.github_client_secret
        return cls(
            client_id=settings.github_client_id,
            client_secret=secret.get_secret_value() if secret else None,
            oauth_url=settings.github_oauth_url,
            api_url=settings.github_api_url,
            timeout=settings.verification_timeout,
            **kwargs,
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def exchange_code(self, code: str) -> str:
        """Exchanges a one-time authorization code for an access token."""
        if not self.client_id or not self.client_secret:
            logger.error("GitHub OAuth credentials not configured")
            raise ConfigurationMissing("GitHub OAuth not configured")

        logger.info("GitHub OAuth: exchanging code for access token...")
        async with self._client() as client:
            try:
                response = await client.post(
                    f"{self.oauth_url}/access_token",
                    json={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "code": code,
                    },
                    headers={"Accept": "application/json"},
                )
                response.raise_for_status()
                data = response.json()
            except httpx.TimeoutException as e:
                logger.error(f"GitHub token exchange timed out: {e}")
                raise ExchangeFailed("Token exchange timed out", status_code=500) from e
            except (httpx.HTTPError, ValueError) as e:
                logger.error(f"GitHub token exchange failed: {e}")
                raise ExchangeFailed(f"Failed to exchange code for access token: {e}", status_code=500) from e

        if not isinstance(data, dict):
            raise ExchangeFailed("Unexpected token exchange response", status_code=500)

        if data.get("error"):
            # e.g. bad_verification_code for an expired or already used code
            logger.warning(f"GitHub OAuth error response: {data.get('error')} {data.get('error_description')}")
            raise ExchangeFailed(f"OAuth exchange failed: {data.get('error_description') or data['error']}")

        access_token = data.get("access_token")
        if not access_token:
            logger.warning("GitHub OAuth: no access token in response")
            raise ExchangeFailed("No access token received from GitHub")

        logger.info(f"Access token received ({mask_token(access_token)}).")
        return access_token

    async def fetch_profile(self, access_token: str) -> Dict[str, Any]:
        """
        Fetches the `/user` profile. The provider's answer is also the validity
        check of the token: a 4xx is a rejection (401), anything else that
        fails is a server side failure (500).
        """
        async with self._client() as client:
            try:
                response = await client.get(
                    f"{self.api_url}/user",
                    headers={
                        "Authorization": f"Bearer {access_token}",
                        "Accept": "application/vnd.github+json",
                        "X-GitHub-Api-Version": GITHUB_API_VERSION,
                    },
                )
            except httpx.TimeoutException as e:
                logger.error(f"GitHub user info fetch timed out: {e}")
                raise ProfileFetchFailed("GitHub user info fetch timed out") from e
            except httpx.HTTPError as e:
                logger.error(f"GitHub user info fetch failed: {e}")
                raise ProfileFetchFailed(f"Failed to fetch user info from GitHub: {e}") from e

        if 400 <= response.status_code < 500:
            logger.info(f"GitHub rejected token {mask_token(access_token)} with {response.status_code}")
            raise ProfileFetchFailed("GitHub token verification failed", status_code=401)
        if response.is_error:
            logger.error(f"GitHub user info fetch failed with status {response.status_code}")
            raise ProfileFetchFailed(f"GitHub answered {response.status_code}")

        try:
            profile = response.json()
        except ValueError as e:
            raise ProfileFetchFailed("GitHub returned an invalid profile document") from e
        if not isinstance(profile, dict) or profile.get("id") is None:
            raise ProfileFetchFailed("GitHub returned an invalid profile document")
        return profile

    async def authenticate(self, code: str) -> Dict[str, Any]:
        """Runs both server hops and returns the consolidated exchange result."""
        access_token = await self.exchange_code(code)
        profile = await self.fetch_profile(access_token)
        logger.info(f"GitHub OAuth successful for: {profile.get('login')}")
        return {
            "success": True,
            "access_token": access_token,
            "github_id": profile.get("id"),
            "login": profile.get("login"),
            "email": profile.get("email"),
            "avatar_url": profile.get("avatar_url"),
            "name": profile.get("name"),
        }
