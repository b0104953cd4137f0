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

"""
GitHub OAuth 2.0 authorization-code flow, client side.

    IDLE -> REDIRECTING -> AWAITING_EXCHANGE -> AUTHENTICATED

Any step may end in FAILED; retry with `begin()`, which starts from IDLE.

The client never talks to GitHub's token endpoint: the one-time code goes to
the resource server, which holds the client secret and answers with the
access token and the user's profile.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, Optional, Set
from urllib.parse import quote, urlencode

import httpx

from insights_auth.client.location import BrowserLocation, query_params, strip_query
from insights_auth.client.session import AuthSession
from insights_auth.shared.config import GITHUB_OAUTH_URL, GITHUB_SCOPE, ClientSettings
from insights_auth.shared.exceptions import (
    REASONS,
    AuthorizationDenied,
    ConfigurationMissing,
    ExchangeFailed,
    IdentityException,
)
from insights_auth.shared.models import Identity
from insights_auth.shared.normalizer import normalize_from_provider_profile

logger = logging.getLogger(__name__)

GITHUB_AUTHORIZE_URL = f"{GITHUB_OAUTH_URL}/authorize"
EXCHANGE_PATH = "/api/auth/github/callback"


class FlowState(str, Enum):
    IDLE = "idle"
    REDIRECTING = "redirecting"
    AWAITING_EXCHANGE = "awaiting_exchange"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


def build_authorization_url(authorize_endpoint: str, client_id: str, redirect_uri: str, scope: str) -> str:
    """
    The provider consent URL. `redirect_uri` must exactly match the one
    registered with the provider.
    """
    query = urlencode(
        {"client_id": client_id, "redirect_uri": redirect_uri, "scope": scope},
        quote_via=quote,
        safe="",
    )
    return f"{authorize_endpoint}?{query}"


class GitHubAuthorizationFlow:

    def __init__(
        self,
        session: AuthSession,
        location: BrowserLocation,
        exchange_url: str,
        client_id: Optional[str],
        redirect_uri: Optional[str],
        scope: str = GITHUB_SCOPE,
        authorize_endpoint: str = GITHUB_AUTHORIZE_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.session = session
        self.location = location
        self.exchange_url = exchange_url
        self.client_id = client_id
        self.redirect_uri = redirect_uri
        self.scope = scope
        self.authorize_endpoint = authorize_endpoint
        self.timeout = timeout
        self.transport = transport

        self.state = FlowState.IDLE
        self.error: Optional[IdentityException] = None
        self._consumed_codes: Set[str] = set()
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: ClientSettings, session: AuthSession, location: BrowserLocation, **kwargs):
        return cls(
            session=session,
            location=location,
            exchange_url=settings.backend_url.rstrip("/") + EXCHANGE_PATH,
            client_id=settings.github_client_id,
            redirect_uri=settings.github_redirect_uri,
            scope=settings.github_scope,
            timeout=settings.request_timeout,
            **kwargs,
        )

    def _fail(self, e: IdentityException) -> None:
        self.state = FlowState.FAILED
        self.error = e
        self.session.fail(e.detail)

    def reset(self) -> None:
        self.state = FlowState.IDLE
        self.error = None

    def begin(self) -> str:
        """Sends the client to the GitHub consent screen."""
        if self.state is FlowState.AWAITING_EXCHANGE:
            raise RuntimeError("An authorization code exchange is in progress.")
        self.reset()
        if not self.client_id:
            e = ConfigurationMissing("GitHub Client ID not configured")
            self._fail(e)
            raise e
        if not self.redirect_uri:
            e = ConfigurationMissing("GitHub redirect URI not configured")
            self._fail(e)
            raise e

        url = build_authorization_url(self.authorize_endpoint, self.client_id, self.redirect_uri, self.scope)
        logger.info(f"Redirecting to GitHub OAuth with URI: {self.redirect_uri}")
        self.state = FlowState.REDIRECTING
        self.location.assign(url)
        return url

    async def handle_redirect(self) -> Optional[Identity]:
        """
        Processes the redirect back from GitHub found in the current location.

        Returns the new Identity, or None when the location carries no
        `code`/`error` or when the flow failed (see `state` and `error`).
        The query string is stripped in every case, so a reload cannot replay
        the code.
        """
        href = self.location.href
        params = query_params(href)
        code, error = params.get("code"), params.get("error")
        if not code and not error:
            return None

        try:
            if error:
                description = params.get("error_description")
                logger.error(f"GitHub OAuth error: {error}" + (f" ({description})" if description else ""))
                self._fail(AuthorizationDenied(f"GitHub OAuth error: {description or error}"))
                return None
            return await self._exchange(code)
        finally:
            self.location.replace(strip_query(href))

    async def _exchange(self, code: str) -> Optional[Identity]:
        async with self._lock:
            if code in self._consumed_codes:
                logger.warning("Authorization code already used; not exchanging it again.")
                self._fail(ExchangeFailed("Authorization code already used"))
                return None
            self._consumed_codes.add(code)

            self.state = FlowState.AWAITING_EXCHANGE
            logger.info("Processing GitHub OAuth callback...")
            try:
                result = await self._post_code(code)
                identity = normalize_from_provider_profile(result, result["access_token"])
                self.session.sign_in(identity)
            except IdentityException as e:
                logger.error(f"GitHub authentication failed: {e.detail}")
                self._fail(e)
                return None
            except Exception as e:
                logger.error(f"GitHub authentication failed: {e}", exc_info=True)
                self._fail(ExchangeFailed(f"GitHub authentication failed: {e}", status_code=500))
                return None
            except BaseException:
                # cancelled: leave AWAITING_EXCHANGE so begin() can start over
                self._fail(ExchangeFailed("Code exchange interrupted", status_code=500))
                raise

            self.state = FlowState.AUTHENTICATED
            return identity

    async def _post_code(self, code: str) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.exchange_url, json={"code": code})
        except httpx.TimeoutException as e:
            raise ExchangeFailed("Code exchange timed out", status_code=500) from e
        except httpx.HTTPError as e:
            raise ExchangeFailed(f"Could not reach the exchange endpoint: {e}", status_code=500) from e

        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = None
            if not isinstance(body, dict):
                body = {}
            message = body.get("message") or body.get("details") or response.reason_phrase or f"HTTP {response.status_code}"
            error_cls = REASONS.get(body.get("reason"), ExchangeFailed)
            raise error_cls(f"GitHub authentication failed: {message}")

        try:
            data = response.json()
        except ValueError as e:
            raise ExchangeFailed("Invalid response from GitHub callback") from e
        if not isinstance(data, dict) or not data.get("access_token") or data.get("github_id") is None:
            raise ExchangeFailed("Invalid response from GitHub callback: missing token or user ID")
        return data
