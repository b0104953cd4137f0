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
import asyncio
import logging
import secrets
from abc import ABC, abstractmethod
from typing import Optional, Any, List

from insights_auth.shared.config import ServerSettings
from insights_auth.shared.exceptions import (
    ConfigurationMissing,
    IdentityException,
    InvalidToken,
)
from insights_auth.shared.github import GitHubOAuthClient
from insights_auth.shared.jwt_utils import (
    check_token_expiration,
    decode_unverified_claims,
    extract_bearer_token,
    mask_token,
    verify_google_id_token,
)
from insights_auth.shared.models import AuthenticatedPrincipal, Provider
from insights_auth.shared.normalizer import placeholder_email

logger = logging.getLogger(__name__)

UNAUTHENTICATED_MESSAGE = "Missing authentication credentials (OAuth token or API Key)"
UNAUTHENTICATED_HINT = (
    "Include Authorization: Bearer <token> with an X-User-Provider header, "
    "or an X-API-Key header"
)

STATIC_KEY_EMAIL = "api-client"
STATIC_KEY_NAME = "API Client"


def unauthenticated() -> IdentityException:
    return IdentityException(status_code=401, detail=UNAUTHENTICATED_MESSAGE, hint=UNAUTHENTICATED_HINT)


class IdentityValidator(ABC):
    """
    Abstract base class for identity validators.
    """

    @abstractmethod
    async def validate(self, request: Any) -> Optional[AuthenticatedPrincipal]:
        """
        Validate the request's credentials.

        Returns None when the credential this validator handles is absent,
        a principal when it is valid, and raises IdentityException otherwise.

        Args:
            request: The incoming web framework request object (FastAPI or Flask).
        """
        pass


class TokenVerifier(ABC):
    """Verifies one provider's bearer token."""

    provider: Provider

    @abstractmethod
    async def verify(self, token: str) -> AuthenticatedPrincipal:
        pass


class GoogleTokenVerifier(TokenVerifier):
    """
    Verifies Google ID tokens.

    Without an audience the token is decoded locally and only its claims and
    `exp` are checked, there is no signature check. Configure the Google client
    id as `audience` to get full verification through google-auth.
    """

    provider = Provider.GOOGLE

    def __init__(self, audience: Optional[str] = None):
        self.audience = audience
        if not audience:
            logger.warning("GoogleTokenVerifier has no audience: Google tokens are decoded without signature verification.")

    async def verify(self, token: str) -> AuthenticatedPrincipal:
        if self.audience:
            # google-auth fetches certificates with a blocking HTTP client
            claims = await asyncio.to_thread(verify_google_id_token, token, self.audience)
        else:
            claims = decode_unverified_claims(token)
            check_token_expiration(claims)

        email = claims.get("email")
        if not email:
            raise InvalidToken("Invalid Google token structure")

        logger.info(f"Google token verified for: {email}")
        return AuthenticatedPrincipal(
            email=email,
            name=claims.get("name"),
            id=claims.get("sub"),
            provider=self.provider,
            token=token,
        )


class GitHubTokenVerifier(TokenVerifier):
    """Validates a GitHub access token by calling the GitHub `/user` endpoint."""

    provider = Provider.GITHUB

    def __init__(self, client: GitHubOAuthClient):
        self.client = client

    async def verify(self, token: str) -> AuthenticatedPrincipal:
        profile = await self.client.fetch_profile(token)
        logger.info(f"GitHub token verified for: {profile.get('login')}")
        return AuthenticatedPrincipal(
            email=profile.get("email") or placeholder_email(profile["id"], self.provider),
            name=profile.get("name") or profile.get("login"),
            id=profile["id"],
            provider=self.provider,
            token=token,
        )


class BearerTokenValidator(IdentityValidator):
    """
    Handles `Authorization: Bearer <token>` requests, dispatching on the
    `X-User-Provider` header.
    """

    def __init__(
        self,
        google: GoogleTokenVerifier,
        github: GitHubTokenVerifier,
        header_key: str = "Authorization",
        provider_header_key: str = "X-User-Provider",
    ):
        self.google = google
        self.github = github
        self.header_key = header_key
        self.provider_header_key = provider_header_key

    def _verifier_for(self, provider: Provider) -> TokenVerifier:
        if provider is Provider.GOOGLE:
            return self.google
        if provider is Provider.GITHUB:
            return self.github
        if provider is Provider.STATIC_KEY:
            raise IdentityException(status_code=400, detail="Unknown provider: API keys are sent in X-API-Key")
        raise AssertionError(f"Unhandled provider {provider!r}")

    async def validate(self, request: Any) -> Optional[AuthenticatedPrincipal]:
        token = extract_bearer_token(request.headers.get(self.header_key))
        if not token:
            return None

        provider_value = request.headers.get(self.provider_header_key)
        if not provider_value:
            raise IdentityException(status_code=400, detail=f"Missing {self.provider_header_key} header")

        try:
            provider = Provider(provider_value.strip().lower())
        except ValueError:
            logger.info(f"Bearer token {mask_token(token)} sent with unknown provider '{provider_value}'")
            raise IdentityException(status_code=400, detail="Unknown provider")

        return await self._verifier_for(provider).verify(token)


class StaticAPIKeyValidator(IdentityValidator):
    def __init__(
        self,
        api_key: Optional[str],
        header_key: str = "X-API-Key",
    ):
        self.api_key = api_key
        self.header_key = header_key

    async def validate(self, request: Any) -> Optional[AuthenticatedPrincipal]:
        key_from_header = request.headers.get(self.header_key)

        if not key_from_header:
            return None

        if not self.api_key:
            logger.error("An API key was presented but no API key is configured.")
            raise ConfigurationMissing("API key authentication is not configured")

        if not secrets.compare_digest(key_from_header.encode("utf-8"), self.api_key.encode("utf-8")):
            logger.warning(f"Invalid API key presented: {mask_token(key_from_header, visible=4)}")
            raise IdentityException(status_code=403, detail="Invalid API Key")

        return AuthenticatedPrincipal(
            email=STATIC_KEY_EMAIL,
            name=STATIC_KEY_NAME,
            id=STATIC_KEY_EMAIL,
            provider=Provider.STATIC_KEY,
            token=key_from_header,
        )


def build_validators(settings: ServerSettings, github_client: Optional[GitHubOAuthClient] = None) -> List[IdentityValidator]:
    """The validator chain in dispatch order: bearer token first, then API key."""
    if github_client is None:
        github_client = GitHubOAuthClient.from_settings(settings)
    return [
        BearerTokenValidator(
            google=GoogleTokenVerifier(audience=settings.google_client_id),
            github=GitHubTokenVerifier(github_client),
        ),
        StaticAPIKeyValidator(
            api_key=settings.api_key.get_secret_value() if settings.api_key else None,
        ),
    ]
