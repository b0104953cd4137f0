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
Identity Normalizer

Turns a provider credential into the canonical `Identity`.

TRUST BOUNDARY: `normalize_from_signed_token` does NOT verify the token
signature. On the client the signed token is only a carrier of claims for
display and for persisting the login. The server-side middleware re-validates
every bearer token it receives (see `shared.validators`), and that check is
what grants access. Do not drop the server-side check because this decode
"already happened".
"""

import logging
from typing import Any, Mapping

from pydantic import ValidationError

from insights_auth.shared.exceptions import InvalidToken
from insights_auth.shared.jwt_utils import decode_unverified_claims, mask_token, parse_expiry
from insights_auth.shared.models import Identity, Provider

logger = logging.getLogger(__name__)

DEFAULT_NAME = "User"


def placeholder_email(user_id: Any, provider: Provider) -> str:
    return f"user_{user_id}@{provider.value}.local"


def normalize_from_signed_token(token: str, provider: Provider = Provider.GOOGLE) -> Identity:
    claims = decode_unverified_claims(token)
    email = claims.get("email")
    if not email:
        logger.warning(f"Signed token {mask_token(token)} has no email claim.")
        raise InvalidToken("Invalid token: missing email")

    exp = claims.get("exp")
    try:
        expiry_ms = int(parse_expiry(exp) * 1000) if exp is not None else None
        return Identity(
            id=claims.get("sub") or email,
            email=email,
            name=claims.get("name") or DEFAULT_NAME,
            picture_url=claims.get("picture"),
            provider=provider,
            access_token=token,
            token_expiry_ms=expiry_ms,
        )
    except (TypeError, ValueError, OverflowError, ValidationError) as e:
        raise InvalidToken(f"Invalid token claims: {e}") from e


def normalize_from_provider_profile(profile: Mapping[str, Any], access_token: str,
                                    provider: Provider = Provider.GITHUB) -> Identity:
    """
    Maps a provider profile (the exchange endpoint result, or a raw GitHub
    `/user` document) to an Identity. The flow never supplies an expiry.
    """
    user_id = profile.get("github_id", profile.get("id"))
    if user_id is None or user_id == "":
        raise InvalidToken("Provider profile has no user id")
    email = profile.get("email") or placeholder_email(user_id, provider)
    try:
        return Identity(
            id=user_id,
            email=email,
            name=profile.get("login") or profile.get("name") or DEFAULT_NAME,
            picture_url=profile.get("avatar_url"),
            provider=provider,
            access_token=access_token,
        )
    except ValidationError as e:
        raise InvalidToken(f"Invalid provider profile: {e}") from e
