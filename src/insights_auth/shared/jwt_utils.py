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

import math
import time
import logging
from typing import Mapping, Any, Optional

from jose import jwt, exceptions

from insights_auth.shared.exceptions import IdentityException, InvalidToken

try:
    from google.oauth2 import id_token
    from google.auth.transport import requests as google_requests
except ImportError:
    id_token = None
    google_requests = None

logger = logging.getLogger(__name__)

GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


def mask_token(token: Optional[str], visible: int = 8) -> str:
    """Loggable form of a credential: a short prefix and the length."""
    if not token:
        return "<none>"
    return f"{token[:visible]}...({len(token)} chars)"


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Returns the token of an `Authorization: Bearer <token>` header, else None."""
    if not authorization:
        return None
    try:
        auth_type, creds = authorization.split(" ", 1)
    except ValueError:
        return None
    if auth_type.lower() != "bearer":
        return None
    creds = creds.strip()
    return creds or None


def decode_unverified_claims(token: str) -> dict:
    """
    Decodes a compact JWT payload WITHOUT verifying its signature.

    The result is an untrusted carrier of claims. Callers that make an
    authorization decision must verify the token elsewhere.
    """
    try:
        claims = jwt.get_unverified_claims(token)
    except exceptions.JWTError as e:
        logger.info(f"Could not decode token {mask_token(token)}: {e}")
        raise InvalidToken("Malformed signed token") from e
    if not isinstance(claims, dict):
        raise InvalidToken("Malformed signed token")
    return claims


def parse_expiry(raw_exp: Any) -> float:
    """The `exp` claim in epoch seconds. Anything but a finite number is an invalid token."""
    if isinstance(raw_exp, bool):
        raise InvalidToken("Token expiration claim is not a number")
    try:
        value = float(raw_exp)
    except (TypeError, ValueError) as e:
        raise InvalidToken("Token expiration claim is not a number") from e
    if not math.isfinite(value):
        raise InvalidToken("Token expiration claim is not a finite number")
    return value


def check_token_expiration(decoded_jwt: Mapping[str, Any], threshold: int = 0, require_exp: bool = False):
    current_time = time.time()
    raw_exp = decoded_jwt.get("exp")
    if raw_exp is None:
        if require_exp:
            raise IdentityException(status_code=401, detail="Token does not have an expiration claim")
        return
    expire_time = parse_expiry(raw_exp)
    if current_time > expire_time - threshold:
        raise IdentityException(
            status_code=401, detail="Token expired or nearing expiration."
        )


def verify_google_id_token(token: str, audience: str) -> dict:
    """Full signature, audience and expiry verification of a Google ID token."""
    if not id_token or not google_requests:
        raise ImportError("google-auth library required for verify_google_id_token. pip install insights-auth[google]")
    try:
        claims = id_token.verify_oauth2_token(token, google_requests.Request(), audience=audience)
    except ValueError as e:
        logger.info(f"Google ID token verification failed: {e}")
        raise InvalidToken(f"Invalid Google token ({e})") from e
    if claims.get("iss") not in GOOGLE_ISSUERS:
        raise InvalidToken("Invalid Google token issuer")
    return claims
