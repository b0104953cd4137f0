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
Authentication error taxonomy.

Every error carries the HTTP status the framework adapters answer with, so a
failure raised deep inside a validator or a flow maps to exactly one response.
"""

from http import HTTPStatus
from typing import Optional


class IdentityException(Exception):
    """A rejection of the request's credentials, mapped to an HTTP response."""

    reason: Optional[str] = None
    retryable: bool = False

    def __init__(self, status_code: int, detail: str, hint: Optional[str] = None):
        self.status_code = status_code
        self.detail = detail
        self.hint = hint
        super().__init__(f"[{status_code}] {detail}")

    @property
    def error(self) -> str:
        try:
            return HTTPStatus(self.status_code).phrase
        except ValueError:
            return "Error"

    def to_dict(self) -> dict:
        body = {"error": self.error, "message": self.detail}
        if self.reason:
            body["reason"] = self.reason
        if self.hint:
            body["hint"] = self.hint
        return body


class InvalidToken(IdentityException):
    """Malformed token or missing required claims. Not retryable."""

    reason = "invalid_token"

    def __init__(self, detail: str = "Invalid token"):
        super().__init__(401, detail)


class ExchangeFailed(IdentityException):
    """
    The code-for-token hop failed.

    Retry by starting the authorization flow again, never by re-using the code.
    """

    reason = "exchange_failed"
    retryable = True

    def __init__(self, detail: str, status_code: int = 401):
        super().__init__(status_code, detail)


class ProfileFetchFailed(IdentityException):
    """An access token was obtained or presented but the profile lookup failed."""

    reason = "profile_fetch_failed"
    retryable = True

    def __init__(self, detail: str, status_code: int = 500):
        super().__init__(status_code, detail)


class AuthorizationDenied(IdentityException):
    """The provider redirected back with an `error` (consent declined or misconfiguration)."""

    reason = "authorization_denied"
    retryable = True

    def __init__(self, detail: str):
        super().__init__(401, detail)


class ConfigurationMissing(IdentityException):
    """A required client or server identifier is not configured."""

    reason = "configuration_missing"

    def __init__(self, detail: str):
        super().__init__(500, detail)


REASONS = {
    cls.reason: cls
    for cls in (InvalidToken, ExchangeFailed, ProfileFetchFailed, AuthorizationDenied, ConfigurationMissing)
}
