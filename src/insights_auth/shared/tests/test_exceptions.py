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

# shared/tests/test_exceptions.py
import pytest

from insights_auth.shared.exceptions import (
    REASONS,
    AuthorizationDenied,
    ConfigurationMissing,
    ExchangeFailed,
    IdentityException,
    InvalidToken,
    ProfileFetchFailed,
)


@pytest.mark.parametrize("error_cls", [
    InvalidToken, ExchangeFailed, ProfileFetchFailed, AuthorizationDenied, ConfigurationMissing,
])
def test_every_kind_is_registered_by_reason(error_cls):
    assert REASONS[error_cls.reason] is error_cls
    rebuilt = REASONS[error_cls.reason]("message")
    assert rebuilt.to_dict()["reason"] == error_cls.reason


def test_authorization_denied():
    e = AuthorizationDenied("GitHub OAuth error: access_denied")

    assert e.status_code == 401
    assert e.retryable
    assert e.to_dict() == {
        "error": "Unauthorized",
        "message": "GitHub OAuth error: access_denied",
        "reason": "authorization_denied",
    }


def test_plain_identity_exception_body():
    e = IdentityException(status_code=400, detail="Unknown provider", hint="Use google or github")

    assert e.to_dict() == {"error": "Bad Request", "message": "Unknown provider", "hint": "Use google or github"}
    assert not e.retryable
