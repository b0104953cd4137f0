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

# shared/tests/test_token_utils.py
import time
from unittest.mock import patch

import pytest
from jose import jwt

from insights_auth.shared.exceptions import IdentityException, InvalidToken
from insights_auth.shared.jwt_utils import (
    check_token_expiration,
    decode_unverified_claims,
    extract_bearer_token,
    mask_token,
    parse_expiry,
    verify_google_id_token,
)


# Tests for `check_token_expiration`
def test_valid_token():
    decoded_jwt = {"exp": time.time() + 3600}
    try:
        check_token_expiration(decoded_jwt)
    except IdentityException:
        pytest.fail("IdentityException was raised for a valid token.")


def test_nearing_expiration_token():
    decoded_jwt = {"exp": time.time() + 200}
    with pytest.raises(IdentityException, match="Token expired or nearing expiration."):
        check_token_expiration(decoded_jwt, threshold=300)


def test_expired_token():
    decoded_jwt = {"exp": time.time() - 10}
    with pytest.raises(IdentityException, match="Token expired or nearing expiration."):
        check_token_expiration(decoded_jwt)


def test_missing_exp_claim():
    check_token_expiration({})
    with pytest.raises(IdentityException, match="Token does not have an expiration claim"):
        check_token_expiration({}, require_exp=True)


def test_non_numeric_exp_claim():
    with pytest.raises(InvalidToken):
        check_token_expiration({"exp": "soon"})


@pytest.mark.parametrize("exp", [float("inf"), float("-inf"), float("nan"), "1e400", True, None, [1]])
def test_parse_expiry_rejects_non_finite(exp):
    with pytest.raises(InvalidToken):
        parse_expiry(exp)


def test_parse_expiry():
    assert parse_expiry(1700000000) == 1700000000.0
    assert parse_expiry("1700000000.5") == 1700000000.5


def test_infinite_exp_claim():
    with pytest.raises(InvalidToken, match="finite"):
        check_token_expiration({"exp": float("inf")})


# Tests for `extract_bearer_token`
@pytest.mark.parametrize("header, expected", [
    ("Bearer abc", "abc"),
    ("bearer abc", "abc"),
    ("Basic some-creds", None),
    ("Bearer", None),
    ("Bearer   ", None),
    (None, None),
])
def test_extract_bearer_token(header, expected):
    assert extract_bearer_token(header) == expected


def test_mask_token():
    masked = mask_token("abcdefghijklmnop")
    assert masked.startswith("abcdefgh")
    assert "ijklmnop" not in masked
    assert mask_token(None) == "<none>"


def test_decode_unverified_claims():
    token = jwt.encode({"email": "a@example.com"}, "any-key", algorithm="HS256")
    assert decode_unverified_claims(token) == {"email": "a@example.com"}


def test_decode_garbage():
    with pytest.raises(InvalidToken, match="Malformed signed token"):
        decode_unverified_claims("a.b")


# Tests for `verify_google_id_token`
@patch("insights_auth.shared.jwt_utils.google_requests")
@patch("insights_auth.shared.jwt_utils.id_token")
def test_verify_google_id_token_success(mock_id_token, mock_google_requests):
    mock_id_token.verify_oauth2_token.return_value = {
        "iss": "https://accounts.google.com", "email": "a@example.com", "exp": time.time() + 3600,
    }
    claims = verify_google_id_token("valid-token", "client-id")
    assert claims["email"] == "a@example.com"
    assert mock_id_token.verify_oauth2_token.call_args.kwargs["audience"] == "client-id"


@patch("insights_auth.shared.jwt_utils.google_requests")
@patch("insights_auth.shared.jwt_utils.id_token")
def test_verify_google_id_token_invalid(mock_id_token, mock_google_requests):
    mock_id_token.verify_oauth2_token.side_effect = ValueError("Token has expired")
    with pytest.raises(InvalidToken, match="Invalid Google token"):
        verify_google_id_token("expired-token", "client-id")


@patch("insights_auth.shared.jwt_utils.google_requests")
@patch("insights_auth.shared.jwt_utils.id_token")
def test_verify_google_id_token_wrong_issuer(mock_id_token, mock_google_requests):
    mock_id_token.verify_oauth2_token.return_value = {"iss": "https://evil.example.com", "email": "a@example.com"}
    with pytest.raises(InvalidToken, match="issuer"):
        verify_google_id_token("token", "client-id")


@patch("insights_auth.shared.jwt_utils.id_token", None)
def test_verify_google_id_token_without_google_auth():
    with pytest.raises(ImportError):
        verify_google_id_token("token", "client-id")
