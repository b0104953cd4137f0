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

# fastapi_middleware/tests/test_identify_middleware.py
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import Depends, FastAPI
from starlette.testclient import TestClient

from insights_auth.fastapi_middleware.fastapi_identify import IdentifyMiddleware, add_exception_handlers
from insights_auth.fastapi_middleware.tools import get_current_user, require_auth
from insights_auth.shared.exceptions import IdentityException
from insights_auth.shared.models import AuthenticatedPrincipal, Provider
from insights_auth.shared.validators import BearerTokenValidator, StaticAPIKeyValidator


@pytest.fixture
def principal():
    return AuthenticatedPrincipal(email="alice@example.com", name="Alice", id="g-1",
                                  provider=Provider.GOOGLE, token="token")


def make_validator(spec, result=None, error=None):
    validator = MagicMock(spec=spec)
    validator.validate = AsyncMock(return_value=result, side_effect=error)
    return validator


def make_app(validators):
    app = FastAPI()
    app.add_middleware(IdentifyMiddleware, validators=validators, skip_paths=["/health"])
    add_exception_handlers(app)

    @app.get("/whoami")
    async def whoami(user: Optional[AuthenticatedPrincipal] = Depends(get_current_user)):
        return {"email": user.email if user else None}

    @app.get("/protected")
    async def protected(user: AuthenticatedPrincipal = Depends(require_auth)):
        return {"email": user.email, "provider": user.provider.value}

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    return app


def test_first_principal_wins(principal):
    bearer = make_validator(BearerTokenValidator, result=principal)
    api_key = make_validator(StaticAPIKeyValidator)
    client = TestClient(make_app([bearer, api_key]))

    response = client.get("/protected")

    assert response.status_code == 200
    assert response.json() == {"email": "alice@example.com", "provider": "google"}
    api_key.validate.assert_not_called()


def test_falls_through_to_next_validator(principal):
    bearer = make_validator(BearerTokenValidator)
    api_key = make_validator(StaticAPIKeyValidator, result=principal)
    client = TestClient(make_app([bearer, api_key]))

    assert client.get("/protected").status_code == 200
    bearer.validate.assert_called_once()


def test_no_credentials_on_public_route():
    client = TestClient(make_app([make_validator(BearerTokenValidator), make_validator(StaticAPIKeyValidator)]))

    response = client.get("/whoami")

    assert response.status_code == 200
    assert response.json() == {"email": None}


def test_no_credentials_on_protected_route():
    client = TestClient(make_app([make_validator(BearerTokenValidator)]))

    response = client.get("/protected")

    assert response.status_code == 401
    body = response.json()
    assert body["error"] == "Unauthorized"
    assert body["message"] == "Missing authentication credentials (OAuth token or API Key)"
    assert "X-API-Key" in body["hint"]


def test_identity_exception_is_answered_by_middleware():
    bearer = make_validator(BearerTokenValidator, error=IdentityException(status_code=400, detail="Missing X-User-Provider header"))
    api_key = make_validator(StaticAPIKeyValidator)
    client = TestClient(make_app([bearer, api_key]))

    response = client.get("/whoami")

    assert response.status_code == 400
    assert response.json() == {"error": "Bad Request", "message": "Missing X-User-Provider header"}
    api_key.validate.assert_not_called()


def test_unexpected_validator_error():
    bearer = make_validator(BearerTokenValidator, error=RuntimeError("boom"))
    client = TestClient(make_app([bearer]))

    response = client.get("/whoami")

    assert response.status_code == 500
    assert response.json()["message"] == "Internal server error during authentication."


def test_skip_paths_bypass_validation():
    bearer = make_validator(BearerTokenValidator, error=RuntimeError("boom"))
    client = TestClient(make_app([bearer]))

    assert client.get("/health").status_code == 200
    bearer.validate.assert_not_called()
