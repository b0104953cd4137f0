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
from typing import Any, Mapping, Optional

from insights_auth.client.code_flow import FlowState
from insights_auth.client.session import AuthSession
from insights_auth.shared.exceptions import AuthorizationDenied, IdentityException, InvalidToken
from insights_auth.shared.models import Identity
from insights_auth.shared.normalizer import normalize_from_signed_token

logger = logging.getLogger(__name__)


class GoogleCredentialFlow:
    """
    Google Sign-In: the widget hands over a signed ID token directly.

    One synchronous step, IDLE -> AUTHENTICATED or IDLE -> FAILED. There is no
    network hop here; the resource server verifies the token on every call.
    """

    def __init__(self, session: AuthSession):
        self.session = session
        self.state = FlowState.IDLE
        self.error: Optional[IdentityException] = None

    def _fail(self, e: IdentityException) -> None:
        self.state = FlowState.FAILED
        self.error = e
        self.session.fail(e.detail)

    def complete(self, credential_response: Mapping[str, Any]) -> Optional[Identity]:
        """
        Args:
            credential_response: The widget's success payload, `{"credential": <ID token>, ...}`.
        """
        self.state = FlowState.IDLE
        self.error = None

        credential = credential_response.get("credential") if credential_response else None
        if not credential:
            self._fail(InvalidToken("No credential received from Google"))
            return None

        try:
            identity = normalize_from_signed_token(credential)
        except InvalidToken as e:
            self._fail(e)
            return None

        self.session.sign_in(identity)
        self.state = FlowState.AUTHENTICATED
        return identity

    def fail(self, reason: Optional[str] = None) -> None:
        """Called when the widget itself reports an error."""
        self._fail(AuthorizationDenied(f"Google login failed: {reason or 'unknown error'}"))
