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
from typing import Dict, Optional

from insights_auth.client.session_store import SessionStore
from insights_auth.shared.models import Identity

logger = logging.getLogger(__name__)


class AuthSession:
    """
    Owner of the signed-in identity on the client.

    Pass this object to every component that needs the current user. The
    identity only changes through `sign_in`, `sign_out` and `restore`.
    """

    def __init__(self, store: SessionStore):
        self.store = store
        self._identity: Optional[Identity] = None
        self.last_error: Optional[str] = None

    @property
    def identity(self) -> Optional[Identity]:
        if self._identity is not None and not self.store.is_valid(self._identity):
            logger.info(f"Session for {self._identity.email} expired.")
            self.sign_out()
        return self._identity

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None

    def restore(self) -> Optional[Identity]:
        """Restores a prior login at startup."""
        self._identity = self.store.load()
        if self._identity:
            logger.info(f"Restored session for {self._identity.email} ({self._identity.provider.value}).")
        return self._identity

    def sign_in(self, identity: Identity) -> Identity:
        self.store.save(identity)
        self._identity = identity
        self.last_error = None
        logger.info(f"Logged in with {identity.provider.value}: {identity.email}")
        return identity

    def sign_out(self) -> None:
        self._identity = None
        self.store.clear()
        self.last_error = None
        logger.info("Logged out.")

    def fail(self, message: str) -> None:
        """Records a login failure so the login surface can show it."""
        self.last_error = message
        logger.error(f"Login failed: {message}")

    def auth_headers(self) -> Dict[str, str]:
        identity = self.identity
        if identity is None:
            return {}
        return {
            "Authorization": f"Bearer {identity.access_token}",
            "X-User-Provider": identity.provider.value,
            "X-User-Email": identity.email,
        }
