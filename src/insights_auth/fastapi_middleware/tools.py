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
FastAPI dependencies giving endpoints access to the authenticated principal.
"""

import logging
from typing import Optional

from fastapi import Request, Depends

from insights_auth.shared.models import AuthenticatedPrincipal
from insights_auth.shared.validators import unauthenticated

logger = logging.getLogger(__name__)


def get_current_user(request: Request) -> Optional[AuthenticatedPrincipal]:
    """
    FastAPI dependency to get the current principal, or None.

    Usage:
        @app.get("/public-data")
        async def get_public_data(
            user: Optional[AuthenticatedPrincipal] = Depends(get_current_user)
        ):
            ...
    """
    return getattr(request.state, "user", None)


def require_auth(
    user: Optional[AuthenticatedPrincipal] = Depends(get_current_user)
) -> AuthenticatedPrincipal:
    """
    FastAPI dependency to require an authenticated principal.

    Credential errors were already answered by the middleware; this is the
    catch-all for requests that carried no credentials at all.
    """
    if not user:
        logger.warning("require_auth: no credentials, rejecting with 401.")
        raise unauthenticated()
    return user
