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
from typing import Iterable, List, Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from insights_auth.shared.validators import IdentityValidator
from insights_auth.shared.exceptions import IdentityException
from insights_auth.shared.models import AuthenticatedPrincipal

logger = logging.getLogger(__name__)


def rejection_response(e: IdentityException) -> JSONResponse:
    return JSONResponse(status_code=e.status_code, content=e.to_dict())


async def identity_exception_handler(request: Request, exc: IdentityException) -> JSONResponse:
    return rejection_response(exc)


def add_exception_handlers(app) -> None:
    """Answers IdentityException raised by endpoints and dependencies such as `require_auth`."""
    app.add_exception_handler(IdentityException, identity_exception_handler)


class IdentifyMiddleware(BaseHTTPMiddleware):
    """
    Middleware to authenticate each request in a FastAPI application.

    Validators run in order, the first one returning a principal wins. A
    validator raising IdentityException ends the request with that rejection.
    Requests without credentials continue with `request.state.user = None`;
    protect endpoints with the `require_auth` dependency.
    """

    def __init__(self, app, validators: List[IdentityValidator], skip_paths: Iterable[str] = ()):
        super().__init__(app)
        self.validators = validators
        self.skip_paths = frozenset(skip_paths)

    async def dispatch(self, request: Request, call_next):
        request.state.user = None
        if request.url.path in self.skip_paths or request.method == "OPTIONS":
            return await call_next(request)

        for validator in self.validators:
            validator_name = validator.__class__.__name__
            logger.debug(f"Attempting validation with {validator_name}.")
            try:
                principal: Optional[AuthenticatedPrincipal] = await validator.validate(request)
                if principal:
                    logger.info(f"Validation succeeded with {validator_name} for {principal.email} ({principal.provider.value}).")
                    request.state.user = principal
                    return await call_next(request)
                logger.debug(f"No credentials for {validator_name}.")
            except IdentityException as e:
                logger.warning(f"IdentityException from {validator_name}: {e.detail}")
                # BaseHTTPMiddleware sits outside the app's exception handlers,
                # so the rejection has to be answered here.
                return rejection_response(e)
            except Exception as e:
                logger.error(f"Error during validation with {validator_name}: {e}", exc_info=True)
                return rejection_response(
                    IdentityException(status_code=500, detail="Internal server error during authentication.")
                )

        logger.debug("Unauthenticated request.")
        return await call_next(request)
