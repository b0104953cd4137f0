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
Flask Identity Middleware

This module provides a Flask-compatible authentication middleware that runs
the same IdentityValidator chain as the FastAPI middleware.
"""

import logging
from typing import Iterable, Optional, List

from asgiref.sync import async_to_sync
from flask import Flask, request, g, abort, jsonify
from werkzeug.local import LocalProxy

from insights_auth.shared.exceptions import IdentityException
from insights_auth.shared.models import AuthenticatedPrincipal
from insights_auth.shared.validators import IdentityValidator


def get_current_user() -> Optional[AuthenticatedPrincipal]:
    """Helper function to get the current principal from Flask's global context."""
    return g.get("user")

current_user: "AuthenticatedPrincipal" = LocalProxy(get_current_user) # type: ignore

__all__ = ["FlaskIdentifyMiddleware", "current_user", "abort_with"]

logger = logging.getLogger(__name__)


def abort_with(e: IdentityException):
    response = jsonify(e.to_dict())
    response.status_code = e.status_code
    abort(response)


class FlaskIdentifyMiddleware:
    """
    Flask-compatible middleware to authenticate each request.
    """

    def __init__(self, app: Optional[Flask] = None, validators: List[IdentityValidator] = None,
                 skip_paths: Iterable[str] = ()):
        self.validators = validators if validators is not None else []
        self.skip_paths = frozenset(skip_paths)
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask):
        app.before_request(self._before_request_handler)

    def _before_request_handler(self):
        """
        Handler executed before each request to authenticate it.
        """
        g.user = None
        if request.path in self.skip_paths or request.method == "OPTIONS":
            return
        # validators are coroutines; Flask views run synchronously
        async_to_sync(self._validate_request)()

    async def _validate_request(self):
        for validator in self.validators:
            validator_name = validator.__class__.__name__
            logger.debug(f"Attempting Flask validation with {validator_name}.")
            try:
                principal = await validator.validate(request)
            except IdentityException as e:
                logger.warning(f"IdentityException from {validator_name}: {e.detail}")
                abort_with(e)
            except Exception as e:
                logger.error(f"Error during Flask validation with {validator_name}: {e}", exc_info=True)
                abort_with(IdentityException(status_code=500, detail="Internal server error during authentication."))
            if principal:
                logger.info(f"Flask validation succeeded with {validator_name} for {principal.email}.")
                g.user = principal
                return
            logger.debug(f"No credentials for {validator_name}.")

        logger.debug("Unauthenticated Flask request.")
