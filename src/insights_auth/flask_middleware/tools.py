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
from functools import wraps

from flask import g

from insights_auth.flask_middleware.flask_identify import abort_with
from insights_auth.shared.validators import unauthenticated

logger = logging.getLogger(__name__)


def require_auth(f):
    """
    Flask decorator to require an authenticated principal.

    Usage:
        @app.route("/api/stats")
        @require_auth
        def stats():
            # g.user is guaranteed to be an AuthenticatedPrincipal
            return jsonify(user=g.user.email)
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not g.get("user"):
            logger.warning("require_auth: no credentials, aborting 401.")
            abort_with(unauthenticated())
        return f(*args, **kwargs)
    return decorated_function
