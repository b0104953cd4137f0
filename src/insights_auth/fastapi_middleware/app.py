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
Resource server: GitHub code exchange plus the authenticated records API.
"""

import logging
import re
import time
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from insights_auth.fastapi_middleware.fastapi_identify import (
    IdentifyMiddleware,
    add_exception_handlers,
    rejection_response,
)
from insights_auth.fastapi_middleware.tools import require_auth
from insights_auth.shared.config import ServerSettings
from insights_auth.shared.exceptions import IdentityException
from insights_auth.shared.github import GitHubOAuthClient
from insights_auth.shared.models import AggregatedRecord, AuthenticatedPrincipal
from insights_auth.shared.records import InMemoryRecordStore, RecordStore
from insights_auth.shared.validators import build_validators

logger = logging.getLogger(__name__)

GITHUB_CALLBACK_PATH = "/api/auth/github/callback"
PUBLIC_PATHS = ("/health", GITHUB_CALLBACK_PATH)
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def bad_request(message: str) -> JSONResponse:
    return rejection_response(IdentityException(status_code=400, detail=message))


def query_int(value: Optional[str], default: int) -> int:
    """
    Leading integer of a query value. Missing, unparsable and zero values
    give `default`, so `?limit=0` and `?limit=abc` both mean the default.
    """
    match = _LEADING_INT.match(value or "")
    return (int(match.group(1)) if match else 0) or default


async def read_json_object(request: Request) -> Optional[dict]:
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def create_app(
    settings: Optional[ServerSettings] = None,
    record_store: Optional[RecordStore] = None,
    github_client: Optional[GitHubOAuthClient] = None,
) -> FastAPI:
    settings = settings or ServerSettings()
    record_store = record_store or InMemoryRecordStore()
    if github_client is None:
        github_client = GitHubOAuthClient.from_settings(settings)
    started = time.monotonic()

    app = FastAPI(title="Global Location Insights")
    app.state.records = record_store
    app.state.github = github_client

    app.add_middleware(
        IdentifyMiddleware,
        validators=build_validators(settings, github_client),
        skip_paths=PUBLIC_PATHS,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    add_exception_handlers(app)

    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": time.monotonic() - started,
        }

    @app.post(GITHUB_CALLBACK_PATH)
    async def github_callback(request: Request):
        body = await read_json_object(request)
        if body is None:
            return bad_request("Request body must be a JSON object")
        code = body.get("code")
        if not code or not isinstance(code, str):
            logger.error("GitHub callback: missing authorization code")
            return bad_request("Missing authorization code")
        try:
            return await github_client.authenticate(code)
        except IdentityException as e:
            return rejection_response(e)

    @app.post("/api/records", status_code=201)
    async def submit_record(request: Request, user: AuthenticatedPrincipal = Depends(require_auth)):
        body = await read_json_object(request)
        if body is None or not body.get("location") or not body.get("demographics"):
            return bad_request("Missing required fields: location, demographics")
        try:
            record = AggregatedRecord.model_validate(body)
        except ValidationError as e:
            return bad_request(f"Invalid record: {e.error_count()} validation error(s)")

        stored = await record_store.submit(record, user)
        logger.info(f"Record saved for {user.email} ({user.provider.value})")
        return {
            "success": True,
            "message": "Data validated and stored successfully",
            "recordId": stored.record_id,
            "timestamp": stored.timestamp.isoformat(),
            "authenticatedBy": user.provider.value,
        }

    @app.get("/api/records")
    async def list_records(limit: Optional[str] = None, skip: Optional[str] = None,
                           user: AuthenticatedPrincipal = Depends(require_auth)):
        # a negative limit asks for that many records, as a document store cursor does
        limit = min(abs(query_int(limit, DEFAULT_PAGE_SIZE)), MAX_PAGE_SIZE)
        skip = max(query_int(skip, 0), 0)
        records = await record_store.list(limit=limit, skip=skip)
        return {
            "success": True,
            "count": len(records),
            "total": await record_store.count(),
            "records": [r.model_dump(mode="json", by_alias=True) for r in records],
            "authenticatedAs": user.email,
            "provider": user.provider.value,
        }

    @app.get("/api/records/my")
    async def my_records(user: AuthenticatedPrincipal = Depends(require_auth)):
        records = await record_store.find_by_email(user.email, limit=20)
        return {
            "success": True,
            "count": len(records),
            "records": [r.model_dump(mode="json", by_alias=True) for r in records],
            "email": user.email,
        }

    @app.get("/api/stats")
    async def stats(user: AuthenticatedPrincipal = Depends(require_auth)):
        return {
            "success": True,
            "stats": {
                "totalRecords": await record_store.count(),
                "userRecords": await record_store.count(email=user.email),
                "user": user.email,
                "provider": user.provider.value,
            },
        }

    return app
