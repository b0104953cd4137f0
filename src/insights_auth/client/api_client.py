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
from typing import Any, Dict, Optional

import httpx

from insights_auth.client.session import AuthSession
from insights_auth.shared.config import ClientSettings
from insights_auth.shared.jwt_utils import mask_token
from insights_auth.shared.models import AggregatedRecord

logger = logging.getLogger(__name__)


class RecordsApiError(Exception):
    def __init__(self, status_code: Optional[int], message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"[{status_code}] {message}" if status_code else message)


class RecordsClient:
    """
    Calls the records API with the session's OAuth credentials, falling back
    to the API key when nobody is signed in.
    """

    def __init__(
        self,
        base_url: str,
        session: AuthSession,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: ClientSettings, session: AuthSession, **kwargs) -> "RecordsClient":
        return cls(
            base_url=settings.backend_url,
            session=session,
            api_key=settings.api_key.get_secret_value() if settings.api_key else None,
            timeout=settings.request_timeout,
            **kwargs,
        )

    def headers(self) -> Dict[str, str]:
        headers = self.session.auth_headers()
        if headers:
            logger.debug(f"Attaching OAuth token {mask_token(headers['Authorization'][len('Bearer '):])}")
            return headers
        if self.api_key:
            logger.debug(f"Attaching API key {mask_token(self.api_key, visible=4)}")
            return {"X-API-Key": self.api_key}
        return {}

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(method, f"{self.base_url}{path}", headers=self.headers(), **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Backend request failed: {e}")
            raise RecordsApiError(None, f"Backend request failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.is_error:
            message = (body.get("message") if isinstance(body, dict) else None) or \
                f"HTTP {response.status_code}: {response.reason_phrase}"
            logger.error(f"Backend answered {response.status_code}: {message}")
            raise RecordsApiError(response.status_code, message)
        return body

    async def submit_record(self, record: AggregatedRecord) -> Dict[str, Any]:
        return await self._request("POST", "/api/records", json=record.model_dump(mode="json", by_alias=True))

    async def list_records(self, limit: int = 10, skip: int = 0) -> Dict[str, Any]:
        return await self._request("GET", "/api/records", params={"limit": limit, "skip": skip})

    async def my_records(self) -> Dict[str, Any]:
        return await self._request("GET", "/api/records/my")

    async def stats(self) -> Dict[str, Any]:
        return await self._request("GET", "/api/stats")
