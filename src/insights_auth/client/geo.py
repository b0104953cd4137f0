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
Geo data collected for the aggregated record.

Thin wrappers over public APIs: IP location (primary, backup, then an offline
placeholder) and country metadata from REST Countries.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel

from insights_auth.shared.models import (
    AggregatedRecord,
    Coordinates,
    Demographics,
    Location,
    RecordMetadata,
)

logger = logging.getLogger(__name__)

IP_API_PRIMARY = "https://ipapi.co/json/"
IP_API_BACKUP = "https://ipwho.is/"
REST_COUNTRIES_URL = "https://restcountries.com/v3.1/alpha"
RECORD_SOURCE = "Global Location Insights Python Client"


class IpLocation(BaseModel):
    ip: str
    city: str = "Unknown"
    country: str = "Unknown"
    country_code: Optional[str] = None
    lat: float = 0.0
    lon: float = 0.0
    timezone: str = "UTC"
    isp: str = "Unknown"
    simulated: bool = False


OFFLINE_LOCATION = IpLocation(
    ip="127.0.0.1 (Simulation)",
    city="Colombo",
    country="Sri Lanka",
    country_code="LK",
    lat=6.9271,
    lon=79.8612,
    timezone="Asia/Colombo",
    isp="Offline Simulation Mode",
    simulated=True,
)


class GeoClient:

    def __init__(self, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def _get_json(self, url: str) -> Any:
        async with self._client() as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.json()

    async def fetch_ip_location(self) -> IpLocation:
        try:
            data = await self._get_json(IP_API_PRIMARY)
            if data.get("error"):
                raise ValueError(data.get("reason") or "API returned error")
            return IpLocation(
                ip=data["ip"],
                city=data.get("city") or "Unknown",
                country=data.get("country_name") or "Unknown",
                country_code=data.get("country_code"),
                lat=data.get("latitude") or 0.0,
                lon=data.get("longitude") or 0.0,
                timezone=data.get("timezone") or "UTC",
                isp=data.get("org") or "Unknown",
            )
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.warning(f"Primary IP API failed, trying backup: {e}")

        try:
            data = await self._get_json(IP_API_BACKUP)
            if not data.get("success"):
                raise ValueError(data.get("message") or "API returned error")
            return IpLocation(
                ip=data["ip"],
                city=data.get("city") or "Unknown",
                country=data.get("country") or "Unknown",
                country_code=data.get("country_code"),
                lat=data.get("latitude") or 0.0,
                lon=data.get("longitude") or 0.0,
                timezone=(data.get("timezone") or {}).get("id") or "UTC",
                isp=(data.get("connection") or {}).get("isp") or "Unknown",
            )
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.warning(f"Backup IP API failed, using offline fallback: {e}")

        return OFFLINE_LOCATION.model_copy()

    async def fetch_country_data(self, country_code: Optional[str]) -> Dict[str, Any]:
        if not country_code or country_code == "Unknown":
            raise ValueError("Invalid Country Code")
        data = await self._get_json(f"{REST_COUNTRIES_URL}/{country_code}")
        # REST Countries answers with a list
        if isinstance(data, list):
            if not data:
                raise ValueError(f"No country data for {country_code}")
            return data[0]
        return data


def aggregate_payload(ip: IpLocation, country: Dict[str, Any], city_population: Optional[int] = None,
                      user_agent: Optional[str] = None) -> AggregatedRecord:
    languages = list((country.get("languages") or {}).values()) or ["Unknown"]
    currencies = country.get("currencies") or {}
    currency = next(iter(currencies.values()), {}).get("name", "Unknown") if currencies else "Unknown"

    return AggregatedRecord(
        client_ip=ip.ip,
        location=Location(
            city=ip.city,
            country=ip.country,
            coordinates=Coordinates(lat=ip.lat, lon=ip.lon),
        ),
        demographics=Demographics(
            country_population=country.get("population") or 0,
            city_population=city_population or 0,
            languages=languages,
            currency=currency,
        ),
        metadata=RecordMetadata(source=RECORD_SOURCE, user_agent=user_agent or f"python-httpx/{httpx.__version__}"),
    )
