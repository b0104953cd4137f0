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

# client/tests/test_geo.py
import httpx
import pytest

from insights_auth.client.geo import GeoClient, IpLocation, aggregate_payload

IPAPI = {
    "ip": "203.0.113.7", "city": "Kandy", "country_name": "Sri Lanka", "country_code": "LK",
    "latitude": 7.29, "longitude": 80.63, "timezone": "Asia/Colombo", "org": "Example ISP",
}
IPWHO = {
    "ip": "203.0.113.7", "success": True, "city": "Kandy", "country": "Sri Lanka", "country_code": "LK",
    "latitude": 7.29, "longitude": 80.63, "timezone": {"id": "Asia/Colombo"}, "connection": {"isp": "Example ISP"},
}
COUNTRY = {
    "name": {"common": "Sri Lanka"},
    "population": 21919000,
    "languages": {"sin": "Sinhala", "tam": "Tamil"},
    "currencies": {"LKR": {"name": "Sri Lankan rupee", "symbol": "Rs"}},
}


def make_client(routes):
    def handler(request):
        response = routes.get(request.url.host)
        if response is None:
            raise httpx.ConnectError("offline", request=request)
        return response
    return GeoClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_primary_ip_lookup():
    location = await make_client({"ipapi.co": httpx.Response(200, json=IPAPI)}).fetch_ip_location()

    assert location.city == "Kandy"
    assert location.country_code == "LK"
    assert not location.simulated


@pytest.mark.asyncio
async def test_backup_ip_lookup():
    client = make_client({
        "ipapi.co": httpx.Response(429, json={"error": True, "reason": "RateLimited"}),
        "ipwho.is": httpx.Response(200, json=IPWHO),
    })

    location = await client.fetch_ip_location()

    assert location.isp == "Example ISP"
    assert location.timezone == "Asia/Colombo"


@pytest.mark.asyncio
async def test_offline_fallback():
    location = await make_client({}).fetch_ip_location()

    assert location.simulated
    assert location.city == "Colombo"
    assert location.country_code == "LK"


@pytest.mark.asyncio
async def test_country_data_takes_first_entry():
    client = make_client({"restcountries.com": httpx.Response(200, json=[COUNTRY])})

    country = await client.fetch_country_data("LK")

    assert country["population"] == 21919000


@pytest.mark.asyncio
async def test_country_data_requires_code():
    with pytest.raises(ValueError):
        await make_client({}).fetch_country_data(None)


def test_aggregate_payload():
    ip = IpLocation(ip="203.0.113.7", city="Kandy", country="Sri Lanka", lat=7.29, lon=80.63)

    record = aggregate_payload(ip, COUNTRY, city_population=125000, user_agent="tests")
    data = record.model_dump(by_alias=True)

    assert data["clientIp"] == "203.0.113.7"
    assert data["location"]["coordinates"] == {"lat": 7.29, "lon": 80.63}
    assert data["demographics"]["languages"] == ["Sinhala", "Tamil"]
    assert data["demographics"]["currency"] == "Sri Lankan rupee"
    assert data["demographics"]["cityPopulation"] == 125000
    assert data["metadata"] == {"source": "Global Location Insights Python Client", "userAgent": "tests"}


def test_aggregate_payload_without_country_details():
    record = aggregate_payload(IpLocation(ip="1.2.3.4"), {})

    assert record.demographics.languages == ["Unknown"]
    assert record.demographics.currency == "Unknown"
    assert record.demographics.country_population == 0
