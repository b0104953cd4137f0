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

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Provider(str, Enum):
    """Closed set of credential kinds. Values are the wire values of `X-User-Provider`."""

    GOOGLE = "google"
    GITHUB = "github"
    STATIC_KEY = "api-key"


OAUTH_PROVIDERS = (Provider.GOOGLE, Provider.GITHUB)


class Identity(BaseModel):
    """The canonical signed-in user, produced by either login flow."""

    id: str = Field(..., description="Provider user id ('sub' claim or GitHub id).")
    email: str = Field(..., description="User's email address, or a synthesized placeholder.")
    name: str = Field("User", description="Display name.")
    picture_url: Optional[str] = Field(None, description="Avatar URL, if the provider supplies one.")
    provider: Provider = Field(..., description="The OAuth provider that issued the credential.")
    access_token: str = Field(..., repr=False, description="Opaque provider token. Never log it in full.")
    token_expiry_ms: Optional[int] = Field(None, description="Expiry as Unix epoch milliseconds; None never expires.")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        # GitHub ids are integers
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("id", "email", "access_token")
    @classmethod
    def _not_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be empty")
        return value

    @field_validator("provider")
    @classmethod
    def _oauth_only(cls, value: Provider) -> Provider:
        if value not in OAUTH_PROVIDERS:
            raise ValueError(f"identity provider must be one of {[p.value for p in OAUTH_PROVIDERS]}")
        return value


class AuthenticatedPrincipal(BaseModel):
    """Request-scoped principal attached by the authentication middleware."""

    email: str
    name: Optional[str] = None
    id: Optional[str] = None
    provider: Provider
    token: str = Field(..., repr=False)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


# --- Aggregated record (payload accepted from authenticated principals) ---

class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Coordinates(_CamelModel):
    lat: float = 0.0
    lon: float = 0.0


class Location(_CamelModel):
    city: str
    country: str
    coordinates: Coordinates = Field(default_factory=Coordinates)


class Demographics(_CamelModel):
    country_population: int = 0
    city_population: Optional[int] = None
    languages: List[str] = Field(default_factory=list)
    currency: str = "Unknown"


class RecordMetadata(_CamelModel):
    source: Optional[str] = None
    user_agent: Optional[str] = None


class AuthenticatedBy(_CamelModel):
    provider: Provider
    email: str
    user_id: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def from_principal(cls, principal: AuthenticatedPrincipal) -> "AuthenticatedBy":
        return cls(
            provider=principal.provider,
            email=principal.email,
            user_id=principal.id,
            name=principal.name,
        )


class AggregatedRecord(_CamelModel):
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    client_ip: Optional[str] = None
    location: Location
    demographics: Demographics
    metadata: RecordMetadata = Field(default_factory=RecordMetadata)


class StoredRecord(AggregatedRecord):
    record_id: str
    authenticated_by: AuthenticatedBy
