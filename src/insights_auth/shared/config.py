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

"""Environment configuration for the resource server and the client."""

from pathlib import Path
from typing import List, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

GITHUB_OAUTH_URL = "https://github.com/login/oauth"
GITHUB_API_URL = "https://api.github.com"
GITHUB_SCOPE = "user:email"


class ServerSettings(BaseSettings):
    """Resource server settings. Variable names match the deployment `.env`."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    github_client_id: Optional[str] = None
    github_client_secret: Optional[SecretStr] = None
    api_key: Optional[SecretStr] = None
    # Enables full Google ID token verification (audience check) when set
    google_client_id: Optional[str] = None
    frontend_url: str = "http://localhost:3000"
    verification_timeout: float = Field(10.0, gt=0)
    github_oauth_url: str = GITHUB_OAUTH_URL
    github_api_url: str = GITHUB_API_URL

    @property
    def cors_origins(self) -> List[str]:
        return [url.strip() for url in self.frontend_url.split(",") if url.strip()]


class ClientSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="INSIGHTS_", case_sensitive=False, extra="ignore")

    backend_url: str = "http://localhost:5000"
    github_client_id: Optional[str] = None
    github_redirect_uri: Optional[str] = None
    github_scope: str = GITHUB_SCOPE
    api_key: Optional[SecretStr] = None
    session_dir: Path = Path.home() / ".insights-auth"
    request_timeout: float = Field(10.0, gt=0)
