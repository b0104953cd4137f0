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

"""The client's visible address, as seen and driven by the login flows."""

from abc import ABC, abstractmethod
from typing import Dict, List
from urllib.parse import parse_qs, urlsplit, urlunsplit


def strip_query(url: str) -> str:
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def query_params(url: str) -> Dict[str, str]:
    """First value of each query parameter."""
    return {k: v[0] for k, v in parse_qs(urlsplit(url).query).items() if v}


class BrowserLocation(ABC):

    @property
    @abstractmethod
    def href(self) -> str:
        pass

    @abstractmethod
    def assign(self, url: str) -> None:
        """Navigates away, like `window.location.href = url`."""

    @abstractmethod
    def replace(self, url: str) -> None:
        """Rewrites the visible address without navigating, like `history.replaceState`."""


class InMemoryLocation(BrowserLocation):
    def __init__(self, href: str):
        self._href = href
        self.history: List[str] = [href]

    @property
    def href(self) -> str:
        return self._href

    def assign(self, url: str) -> None:
        self._href = url
        self.history.append(url)

    def replace(self, url: str) -> None:
        self._href = url
        self.history[-1] = url
