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
Client-local persistence of the signed-in Identity.

A single serialized Identity lives under one well-known storage key. Saving
overwrites it wholesale, clearing removes it.
"""

import logging
import os
import tempfile
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Union

from pydantic import ValidationError

from insights_auth.shared.models import Identity

logger = logging.getLogger(__name__)

STORAGE_KEY = "user"


def is_valid(identity: Optional[Identity], now_ms: Optional[int] = None) -> bool:
    """True when the identity has no expiry or the expiry is in the future."""
    if identity is None:
        return False
    if identity.token_expiry_ms is None:
        return True
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return identity.token_expiry_ms > now_ms


class SessionStore(ABC):

    def __init__(self, key: str = STORAGE_KEY):
        self.key = key

    @abstractmethod
    def _read(self) -> Optional[str]:
        pass

    @abstractmethod
    def _write(self, data: str) -> None:
        pass

    @abstractmethod
    def _remove(self) -> None:
        pass

    def is_valid(self, identity: Optional[Identity]) -> bool:
        return is_valid(identity)

    def save(self, identity: Identity) -> None:
        self._write(identity.model_dump_json())
        logger.debug(f"Session saved for {identity.email} ({identity.provider.value}).")

    def load(self) -> Optional[Identity]:
        """The stored identity, or None. Expired or unreadable records are cleared."""
        stored = self._read()
        if stored is None:
            return None
        try:
            identity = Identity.model_validate_json(stored)
        except ValidationError as e:
            logger.warning(f"Could not parse stored session, clearing it: {e}")
            self.clear()
            return None
        if not self.is_valid(identity):
            logger.info(f"Stored session for {identity.email} has expired, clearing it.")
            self.clear()
            return None
        return identity

    def clear(self) -> None:
        self._remove()


class MemorySessionStore(SessionStore):
    """Process-local store, for tests and short-lived tools."""

    def __init__(self, key: str = STORAGE_KEY, storage: Optional[Dict[str, str]] = None):
        super().__init__(key)
        self.storage = storage if storage is not None else {}

    def _read(self) -> Optional[str]:
        return self.storage.get(self.key)

    def _write(self, data: str) -> None:
        self.storage[self.key] = data

    def _remove(self) -> None:
        self.storage.pop(self.key, None)


class FileSessionStore(SessionStore):
    """Stores the record as `<directory>/<key>.json`, replaced atomically on save."""

    def __init__(self, directory: Union[str, Path], key: str = STORAGE_KEY):
        super().__init__(key)
        self.directory = Path(directory)

    @property
    def path(self) -> Path:
        return self.directory / f"{self.key}.json"

    def _read(self) -> Optional[str]:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read session file {self.path}: {e}")
            return ""

    def _write(self, data: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=f".{self.key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self.path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def _remove(self) -> None:
        self.path.unlink(missing_ok=True)
