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

import typing
import uuid
from abc import ABC, abstractmethod

from insights_auth.shared.models import (
    AggregatedRecord,
    AuthenticatedBy,
    AuthenticatedPrincipal,
    StoredRecord,
)


class RecordStore(ABC):
    """
    Append-only store for aggregated location records.

    Records are never updated or deleted.
    """

    @abstractmethod
    async def add(self, record: StoredRecord) -> StoredRecord:
        pass

    @abstractmethod
    async def list(self, limit: int = 10, skip: int = 0) -> typing.List[StoredRecord]:
        """Newest first."""

    @abstractmethod
    async def find_by_email(self, email: str, limit: int = 20) -> typing.List[StoredRecord]:
        """Newest first."""

    @abstractmethod
    async def count(self, email: typing.Optional[str] = None) -> int:
        pass

    async def submit(self, record: AggregatedRecord, principal: AuthenticatedPrincipal) -> StoredRecord:
        # stored timestamp is server time, the client's clock is not trusted
        stored = StoredRecord(
            **record.model_dump(exclude={"timestamp"}),
            record_id=uuid.uuid4().hex,
            authenticated_by=AuthenticatedBy.from_principal(principal),
        )
        return await self.add(stored)


class InMemoryRecordStore(RecordStore):
    def __init__(self):
        self._records: typing.List[StoredRecord] = []

    def _newest_first(self, records: typing.Iterable[StoredRecord]) -> typing.List[StoredRecord]:
        # insertion order is arrival order
        return list(reversed(list(records)))

    async def add(self, record: StoredRecord) -> StoredRecord:
        self._records.append(record)
        return record

    async def list(self, limit: int = 10, skip: int = 0) -> typing.List[StoredRecord]:
        return self._newest_first(self._records)[skip:skip + limit]

    async def find_by_email(self, email: str, limit: int = 20) -> typing.List[StoredRecord]:
        mine = (r for r in self._records if r.authenticated_by.email == email)
        return self._newest_first(mine)[:limit]

    async def count(self, email: typing.Optional[str] = None) -> int:
        if email is None:
            return len(self._records)
        return sum(1 for r in self._records if r.authenticated_by.email == email)
