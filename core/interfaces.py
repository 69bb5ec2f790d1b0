# core/interfaces.py
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, List
from core.entities import JobHandle
from model.job import DomainJobStatus


class PartitionStore(ABC):
    """
    Blob storage seen by the orchestration core.

    Writes go to the store's own container; reads name the container
    recorded on the job so older jobs stay readable after a config change.
    """

    @abstractmethod
    async def write(self, address: str, data: bytes) -> None:
        """Write a blob once; an existing blob is an error."""

    @abstractmethod
    async def delete(self, address: str) -> None:
        """Delete a blob; missing blobs are ignored."""

    @abstractmethod
    async def open_read(
        self, container: str, blob_prefix: str, part: int
    ) -> AsyncIterator[bytes]:
        """Open the output of `part` and return its chunks."""


class JobBackend(ABC):
    """An execution engine that runs one job's partitions in parallel."""

    kind: str

    @abstractmethod
    async def create(
        self,
        job_id: str,
        storage_container: str,
        address_prefix: str,
        locations_count: int,
    ) -> JobHandle: ...

    @abstractmethod
    async def search(self, job_id: str = "") -> List[Any]:
        """Native jobs bearing the ownership marker, optionally filtered by id."""

    @abstractmethod
    def to_status(self, native: Any) -> DomainJobStatus: ...

    @abstractmethod
    async def delete(self, job_id: str) -> None: ...
