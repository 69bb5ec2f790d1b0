import os

# Settings are read at import time; pin a test environment first.
os.environ["APP_ENV"] = "test"
os.environ["WORKER_IMAGE"] = "registry.local/job-worker:test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["STORAGE_CONTAINER_NAME"] = "jobs"
os.environ["ITEMS_PER_JOB"] = "100"
os.environ["MAX_FILE_MB"] = "1"

from typing import AsyncIterator, Dict, List, Optional

import pytest
from azure.core.exceptions import ResourceNotFoundError
from fastapi.testclient import TestClient

from controller.controller_dependencies import get_job_service
from core.dispatcher import BackendDispatcher, parallelism_for
from core.entities import JobHandle
from core.interfaces import JobBackend, PartitionStore
from core.partitioner import InputSplitterByLine
from core.results import ResultStreamer
from core.status import StatusAggregator
from model.job import DomainJobStatus
from repository.namespaces import result_address
from service.job_service import JobService


async def chunked(data: bytes, size: int = 7) -> AsyncIterator[bytes]:
    """Yield `data` in small pieces so line boundaries straddle chunks."""
    for i in range(0, len(data), size):
        yield data[i : i + size]


def lines(count: int) -> bytes:
    return b"".join(b"record-%d\n" % i for i in range(count))


class InMemoryStore(PartitionStore):
    def __init__(self, fail_on_write: Optional[int] = None) -> None:
        self.blobs: Dict[str, bytes] = {}
        self.outputs: Dict[str, bytes] = {}
        self.deleted: List[str] = []
        self.fail_on_write = fail_on_write

    async def write(self, address: str, data: bytes) -> None:
        if self.fail_on_write is not None and len(self.blobs) == self.fail_on_write:
            raise OSError("storage unavailable")
        if address in self.blobs:
            raise ValueError(f"blob {address} already exists")
        self.blobs[address] = data

    async def delete(self, address: str) -> None:
        self.deleted.append(address)
        self.blobs.pop(address, None)

    def put_output(self, container: str, prefix: str, part: int, data: bytes) -> None:
        self.outputs[f"{container}/{result_address(prefix, part)}"] = data

    async def open_read(self, container: str, blob_prefix: str, part: int):
        key = f"{container}/{result_address(blob_prefix, part)}"
        if key not in self.outputs:
            raise ResourceNotFoundError(f"{key} not found")
        return chunked(self.outputs[key], size=4)


class FakeBackend(JobBackend):
    """Backend whose native jobs are already domain statuses."""

    def __init__(self, kind: str, cap: int = 10) -> None:
        self.kind = kind
        self.cap = cap
        self.jobs: Dict[str, DomainJobStatus] = {}
        self.deleted: List[str] = []
        self.fail_create: Optional[Exception] = None

    async def create(self, job_id, storage_container, address_prefix, locations_count):
        if self.fail_create is not None:
            raise self.fail_create
        if job_id in self.jobs:
            raise RuntimeError(f"job {job_id} already exists")
        self.jobs[job_id] = DomainJobStatus(
            jobId=job_id,
            completions=locations_count,
            succeeded=0,
            parts=locations_count,
            storageContainer=storage_container,
            storageBlobPrefix=address_prefix,
            backend=self.kind,
        )
        return JobHandle(
            name=job_id,
            backend=self.kind,
            completions=locations_count,
            parallelism=parallelism_for(locations_count, self.cap),
        )

    async def search(self, job_id: str = ""):
        return [j for j in self.jobs.values() if not job_id or j.jobId == job_id]

    def to_status(self, native):
        return native

    async def delete(self, job_id: str) -> None:
        self.jobs.pop(job_id)
        self.deleted.append(job_id)

    def finish(self, job_id: str, succeeded: Optional[int] = None) -> None:
        job = self.jobs[job_id]
        job.succeeded = job.completions if succeeded is None else succeeded


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def cluster():
    return FakeBackend("cluster")


@pytest.fixture
def managed():
    return FakeBackend("managed")


def build_service(store, cluster, managed=None, items_per_partition=100):
    backends = [cluster] if managed is None else [cluster, managed]
    return JobService(
        store,
        InputSplitterByLine(items_per_partition),
        BackendDispatcher(cluster, managed),
        StatusAggregator(backends),
        ResultStreamer(store),
        "jobs",
    )


@pytest.fixture
def service(store, cluster, managed):
    return build_service(store, cluster, managed)


@pytest.fixture
def api(service):
    from main import app

    app.dependency_overrides[get_job_service] = lambda: service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
