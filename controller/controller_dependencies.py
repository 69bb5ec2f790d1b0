# controller/controller_dependencies.py
from typing import AsyncIterator, List
from fastapi import Depends, HTTPException, Request
from fastapi_limiter.depends import RateLimiter
from config.clients import get_batch_client, get_blob_service, get_k8s_api
from config.settings import settings
from core.dispatcher import BackendDispatcher
from core.partitioner import InputSplitterByLine
from core.results import ResultStreamer
from core.status import StatusAggregator
from repository.blob_repository import BlobRepository
from repository.cluster_job_backend import ClusterJobBackend
from repository.managed_job_backend import ManagedJobBackend
from service.job_service import JobService


async def get_job_service() -> JobService:
    _blobs = BlobRepository(await get_blob_service(), settings.STORAGE_CONTAINER_NAME)
    _cluster = ClusterJobBackend(
        await get_k8s_api(),
        namespace=settings.K8S_NAMESPACE,
        image=settings.WORKER_IMAGE,
        max_parallelism=settings.MAX_PARALLELISM,
        command=settings.WORKER_COMMAND,
        secret_name=settings.WORKER_SECRET_NAME,
        backoff_limit=settings.JOB_BACKOFF_LIMIT,
        ttl_seconds_after_finished=settings.JOB_TTL_SECONDS_AFTER_FINISHED,
    )
    _batch = get_batch_client()
    _managed = (
        ManagedJobBackend(
            _batch,
            pool_id=settings.BATCH_POOL_ID,
            image=settings.WORKER_IMAGE,
            max_parallelism=settings.MAX_PARALLELISM,
            command=settings.WORKER_COMMAND,
        )
        if _batch is not None
        else None
    )
    _backends = [_cluster] if _managed is None else [_cluster, _managed]
    return JobService(
        _blobs,
        InputSplitterByLine(settings.ITEMS_PER_JOB),
        BackendDispatcher(_cluster, _managed),
        StatusAggregator(_backends),
        ResultStreamer(_blobs),
        settings.STORAGE_CONTAINER_NAME,
    )


def rate_limit_dependencies() -> List:
    if not settings.RATE_LIMIT_ENABLED:
        return []
    return [
        Depends(
            RateLimiter(
                times=settings.RATE_LIMIT_TIMES, seconds=settings.RATE_LIMIT_SECONDS
            )
        )
    ]


def _too_large() -> HTTPException:
    return HTTPException(
        status_code=413,
        detail={
            "ok": False,
            "error": "file_too_large",
            "maxMb": settings.MAX_FILE_MB,
        },
    )


async def enforce_max_upload_size(request: Request) -> None:
    # Fast pre-check via Content-Length if present
    max_bytes = settings.MAX_FILE_MB * 1024 * 1024
    cl = request.headers.get("content-length")
    if cl and cl.isdigit() and int(cl) > max_bytes:
        raise _too_large()


async def limited_body(request: Request) -> AsyncIterator[bytes]:
    """Raw request body, cut off once it passes MAX_FILE_MB (works without Content-Length)."""
    max_bytes = settings.MAX_FILE_MB * 1024 * 1024
    seen = 0
    async for chunk in request.stream():
        seen += len(chunk)
        if seen > max_bytes:
            raise _too_large()
        yield chunk
