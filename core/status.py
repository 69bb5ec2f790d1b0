# core/status.py
import logging
from typing import Any, Dict, List, Optional, Sequence
from core.interfaces import JobBackend
from model.job import DomainJobStatus
from repository.namespaces import (
    PARTS_LABEL,
    STORAGE_BLOB_PREFIX_KEY,
    STORAGE_CONTAINER_KEY,
)
from util.enums import BackendKind

logger = logging.getLogger(__name__)


def is_done(status: DomainJobStatus) -> bool:
    # 0 of 0 counts as done; such a job has no parts to fetch anyway.
    return status.completions == status.succeeded


def _to_int(value: Optional[str]) -> int:
    try:
        return int(value) if value is not None else 0
    except (TypeError, ValueError):
        return 0


def status_from_cluster_job(job: Any) -> DomainJobStatus:
    """Reduce a kubernetes `V1Job` to the domain status."""
    meta = job.metadata
    labels: Dict[str, str] = meta.labels or {}
    annotations: Dict[str, str] = meta.annotations or {}
    completions = job.spec.completions if job.spec is not None else None
    succeeded = job.status.succeeded if job.status is not None else None
    return DomainJobStatus(
        jobId=meta.name,
        completions=completions or 0,
        succeeded=succeeded or 0,
        parts=_to_int(labels.get(PARTS_LABEL)),
        storageContainer=annotations.get(STORAGE_CONTAINER_KEY, ""),
        storageBlobPrefix=annotations.get(STORAGE_BLOB_PREFIX_KEY, ""),
        backend=BackendKind.CLUSTER.value,
    )


def status_from_managed_job(job: Any, task_counts: Any) -> DomainJobStatus:
    """
    Reduce an Azure Batch `CloudJob` plus its `TaskCounts` to the domain status.
    One task per partition, so the requested completions equal the part count.
    """
    metadata = {m.name: m.value for m in (job.metadata or [])}
    parts = _to_int(metadata.get(PARTS_LABEL))
    return DomainJobStatus(
        jobId=job.id,
        completions=parts,
        succeeded=(task_counts.succeeded or 0) if task_counts is not None else 0,
        parts=parts,
        storageContainer=metadata.get(STORAGE_CONTAINER_KEY, ""),
        storageBlobPrefix=metadata.get(STORAGE_BLOB_PREFIX_KEY, ""),
        backend=BackendKind.MANAGED.value,
    )


class StatusAggregator:
    """
    Resolve domain statuses from the configured backends.

    Flow:
    - Ask each backend (cluster first) for jobs bearing the ownership marker.
    - An empty job id lists everything across all backends.
    - A job id must match exactly; the first backend with a match answers
      and later backends are not queried.
    - Reduce each native job; nothing is cached between calls.
    """

    def __init__(self, backends: Sequence[JobBackend]) -> None:
        self._backends = list(backends)

    async def resolve(self, job_id: str = "") -> List[DomainJobStatus]:
        out: List[DomainJobStatus] = []
        for backend in self._backends:
            for native in await backend.search(job_id):
                out.append(backend.to_status(native))
            if job_id and out:
                break
        if job_id and len(out) > 1:
            logger.warning(
                "status.ambiguous job=%s matches=%d using=%s",
                job_id,
                len(out),
                out[0].backend,
            )
        return out
