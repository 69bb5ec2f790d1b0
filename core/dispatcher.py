# core/dispatcher.py
import logging
from typing import Optional
from core.entities import JobHandle
from core.interfaces import JobBackend
from util.enums import BackendKind
from util.timing import timed

logger = logging.getLogger(__name__)


class BackendNotConfiguredError(Exception):
    def __init__(self, kind: str) -> None:
        super().__init__(f"{kind} backend is not configured")
        self.kind = kind


class BackendDispatcher:
    """
    Create the distributed job on exactly one backend.

    No retries and no de-duplication here: the backend job is named after
    the job id, so a repeated dispatch is rejected by the backend itself.
    """

    def __init__(
        self, cluster: JobBackend, managed: Optional[JobBackend] = None
    ) -> None:
        self._backends = {BackendKind.CLUSTER.value: cluster}
        if managed is not None:
            self._backends[BackendKind.MANAGED.value] = managed

    def backend(self, kind: str) -> JobBackend:
        try:
            return self._backends[kind]
        except KeyError:
            raise BackendNotConfiguredError(kind) from None

    def supports(self, use_managed_backend: bool) -> bool:
        return self._kind(use_managed_backend) in self._backends

    async def dispatch(
        self,
        job_id: str,
        storage_container: str,
        address_prefix: str,
        locations_count: int,
        use_managed_backend: bool = False,
    ) -> JobHandle:
        if locations_count < 1:
            raise ValueError("locations_count must be >= 1")

        kind = self._kind(use_managed_backend)
        backend = self.backend(kind)
        with timed(logger, "dispatch", job=job_id, backend=kind, parts=locations_count):
            handle = await backend.create(
                job_id, storage_container, address_prefix, locations_count
            )
        logger.info(
            "dispatch.ok job=%s backend=%s completions=%d parallelism=%d",
            handle.name,
            handle.backend,
            handle.completions,
            handle.parallelism,
        )
        return handle

    @staticmethod
    def _kind(use_managed_backend: bool) -> str:
        if use_managed_backend:
            return BackendKind.MANAGED.value
        return BackendKind.CLUSTER.value


def parallelism_for(locations_count: int, concurrency_cap: int) -> int:
    """Workers running at once: one per partition, capped by the backend limit."""
    return max(1, min(locations_count, concurrency_cap))
