# repository/managed_job_backend.py
import asyncio
import logging
from typing import List, Optional, Tuple
import azure.batch.models as batchmodels
from azure.batch import BatchServiceClient
from core.dispatcher import parallelism_for
from core.entities import JobHandle
from core.interfaces import JobBackend
from core.status import status_from_managed_job
from model.job import DomainJobStatus
from repository.namespaces import (
    CREATED_BY_LABEL,
    CREATED_BY_VALUE,
    PARTS_LABEL,
    STORAGE_BLOB_PREFIX_KEY,
    STORAGE_CONTAINER_KEY,
)
from util.enums import BackendKind

logger = logging.getLogger(__name__)

# Batch accepts at most 100 tasks per add_collection call.
MAX_TASKS_PER_CALL = 100
JOB_NOT_FOUND = "JobNotFound"

ManagedJob = Tuple[batchmodels.CloudJob, Optional[batchmodels.TaskCounts]]


def task_id(index: int) -> str:
    return f"part-{index}"


class ManagedJobBackend(JobBackend):
    """
    Azure Batch jobs, one task per partition.

    Flow:
    - Add the job (id = job id, noaction) with the ownership marker in its metadata.
    - Add tasks part-<i> carrying PARTITION_INDEX=i, in chunks of 100.
    - Patch the job to terminatejob; on any failure delete the job.
    - Search lists jobs and keeps the ones bearing the marker.

    The SDK is synchronous; calls run in a worker thread.
    """

    kind = BackendKind.MANAGED.value

    def __init__(
        self,
        batch: BatchServiceClient,
        *,
        pool_id: str,
        image: str,
        max_parallelism: int,
        command: Optional[str] = None,
    ) -> None:
        self._batch = batch
        self._pool_id = pool_id
        self._image = image
        self._max_parallelism = max_parallelism
        self._command = command or ""

    def build_job(
        self,
        job_id: str,
        storage_container: str,
        address_prefix: str,
        locations_count: int,
    ) -> batchmodels.JobAddParameter:
        return batchmodels.JobAddParameter(
            id=job_id,
            pool_info=batchmodels.PoolInformation(pool_id=self._pool_id),
            max_parallel_tasks=parallelism_for(locations_count, self._max_parallelism),
            on_all_tasks_complete=batchmodels.OnAllTasksComplete.no_action,
            metadata=[
                batchmodels.MetadataItem(name=CREATED_BY_LABEL, value=CREATED_BY_VALUE),
                batchmodels.MetadataItem(name=PARTS_LABEL, value=str(locations_count)),
                batchmodels.MetadataItem(name=STORAGE_CONTAINER_KEY, value=storage_container),
                batchmodels.MetadataItem(name=STORAGE_BLOB_PREFIX_KEY, value=address_prefix),
            ],
            common_environment_settings=[
                batchmodels.EnvironmentSetting(name="JOB_ID", value=job_id),
                batchmodels.EnvironmentSetting(name="STORAGE_CONTAINER", value=storage_container),
                batchmodels.EnvironmentSetting(name="STORAGE_BLOB_PREFIX", value=address_prefix),
                batchmodels.EnvironmentSetting(name="JOB_PARTS", value=str(locations_count)),
            ],
        )

    def build_tasks(self, locations_count: int) -> List[batchmodels.TaskAddParameter]:
        return [
            batchmodels.TaskAddParameter(
                id=task_id(i),
                command_line=self._command,
                container_settings=batchmodels.TaskContainerSettings(
                    image_name=self._image
                ),
                environment_settings=[
                    batchmodels.EnvironmentSetting(name="PARTITION_INDEX", value=str(i))
                ],
            )
            for i in range(locations_count)
        ]

    def _create(
        self,
        job_id: str,
        storage_container: str,
        address_prefix: str,
        locations_count: int,
    ) -> JobHandle:
        # A job without tasks counts as all-complete, so terminate_job is
        # only switched on once every task is in.
        job = self.build_job(job_id, storage_container, address_prefix, locations_count)
        self._batch.job.add(job)
        tasks = self.build_tasks(locations_count)
        try:
            for start in range(0, len(tasks), MAX_TASKS_PER_CALL):
                self._batch.task.add_collection(
                    job_id, tasks[start : start + MAX_TASKS_PER_CALL]
                )
            self._batch.job.patch(
                job_id,
                batchmodels.JobPatchParameter(
                    on_all_tasks_complete=batchmodels.OnAllTasksComplete.terminate_job
                ),
            )
        except Exception:
            logger.error("managed.create.error job=%s parts=%d", job_id, locations_count)
            self._discard(job_id)
            raise
        return JobHandle(
            name=job_id,
            backend=self.kind,
            completions=locations_count,
            parallelism=job.max_parallel_tasks,
        )

    def _discard(self, job_id: str) -> None:
        try:
            self._batch.job.delete(job_id)
        except Exception as e:
            logger.warning(
                "managed.cleanup.error job=%s err=%s", job_id, type(e).__name__
            )

    async def create(
        self,
        job_id: str,
        storage_container: str,
        address_prefix: str,
        locations_count: int,
    ) -> JobHandle:
        return await asyncio.to_thread(
            self._create, job_id, storage_container, address_prefix, locations_count
        )

    @staticmethod
    def _owned(job: batchmodels.CloudJob) -> bool:
        return any(
            m.name == CREATED_BY_LABEL and m.value == CREATED_BY_VALUE
            for m in (job.metadata or [])
        )

    def _search(self, job_id: str) -> List[ManagedJob]:
        if job_id:
            try:
                candidates = [self._batch.job.get(job_id)]
            except batchmodels.BatchErrorException as e:
                if e.error is not None and e.error.code == JOB_NOT_FOUND:
                    return []
                raise
        else:
            # Unindexed scan; fine for the job volumes this service handles.
            candidates = list(self._batch.job.list())

        out: List[ManagedJob] = []
        for job in candidates:
            if not self._owned(job):
                continue
            counts = self._batch.job.get_task_counts(job.id)
            out.append((job, counts.task_counts))
        return out

    async def search(self, job_id: str = "") -> List[ManagedJob]:
        return await asyncio.to_thread(self._search, job_id)

    def to_status(self, native: ManagedJob) -> DomainJobStatus:
        job, counts = native
        return status_from_managed_job(job, counts)

    async def delete(self, job_id: str) -> None:
        await asyncio.to_thread(self._batch.job.delete, job_id)
        logger.info("managed.delete job=%s", job_id)
