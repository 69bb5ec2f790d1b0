# service/job_service.py
import logging
from typing import AsyncIterable, AsyncIterator, List
from azure.core.exceptions import ResourceNotFoundError
from fastapi import status
from kubernetes_asyncio.client.exceptions import ApiException
from core.dispatcher import BackendDispatcher
from core.identity import new_identity
from core.interfaces import PartitionStore
from core.partitioner import InputSplitterByLine
from core.results import InvalidPartitionError, JobNotCompleteError, ResultStreamer
from core.status import StatusAggregator
from model.job import DomainJobStatus
from util.enums import ErrorMessage
from util.errors import AppError
from util.logger import bind_job
from util.timing import timed

logger = logging.getLogger(__name__)


class JobService:
    def __init__(
        self,
        store: PartitionStore,
        splitter: InputSplitterByLine,
        dispatcher: BackendDispatcher,
        aggregator: StatusAggregator,
        streamer: ResultStreamer,
        storage_container: str,
    ) -> None:
        self._store = store
        self._splitter = splitter
        self._dispatcher = dispatcher
        self._aggregator = aggregator
        self._streamer = streamer
        self._container = storage_container

    async def submit(
        self, body: AsyncIterable[bytes], use_managed_backend: bool = False
    ) -> str:
        """
        Partition the body under a fresh identity, then create the backend job.
        Logs: job id, part count and backend (no payloads).
        """
        if not self._dispatcher.supports(use_managed_backend):
            raise AppError.of(ErrorMessage.MANAGED_BACKEND_DISABLED)

        identity = new_identity()
        job_id = identity.job_id
        with bind_job(job_id):
            logger.info("submit.start job=%s managed=%s", job_id, use_managed_backend)

            try:
                with timed(logger, "submit.partition", job=job_id):
                    locations_count = await self._splitter.split(
                        body, self._store, identity.address_prefix
                    )
            except Exception:
                logger.error("submit.partition.error job=%s", job_id)
                raise

            if locations_count < 1:
                logger.warning("submit.empty job=%s", job_id)
                raise AppError.of(ErrorMessage.NO_WORK_PRODUCED)

            try:
                await self._dispatcher.dispatch(
                    job_id,
                    self._container,
                    identity.address_prefix,
                    locations_count,
                    use_managed_backend,
                )
            except Exception:
                # Partitions stay behind; no job references them.
                logger.error(
                    "submit.dispatch.error job=%s orphaned_parts=%d", job_id, locations_count
                )
                raise

            logger.info("submit.ok job=%s parts=%d", job_id, locations_count)
            return job_id

    async def get_status(self, job_id: str) -> DomainJobStatus:
        if not job_id:
            raise AppError.of(ErrorMessage.MISSING_JOB_ID)
        statuses = await self._aggregator.resolve(job_id)
        if not statuses:
            raise AppError.of(ErrorMessage.JOB_NOT_FOUND)
        # First match wins when a name was reused across backends.
        return statuses[0]

    async def list_jobs(self) -> List[DomainJobStatus]:
        return await self._aggregator.resolve("")

    async def delete(self, job_id: str) -> None:
        with bind_job(job_id):
            job = await self.get_status(job_id)
            backend = self._dispatcher.backend(job.backend)
            try:
                await backend.delete(job.jobId)
            except ApiException as e:
                if e.status == status.HTTP_404_NOT_FOUND:
                    raise AppError.of(ErrorMessage.JOB_NOT_FOUND)
                raise
            logger.info("delete.ok job=%s backend=%s", job.jobId, job.backend)

    async def open_result(self, job_id: str, part: int) -> AsyncIterator[bytes]:
        with bind_job(job_id):
            job = await self.get_status(job_id)
            try:
                return await self._streamer.open(job, part)
            except JobNotCompleteError as e:
                logger.info(
                    "result.not_complete job=%s succeeded=%d completions=%d",
                    job_id,
                    e.succeeded,
                    e.completions,
                )
                raise AppError(str(e), status.HTTP_404_NOT_FOUND)
            except InvalidPartitionError as e:
                logger.info("result.invalid_part job=%s part=%d parts=%d", job_id, part, e.parts)
                raise AppError(str(e), status.HTTP_400_BAD_REQUEST)
            except ResourceNotFoundError:
                logger.warning("result.missing job=%s part=%d", job_id, part)
                raise AppError.of(ErrorMessage.RESULT_NOT_FOUND)
