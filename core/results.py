# core/results.py
import logging
from typing import AsyncIterator
from core.interfaces import PartitionStore
from core.status import is_done
from model.job import DomainJobStatus

logger = logging.getLogger(__name__)


class JobNotCompleteError(Exception):
    def __init__(self, succeeded: int, completions: int) -> None:
        super().__init__(
            f"Job has not yet completed: {succeeded} of {completions} completed"
        )
        self.succeeded = succeeded
        self.completions = completions


class InvalidPartitionError(Exception):
    def __init__(self, parts: int, part: int) -> None:
        super().__init__(
            f"Part has invalid value. Job has {parts} parts, requested for part {part}"
        )
        self.parts = parts
        self.part = part


def check_result_request(status: DomainJobStatus, part: int) -> None:
    """Completion first, then the range 0 <= part < parts."""
    if not is_done(status):
        raise JobNotCompleteError(status.succeeded, status.completions)
    if part < 0 or part >= status.parts:
        raise InvalidPartitionError(status.parts, part)


class ResultStreamer:
    def __init__(self, store: PartitionStore) -> None:
        self._store = store

    async def open(self, status: DomainJobStatus, part: int) -> AsyncIterator[bytes]:
        """
        Validate the request and open the stored output of `part`.
        The blob is opened before returning so a missing output fails
        before any byte reaches the client.
        """
        check_result_request(status, part)
        chunks = await self._store.open_read(
            status.storageContainer, status.storageBlobPrefix, part
        )
        return self._relay(status.jobId, part, chunks)

    @staticmethod
    async def _relay(
        job_id: str, part: int, chunks: AsyncIterator[bytes]
    ) -> AsyncIterator[bytes]:
        sent = 0
        try:
            async for chunk in chunks:
                sent += len(chunk)
                yield chunk
        except Exception:
            logger.error("result.stream.error job=%s part=%d bytes=%d", job_id, part, sent)
            raise
        logger.info("result.stream.ok job=%s part=%d bytes=%d", job_id, part, sent)
