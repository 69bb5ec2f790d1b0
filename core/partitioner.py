# core/partitioner.py
import logging
from typing import AsyncIterable, AsyncIterator, List
from core.entities import WorkPartition
from core.interfaces import PartitionStore
from repository.namespaces import partition_address

logger = logging.getLogger(__name__)

LINE_SEP = b"\n"


def _record(line: bytes) -> bytes:
    return line.rstrip(b"\r")


async def iter_records(chunks: AsyncIterable[bytes]) -> AsyncIterator[bytes]:
    """
    Re-assemble lines from arbitrary byte chunks.
    Trailing CR is dropped and blank lines are not records.
    Only the new chunk is scanned, so a long unfinished line costs O(n).
    """
    pending = bytearray()
    async for chunk in chunks:
        if not chunk:
            continue
        pieces = chunk.split(LINE_SEP)
        if len(pieces) == 1:
            pending += chunk
            continue
        pending += pieces[0]
        lines = [bytes(pending), *pieces[1:-1]]
        pending = bytearray(pieces[-1])
        for line in lines:
            line = _record(line)
            if line.strip():
                yield line
    tail = _record(bytes(pending))
    if tail.strip():
        yield tail


class InputSplitterByLine:
    """
    Split an input stream into partitions of `items_per_partition` lines.

    Flow:
    - Buffer at most one partition of records.
    - Write each partition to <prefix>/<index> as soon as it fills.
    - Flush the trailing partial group as the last partition.
    - On failure, delete what was written (best effort) and re-raise.
    """

    def __init__(self, items_per_partition: int) -> None:
        if items_per_partition < 1:
            raise ValueError("items_per_partition must be >= 1")
        self._items = items_per_partition

    @property
    def items_per_partition(self) -> int:
        return self._items

    async def split(
        self,
        chunks: AsyncIterable[bytes],
        store: PartitionStore,
        address_prefix: str,
    ) -> int:
        written: List[WorkPartition] = []
        batch: List[bytes] = []

        async def _flush() -> None:
            part = WorkPartition(
                index=len(written),
                address=partition_address(address_prefix, len(written)),
            )
            await store.write(part.address, LINE_SEP.join(batch) + LINE_SEP)
            written.append(part)
            batch.clear()

        try:
            async for record in iter_records(chunks):
                batch.append(record)
                if len(batch) == self._items:
                    await _flush()
            if batch:
                await _flush()
        except Exception:
            logger.error(
                "partition.error prefix=%s written=%d", address_prefix, len(written)
            )
            await self._cleanup(store, written)
            raise

        logger.info("partition.ok prefix=%s parts=%d", address_prefix, len(written))
        return len(written)

    @staticmethod
    async def _cleanup(store: PartitionStore, written: List[WorkPartition]) -> None:
        for part in written:
            try:
                await store.delete(part.address)
            except Exception as e:
                logger.warning(
                    "partition.cleanup.error address=%s err=%s",
                    part.address,
                    type(e).__name__,
                )
