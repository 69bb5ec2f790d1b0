# repository/blob_repository.py
import logging
from typing import AsyncIterator
from azure.core.exceptions import ResourceNotFoundError
from azure.storage.blob.aio import BlobServiceClient
from core.interfaces import PartitionStore
from repository.namespaces import result_address

logger = logging.getLogger(__name__)


class BlobRepository(PartitionStore):
    """
    Azure Blob Storage holding job partitions and worker outputs.

    - Partition inputs are uploaded once (overwrite=False) into `container`.
    - Outputs are read from the container recorded on the job.
    - Reads are chunked; nothing is buffered whole.
    """

    def __init__(self, service: BlobServiceClient, container: str) -> None:
        self._service = service
        self._container = container

    @property
    def container(self) -> str:
        return self._container

    async def write(self, address: str, data: bytes) -> None:
        blob = self._service.get_blob_client(self._container, address)
        await blob.upload_blob(
            data, overwrite=False, content_type="application/octet-stream"
        )
        logger.debug("blob.write container=%s blob=%s bytes=%d", self._container, address, len(data))

    async def delete(self, address: str) -> None:
        blob = self._service.get_blob_client(self._container, address)
        try:
            await blob.delete_blob()
        except ResourceNotFoundError:
            return

    async def open_read(
        self, container: str, blob_prefix: str, part: int
    ) -> AsyncIterator[bytes]:
        blob = self._service.get_blob_client(container, result_address(blob_prefix, part))
        downloader = await blob.download_blob()
        logger.info(
            "blob.read container=%s blob=%s bytes=%d",
            container,
            blob.blob_name,
            downloader.size,
        )
        return downloader.chunks()
