# repository/namespaces.py
from typing import Final

# Ownership marker attached to every backend job this service creates.
CREATED_BY_LABEL: Final[str] = "created-by"
CREATED_BY_VALUE: Final[str] = "job-scheduler-api"
OWNER_SELECTOR: Final[str] = f"{CREATED_BY_LABEL}={CREATED_BY_VALUE}"

PARTS_LABEL: Final[str] = "job-parts"
STORAGE_CONTAINER_KEY: Final[str] = "job-scheduler/storage-container"
STORAGE_BLOB_PREFIX_KEY: Final[str] = "job-scheduler/storage-blob-prefix"

OUTPUT_SEGMENT: Final[str] = "output"


def partition_address(address_prefix: str, index: int) -> str:
    """Input blob of partition `index`: <prefix>/<index>."""
    return f"{address_prefix}/{index}"


def result_address(address_prefix: str, index: int) -> str:
    """Worker output of partition `index`: <prefix>/output/<index>."""
    return f"{address_prefix}/{OUTPUT_SEGMENT}/{index}"
