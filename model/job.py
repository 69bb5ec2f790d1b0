# model/job.py
from typing import Literal
from pydantic import BaseModel

BackendName = Literal["cluster", "managed"]


class DomainJobStatus(BaseModel):
    """Uniform view of a backend job, rebuilt on every query."""

    jobId: str
    completions: int = 0
    succeeded: int = 0
    parts: int = 0
    storageContainer: str = ""
    storageBlobPrefix: str = ""
    backend: BackendName = "cluster"
