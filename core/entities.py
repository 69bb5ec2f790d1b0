# core/entities.py
from dataclasses import dataclass


@dataclass(frozen=True)
class JobIdentity:
    """
    Identity minted once per submission.

    job_id names the backend job; address_prefix roots every partition blob.
    """

    period: str  # YYYY-MM
    unique_suffix: str

    @property
    def job_id(self) -> str:
        return f"{self.period}-{self.unique_suffix}"

    @property
    def address_prefix(self) -> str:
        return f"{self.period}/{self.unique_suffix}"


@dataclass(frozen=True)
class WorkPartition:
    index: int  # 0-based
    address: str


@dataclass(frozen=True)
class JobHandle:
    name: str
    backend: str
    completions: int
    parallelism: int
