# core/identity.py
from datetime import datetime, timezone
from typing import Final, Optional
from uuid import uuid4
from core.entities import JobIdentity

PERIOD_FORMAT: Final[str] = "%Y-%m"
SUFFIX_LENGTH: Final[int] = 12


def new_identity(now: Optional[datetime] = None) -> JobIdentity:
    """
    Mint a job identity for a submission made at `now` (UTC when omitted).
    The suffix stays lowercase alphanumeric so the job id is a valid
    Kubernetes object name and Batch job id.
    """
    when = now or datetime.now(timezone.utc)
    return JobIdentity(
        period=when.strftime(PERIOD_FORMAT),
        unique_suffix=uuid4().hex[:SUFFIX_LENGTH],
    )
