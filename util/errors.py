# util/errors.py
from azure.batch.models import BatchErrorException
from azure.core.exceptions import AzureError
from fastapi import HTTPException, status
from kubernetes_asyncio.client.exceptions import ApiException
from util.enums import ErrorMessage


class AppError(HTTPException):
    # Flow: raise AppError to short-circuit with a typed status & message.
    def __init__(
        self, message: str, http_status: int = status.HTTP_400_BAD_REQUEST
    ) -> None:
        super().__init__(status_code=http_status, detail=message)

    @classmethod
    def of(cls, error: ErrorMessage) -> "AppError":
        return cls(error.value.message, error.value.http_status)


# Failures raised by the storage / backend SDKs; surfaced as 502 by main.py.
UPSTREAM_ERRORS = (AzureError, ApiException, BatchErrorException)
