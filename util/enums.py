# util/enums.py
from enum import Enum
from typing import NamedTuple
from fastapi import status


class Color(str, Enum):
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    BOLD = "\033[1m"

    def __str__(self):
        return self.value


class Environment(str, Enum):
    DEV = "dev"
    PROD = "prod"


class BackendKind(str, Enum):
    CLUSTER = "cluster"
    MANAGED = "managed"


class ErrorInfo(NamedTuple):
    message: str
    http_status: int


class ErrorMessage(Enum):
    NO_WORK_PRODUCED = ErrorInfo(
        "Input file generated 0 jobs", status.HTTP_400_BAD_REQUEST
    )
    MISSING_JOB_ID = ErrorInfo("Missing job id", status.HTTP_400_BAD_REQUEST)
    JOB_NOT_FOUND = ErrorInfo("Job not found", status.HTTP_404_NOT_FOUND)
    RESULT_NOT_FOUND = ErrorInfo("Job result not found", status.HTTP_404_NOT_FOUND)
    MANAGED_BACKEND_DISABLED = ErrorInfo(
        "Managed batch backend is not configured", status.HTTP_400_BAD_REQUEST
    )
    INTERNAL_ERROR = ErrorInfo("Internal Error", status.HTTP_502_BAD_GATEWAY)
