# config/settings.py
import os
import sys
from typing import Optional
from dotenv import load_dotenv
from pydantic import ValidationError, Field
from pydantic_settings import BaseSettings
from util.enums import Environment
import logging


if os.getenv("APP_ENV", Environment.DEV) == Environment.DEV:
    load_dotenv()

_log = logging.getLogger("config.settings")


class Settings(BaseSettings):
    # App
    APP_ENV: str = Field(..., validation_alias="APP_ENV")
    API_VERSION: str = "v1.1"

    # CORS & Limits
    ALLOWED_ORIGIN: str = Field(default="*", validation_alias="ALLOWED_ORIGIN")
    TRUST_PROXY: bool = Field(default=False, validation_alias="TRUST_PROXY")
    MAX_FILE_MB: int = Field(default=512, validation_alias="MAX_FILE_MB")

    # Rate limiting (Redis)
    REDIS_URL: str = Field(
        default="redis://localhost:6379/0", validation_alias="REDIS_URL"
    )
    RATE_LIMIT_ENABLED: bool = Field(default=True, validation_alias="RATE_LIMIT_ENABLED")
    RATE_LIMIT_TIMES: int = Field(default=60, validation_alias="RATE_LIMIT_TIMES")
    RATE_LIMIT_SECONDS: int = Field(default=60, validation_alias="RATE_LIMIT_SECONDS")

    # Blob storage
    STORAGE_CONNECTION_STRING: Optional[str] = Field(
        default=None, validation_alias="STORAGE_CONNECTION_STRING"
    )
    STORAGE_ACCOUNT_NAME: Optional[str] = Field(
        default=None, validation_alias="STORAGE_ACCOUNT_NAME"
    )
    STORAGE_CONTAINER_NAME: str = Field(
        default="jobs", validation_alias="STORAGE_CONTAINER_NAME"
    )

    # Partitioning & workers
    ITEMS_PER_JOB: int = Field(default=100, ge=1, validation_alias="ITEMS_PER_JOB")
    MAX_PARALLELISM: int = Field(default=10, ge=1, validation_alias="MAX_PARALLELISM")
    WORKER_IMAGE: str = Field(..., validation_alias="WORKER_IMAGE")
    WORKER_COMMAND: Optional[str] = Field(default=None, validation_alias="WORKER_COMMAND")
    WORKER_SECRET_NAME: Optional[str] = Field(
        default=None, validation_alias="WORKER_SECRET_NAME"
    )

    # Kubernetes (cluster backend)
    K8S_NAMESPACE: str = Field(default="default", validation_alias="K8S_NAMESPACE")
    K8S_IN_CLUSTER: bool = Field(default=False, validation_alias="K8S_IN_CLUSTER")
    KUBECONFIG: Optional[str] = Field(default=None, validation_alias="KUBECONFIG")
    JOB_BACKOFF_LIMIT: int = Field(default=6, validation_alias="JOB_BACKOFF_LIMIT")
    JOB_TTL_SECONDS_AFTER_FINISHED: Optional[int] = Field(
        default=None, validation_alias="JOB_TTL_SECONDS_AFTER_FINISHED"
    )

    # Azure Batch (managed backend); disabled unless all four are set
    BATCH_ACCOUNT_URL: Optional[str] = Field(default=None, validation_alias="BATCH_ACCOUNT_URL")
    BATCH_ACCOUNT_NAME: Optional[str] = Field(
        default=None, validation_alias="BATCH_ACCOUNT_NAME"
    )
    BATCH_ACCOUNT_KEY: Optional[str] = Field(default=None, validation_alias="BATCH_ACCOUNT_KEY")
    BATCH_POOL_ID: Optional[str] = Field(default=None, validation_alias="BATCH_POOL_ID")

    # Logging knobs
    LOGGER_NAME: str = "job-scheduler-api"
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    LOG_TO_FILE: bool = Field(default=False, validation_alias="LOG_TO_FILE")
    LOG_DIR: str = Field(default="logs", validation_alias="LOG_DIR")
    LOG_FILE_NAME: str = Field(default="app.log", validation_alias="LOG_FILE_NAME")
    LOG_MAX_BYTES: int = Field(
        default=50 * 1024 * 1024, validation_alias="LOG_MAX_BYTES"
    )
    LOG_BACKUP_COUNT: int = Field(default=5, validation_alias="LOG_BACKUP_COUNT")

    @property
    def managed_backend_enabled(self) -> bool:
        return all(
            (
                self.BATCH_ACCOUNT_URL,
                self.BATCH_ACCOUNT_NAME,
                self.BATCH_ACCOUNT_KEY,
                self.BATCH_POOL_ID,
            )
        )


try:
    settings = Settings()
except ValidationError as e:
    print("❌ Missing/invalid environment variables:", file=sys.stderr)
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", []))
        msg = err.get("msg", "")
        print(f" - {loc}: {msg}", file=sys.stderr)
    sys.exit(1)
except Exception as e:
    print(f"❌ Settings initialization failed: {e}", file=sys.stderr)
    sys.exit(1)
