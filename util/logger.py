# util/logger.py
import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from typing import Iterator
from config.settings import settings

logging.captureWarnings(True)

NO_JOB = "-"
_current_job: ContextVar[str] = ContextVar("current_job", default=NO_JOB)


@contextmanager
def bind_job(job_id: str) -> Iterator[None]:
    """Tag every record logged inside the block (same task) with `job_id`."""
    token = _current_job.set(job_id or NO_JOB)
    try:
        yield
    finally:
        _current_job.reset(token)


class JobContextFilter(logging.Filter):
    """Stamp `record.job_id` from the bound job; SDK records get "-"."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "job_id"):
            record.job_id = _current_job.get()  # type: ignore[attr-defined]
        return True


class ColoredFormatter(logging.Formatter):
    COLORS = {
        "DEBUG": "\033[37m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[41m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        if getattr(record, "_colorize", False):
            lvl = record.levelname
            record.levelname = f"{self.COLORS.get(lvl, self.RESET)}{lvl}{self.RESET}"
            try:
                return super().format(record)
            finally:
                record.levelname = lvl
        return super().format(record)


def _handler(handler: logging.Handler, level: int, fmt: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(fmt)
    handler.addFilter(JobContextFilter())
    return handler


def init_logger() -> logging.Logger:
    """
    Idempotent logger init:
    - Always logs to stdout (the cluster's log collector reads it).
    - Each line carries job=<id> while a request works on a job, else job=-.
    - Writes to LOG_DIR/LOG_FILE_NAME only when settings.LOG_TO_FILE is True.
    - Quiets the per-request INFO chatter of the Azure and Kubernetes SDKs.
    """
    root = logging.getLogger()
    if getattr(root, "_scheduler_inited", False):
        return logging.getLogger(settings.LOGGER_NAME)

    level = getattr(logging, (settings.LOG_LEVEL or "INFO").upper(), logging.INFO)
    root.setLevel(level)

    for h in list(root.handlers):
        root.removeHandler(h)

    text_fmt = "%(asctime)s %(levelname)s %(name)s [job=%(job_id)s] - %(message)s"
    date_fmt = "%Y-%m-%dT%H:%M:%S%z"

    ch = _handler(
        logging.StreamHandler(sys.stdout),
        level,
        ColoredFormatter(text_fmt, datefmt=date_fmt),
    )
    old_emit = ch.emit

    def emit_with_flag(record: logging.LogRecord):
        record._colorize = True  # type: ignore[attr-defined]
        try:
            return old_emit(record)
        finally:
            record._colorize = False  # type: ignore[attr-defined]

    ch.emit = emit_with_flag  # type: ignore[assignment]
    root.addHandler(ch)

    if settings.LOG_TO_FILE:
        os.makedirs(settings.LOG_DIR, exist_ok=True)
        fh = RotatingFileHandler(
            os.path.join(settings.LOG_DIR, settings.LOG_FILE_NAME),
            maxBytes=settings.LOG_MAX_BYTES,
            backupCount=settings.LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        root.addHandler(_handler(fh, level, logging.Formatter(text_fmt, datefmt=date_fmt)))

    for noisy in ("azure", "msrest", "kubernetes_asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)

    root._scheduler_inited = True
    logger = logging.getLogger(settings.LOGGER_NAME)
    logger.debug("Logger initialized", extra={"component": "bootstrap"})
    return logger
