"""
MT5 CRM Backend - Logger Configuration
Centralized logging with loguru

Every line carries the id of the request that produced it. Admin actions
that move money or change users are also written to audit.log.
"""
import sys
import uuid
from pathlib import Path

from fastapi import FastAPI, Request
from loguru import logger

from mt5crm.config import settings


REQUEST_ID_HEADER = "X-Request-ID"

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<magenta>{extra[request_id]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[request_id]} | {name}:{function}:{line} - {message}"
AUDIT_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {extra[request_id]} | {message}"


def is_audit(record) -> bool:
    return record["extra"].get("audit", False)


# Admin actions: `audit.info(...)` goes to every sink plus audit.log
audit = logger.bind(audit=True)


def configure_logging() -> None:
    logger.remove()
    # Lines logged outside a request (startup, shutdown) get a dash
    logger.configure(extra={"request_id": "-"})

    logger.add(
        sys.stdout,
        colorize=True,
        format=CONSOLE_FORMAT,
        level="DEBUG" if settings.DEBUG else settings.LOG_LEVEL,
    )

    if not settings.LOG_TO_FILE:
        return

    log_path = Path(settings.LOG_DIR)
    log_path.mkdir(parents=True, exist_ok=True)

    logger.add(
        log_path / "app.log",
        rotation="10 MB",
        retention="30 days",
        compression="gz",
        format=FILE_FORMAT,
        level="DEBUG",
    )
    logger.add(
        log_path / "error.log",
        rotation="10 MB",
        retention="30 days",
        compression="gz",
        format=FILE_FORMAT,
        level="ERROR",
    )
    # Kept for a year, uncompressed so it stays greppable
    logger.add(
        log_path / "audit.log",
        rotation="50 MB",
        retention="365 days",
        format=AUDIT_FORMAT,
        filter=is_audit,
        level="INFO",
    )


def install_request_id(app: FastAPI) -> None:
    """Tag every log line of a request with its id and echo the id back."""

    @app.middleware("http")
    async def request_id(request: Request, call_next):
        rid = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        # Client-supplied ids end up in log files
        rid = rid[:64].replace("\n", " ").replace("\r", " ")
        with logger.contextualize(request_id=rid):
            response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid
        return response


configure_logging()


__all__ = ["logger", "audit", "configure_logging", "install_request_id", "is_audit", "REQUEST_ID_HEADER"]
