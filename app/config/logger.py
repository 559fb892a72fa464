"""Loguru setup: console output plus an application log and an error log.

Request and performance lines are tagged (``REQUEST``, ``PERFORMANCE``) so they
can be grepped out of ``app.log``.
"""

import sys
from datetime import datetime
from pathlib import Path

from fastapi import Request
from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def setup_logging(log_level: str = "INFO", logs_dir: str = "logs") -> None:
    """Replace the default handler with the console, app and error sinks."""
    logs_path = Path(logs_dir)
    logs_path.mkdir(parents=True, exist_ok=True)

    logger.remove()
    logger.add(sys.stdout, format=CONSOLE_FORMAT, level=log_level, colorize=True, diagnose=False)
    for filename, level, retention in (("app.log", "DEBUG", "7 days"), ("errors.log", "ERROR", "30 days")):
        logger.add(
            logs_path / filename,
            format=FILE_FORMAT,
            level=level,
            rotation="10 MB",
            retention=retention,
            encoding="utf-8",
            diagnose=False,
        )


def log_request_start(request: Request) -> None:
    """Log the start of a request."""
    logger.info(
        "REQUEST START: {method} {path}",
        method=request.method,
        path=request.url.path,
        extra={
            "client_ip": request.client.host if request.client else None,
            "user_agent": request.headers.get("user-agent"),
            "timestamp": datetime.now().isoformat(),
        }
    )


def log_request_end(request: Request, status_code: int, process_time: float) -> None:
    """Log the completion of a request."""
    logger.info(
        "REQUEST END: {method} {path} - {status_code} ({process_time:.4f}s)",
        method=request.method,
        path=request.url.path,
        status_code=status_code,
        process_time=round(process_time, 4),
    )


def log_request_error(request: Request, error: Exception, process_time: float) -> None:
    """Log a request that raised past the application."""
    logger.error(
        "REQUEST ERROR: {method} {path} - {error} ({process_time:.4f}s)",
        method=request.method,
        path=request.url.path,
        error=str(error),
        process_time=round(process_time, 4),
        extra={"error_type": type(error).__name__},
    )


def log_performance(operation: str, duration: float, **kwargs) -> None:
    """Log the duration of an upstream call."""
    logger.info(
        "PERFORMANCE: {operation} completed in {duration:.4f}s",
        operation=operation,
        duration=duration,
        **kwargs
    )


# Export logger for use in other modules
app_logger = logger
