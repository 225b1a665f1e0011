"""
Centralized logging configuration for the Supply Chain Console.

Ledger calls run as asyncio coroutines inside Flask request threads, so every
log record is stamped with both the thread name and the current asyncio task
name. That is enough to follow one transition from request to ledger answer.

Outputs:
    stdout always; in production also a rotating application log and a
    separate ERROR-only log under ./logs

Log Format:
    2026-10-17 10:15:30 [INFO    ] [MainThread/-] app - Starting application
    2026-10-17 10:15:31 [DEBUG   ] [Thread-3/Task-1] services.catalog_service - Loaded 3 products
    2026-10-17 10:15:32 [INFO    ] [Thread-4/Task-1] transition.startShipping.7 - Accepted

Usage:
    setup_logging(log_level=logging.DEBUG, enable_file_logging=False)
    logger = get_logger(__name__)

    # For one transition request
    transition_logger = get_transition_logger("startShipping", 7)
"""

import asyncio
import logging
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional


APP_NAMESPACE = "supply_chain_web"


# =============================================================================
# EXECUTION CONTEXT FILTER
# =============================================================================

class ExecutionContextFilter(logging.Filter):
    """
    Logging filter that adds thread and asyncio task context to log records.

    Adds:
        - thread_name: Name of the current thread
        - task_name: Name of the running asyncio task, or "-" outside a loop
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.thread_name = threading.current_thread().name

        try:
            task = asyncio.current_task()
        except RuntimeError:
            task = None
        record.task_name = task.get_name() if task is not None else "-"

        # Never drops records, only annotates them
        return True


# =============================================================================
# LOGGING SETUP
# =============================================================================

LOG_FORMAT = "%(asctime)s [%(levelname)-8s] [%(thread_name)s/%(task_name)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5

# web3 logs every RPC payload at DEBUG
THIRD_PARTY_LOGGERS = ("web3", "aiohttp", "asyncio")


def _make_handler(
    handler: logging.Handler,
    level: int,
    formatter: logging.Formatter,
    context_filter: logging.Filter
) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(context_filter)
    return handler


def setup_logging(
    app_name: str = APP_NAMESPACE,
    log_level: int = logging.INFO,
    log_dir: Optional[Path] = None,
    enable_file_logging: bool = True,
) -> logging.Logger:
    """
    Configure the application logger tree.

    Handlers (all stamped by ExecutionContextFilter):
    1. stdout, always
    2. <log_dir>/<app_name>.log, rotating, when file logging is on
    3. <log_dir>/<app_name>_error.log, ERROR and above only

    Third-party loggers are held at WARNING unless log_level is DEBUG.

    Args:
        app_name: Name of the application logger (default: "supply_chain_web")
        log_level: Minimum log level (default: INFO)
        log_dir: Log file directory (default: ./logs next to this file)
        enable_file_logging: Whether to write log files (default: True)

    Returns:
        The configured application logger
    """
    app_logger = logging.getLogger(app_name)
    app_logger.setLevel(log_level)
    app_logger.propagate = False

    # The app factory may run more than once per process (tests)
    for existing in list(app_logger.handlers):
        app_logger.removeHandler(existing)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    context_filter = ExecutionContextFilter()

    app_logger.addHandler(
        _make_handler(logging.StreamHandler(sys.stdout), log_level, formatter, context_filter)
    )

    log_file = None
    if enable_file_logging:
        log_dir = log_dir or Path(__file__).parent / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"{app_name}.log"

        for path, level in ((log_file, log_level), (log_dir / f"{app_name}_error.log", logging.ERROR)):
            rotating = RotatingFileHandler(
                filename=path,
                maxBytes=MAX_LOG_BYTES,
                backupCount=LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
            app_logger.addHandler(_make_handler(rotating, level, formatter, context_filter))

    third_party_level = logging.DEBUG if log_level <= logging.DEBUG else logging.WARNING
    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    app_logger.info(
        f"Logging at {logging.getLevelName(log_level)}"
        + (f", writing to {log_file}" if log_file else ", console only")
    )
    return app_logger


# =============================================================================
# LOGGER FACTORY FUNCTIONS
# =============================================================================

def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger under the application namespace.

    Args:
        name: Dotted module name

    Returns:
        Logger named "supply_chain_web.<name>"

    Example:
        # In services/catalog_service.py
        logger = get_logger(__name__)
        # Logger name: "supply_chain_web.services.catalog_service"
    """
    if not name.startswith(APP_NAMESPACE):
        name = f"{APP_NAMESPACE}.{name}"
    return logging.getLogger(name)


def get_transition_logger(operation: str, product_id: Any) -> logging.Logger:
    """
    Get a logger for one transition request.

    The operation and product ID are part of the logger name, so the log
    of a single product's transitions can be filtered by prefix.

    Example:
        get_transition_logger("startShipping", 7)
        # Logger name: "supply_chain_web.transition.startShipping.7"
    """
    safe_id = str(product_id).replace(".", "_")[:32] or "unknown"
    return logging.getLogger(f"{APP_NAMESPACE}.transition.{operation}.{safe_id}")
