"""structlog setup for kswap.

Every run logs twice: to stderr, at the level picked by ``--verbose`` and
``--debug``, and to a rotating JSON file that always receives DEBUG events.
The file is what an operator reads afterwards to see which controller a
replace scaled down, which pod it deleted and which step failed. Console
output goes to stderr so tables printed by ``kswap k8s replaced`` stay
pipeable.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timedelta
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog

LOG_DIR = Path.home() / ".local" / "state" / "kswap"
LOG_FILE = LOG_DIR / "kswap.log"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5
RETENTION_DAYS = 30

# The kubernetes SDK and urllib3 log whole request bodies at DEBUG
NOISY_LOGGERS = ("kubernetes", "urllib3")

# console, file
HANDLER_NAMES = ("kswap-console", "kswap-file")


def _cleanup_old_logs() -> None:
    """Delete rotated kswap logs not touched for RETENTION_DAYS."""
    if not LOG_DIR.exists():
        return
    cutoff = datetime.now() - timedelta(days=RETENTION_DAYS)
    for log_file in LOG_DIR.glob(f"{LOG_FILE.name}*"):
        try:
            if datetime.fromtimestamp(log_file.stat().st_mtime) < cutoff:
                log_file.unlink()
        except OSError:
            pass  # another kswap run may be rotating the same file


def _setup_file_logging(shared_processors: list[structlog.types.Processor]) -> None:
    """Attach the rotating JSON audit log to the root logger."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    _cleanup_old_logs()

    file_handler = RotatingFileHandler(LOG_FILE, maxBytes=MAX_LOG_SIZE, backupCount=BACKUP_COUNT)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=shared_processors,
        )
    )
    file_handler.set_name(HANDLER_NAMES[1])
    logging.getLogger().addHandler(file_handler)


def _console_handler(
    level: int, shared_processors: list[structlog.types.Processor], json_output: bool, debug: bool
) -> logging.Handler:
    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
            exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=debug),
        )
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=shared_processors)
    )
    handler.set_name(HANDLER_NAMES[0])
    return handler


def configure_logging(
    verbose: bool = False,
    debug: bool = False,
    json_output: bool = False,
    log_to_file: bool = True,
) -> None:
    """Configure structlog and the stdlib root logger for a kswap run.

    Safe to call more than once: handlers installed by an earlier call are
    closed and replaced.

    Args:
        verbose: Show INFO events such as each quiesce, delete and create.
        debug: Show DEBUG events, including kubernetes SDK request logging.
        json_output: Render console events as JSON lines.
        log_to_file: Also write ~/.local/state/kswap/kswap.log.
    """
    if debug:
        log_level = logging.DEBUG
    elif verbose:
        log_level = logging.INFO
    else:
        log_level = logging.WARNING

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    # The file log wants DEBUG even when the console does not, so structlog
    # itself does not filter; the handlers do.
    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if log_to_file else log_level
        ),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if handler.get_name() in HANDLER_NAMES:
            root_logger.removeHandler(handler)
            handler.close()
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(_console_handler(log_level, shared_processors, json_output, debug))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug else logging.WARNING)

    if log_to_file:
        _setup_file_logging(shared_processors)


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """Get a logger, optionally bound to context such as a namespace.

    Args:
        name: Logger name. If None, uses the calling module's name.
        **initial_context: Key-value pairs bound to every event.

    Returns:
        A bound structlog logger.
    """
    logger: structlog.BoundLogger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger
