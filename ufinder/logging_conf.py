"""Logging configuration built around structlog JSON logging."""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path

import structlog

_LOGGING_INITIALISED = False
_LOG_DIR: Path | None = None
# File handlers attached for the current log dir, with the logger that owns each
_FILE_HANDLERS: list[tuple[logging.Logger, logging.Handler]] = []

_JSON_FORMATTER = {
    "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
    "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
}


def _detach_file_handlers() -> None:
    while _FILE_HANDLERS:
        owner, handler = _FILE_HANDLERS.pop()
        owner.removeHandler(handler)
        handler.close()


def _add_file_handler(owner: logging.Logger, path: Path, level: int) -> None:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    root = logging.getLogger("ufinder")
    if root.handlers:
        handler.setFormatter(root.handlers[0].formatter)
    owner.addHandler(handler)
    _FILE_HANDLERS.append((owner, handler))


def _attach_file_handlers(log_dir: Path) -> None:
    global _LOG_DIR
    if _LOG_DIR == log_dir:
        return
    _detach_file_handlers()
    (log_dir / "sources").mkdir(parents=True, exist_ok=True)
    root = logging.getLogger("ufinder")
    _add_file_handler(root, log_dir / "ufinder.log", logging.INFO)
    _add_file_handler(root, log_dir / "error.log", logging.ERROR)
    _LOG_DIR = log_dir


def _raise_console_level(level: int) -> None:
    root = logging.getLogger("ufinder")
    root.setLevel(level)
    for handler in root.handlers:
        if not isinstance(handler, logging.FileHandler):
            handler.setLevel(level)


def configure_logging(verbose: bool = False, log_dir: Path | None = None) -> structlog.BoundLogger:
    """Configure structlog + stdlib handlers and return application logger.

    Later calls only switch the file handlers to ``log_dir`` and, when
    ``verbose`` is set, lower the console level to DEBUG.
    """

    global _LOGGING_INITIALISED
    if not _LOGGING_INITIALISED:
        level = "DEBUG" if verbose else "INFO"
        logging.config.dictConfig(
            {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {"plain": _JSON_FORMATTER},
                "handlers": {
                    "console": {
                        "class": "logging.StreamHandler",
                        "level": level,
                        "formatter": "plain",
                    },
                },
                "loggers": {
                    "ufinder": {
                        "handlers": ["console"],
                        "level": level,
                        "propagate": False,
                    },
                },
            }
        )

        # Forward to stdlib; JSON rendering happens at handler level
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_INITIALISED = True
    elif verbose:
        _raise_console_level(logging.DEBUG)
    if log_dir is not None:
        _attach_file_handlers(Path(log_dir).absolute())
    return structlog.get_logger("ufinder")


def source_logger(source_name: str) -> structlog.BoundLogger:
    """Return a logger bound to a specific source, with its own file when file logging is on."""

    configure_logging()
    logger_name = f"ufinder.source.{source_name}"
    if _LOG_DIR is not None:
        source_log_path = _LOG_DIR / "sources" / f"{source_name}.log"
        py_logger = logging.getLogger(logger_name)
        if not any(
            isinstance(handler, logging.FileHandler) and handler.baseFilename == str(source_log_path)
            for handler in py_logger.handlers
        ):
            _add_file_handler(py_logger, source_log_path, logging.INFO)
    return structlog.get_logger(logger_name).bind(source=source_name)


__all__ = ["configure_logging", "source_logger"]
