"""
Logging setup shared by every component.

Console output goes through Rich; a rotating file handler is added when
``LoggingConfig.log_file`` is set. Components obtain loggers with
``get_logger("<component>")`` so they all live under the ``automation``
namespace.
"""

import logging
from contextlib import suppress
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from .config import LoggingConfig

ROOT_LOGGER_NAME = "automation"

_loggers: dict[str, logging.Logger] = {}

console = Console(stderr=True)


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Configure the root logger; safe to call again to apply a new config."""
    if config is None:
        config = LoggingConfig()

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        with suppress(Exception):
            handler.flush()
        with suppress(Exception):
            handler.close()
    root_logger.handlers.clear()

    level = getattr(logging, config.level)
    root_logger.setLevel(level)
    logging.getLogger(ROOT_LOGGER_NAME).setLevel(level)

    console_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    console_handler.setLevel(level)
    root_logger.addHandler(console_handler)

    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
            encoding="utf-8",
            delay=True,
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(config.format))
        root_logger.addHandler(file_handler)

    get_logger("setup").info("Logging configured: level=%s", config.level)


def get_logger(name: str) -> logging.Logger:
    """Return the ``automation.<name>`` logger, creating it on first use."""
    if name not in _loggers:
        _loggers[name] = logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
    return _loggers[name]
