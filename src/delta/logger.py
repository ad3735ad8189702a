"""Logging setup with rich console output.

Usage:
    from delta.logger import get_logger

    logger = get_logger(__name__)
    logger.info("Fetching commits …")
"""

import logging
import os
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

console = Console(stderr=True)


def _rich_handler() -> RichHandler:
    handler = RichHandler(
        console=console,
        show_time=False,
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """Return a logger for ``name``.

    Handlers live on the root logger (see :func:`setup_logging`), so records
    propagate there (and to pytest's caplog).
    """
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level.upper())
    return logger


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    console_output: bool = True,
) -> None:
    """Configure the root logger once at the entry point.

    Args:
        level: Default level; ``LOG_LEVEL`` overrides it.
        log_file: Also write plain-text records to this file.
        console_output: Attach the rich console handler. The TUI turns this
            off so log lines don't draw over the screen.
    """
    level = os.getenv("LOG_LEVEL", level).upper()

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    if console_output:
        root.addHandler(_rich_handler())

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root.addHandler(file_handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
