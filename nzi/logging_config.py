"""Logging configuration with file rotation."""

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

from .config import get_config_path


def log_dir() -> Path:
    return get_config_path().parent / "logs"


def setup_logging(level: int = logging.INFO, console: bool = False, directory: Optional[Path] = None) -> logging.Logger:
    """Configure the ``nzi`` logger with a rotating file handler.

    The interactive dashboard owns the terminal, so a console handler is
    only added on request.
    """
    directory = directory or log_dir()
    directory.mkdir(parents=True, exist_ok=True)
    log_file = directory / "nzi.log"

    fmt = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Rotating file handler: 5 MB max, 3 backups
    file_handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8",
    )
    file_handler.setFormatter(fmt)
    file_handler.setLevel(level)

    root = logging.getLogger("nzi")
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(fmt)
        console_handler.setLevel(level)
        root.addHandler(console_handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return root
