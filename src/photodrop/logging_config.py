from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path


FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(
    level: str,
    log_file: Path | None = None,
    max_bytes: int = 1024 * 1024,
    backup_count: int = 3,
) -> None:
    """Configure logging for console and optional rotating file output.

    Parameters
    ----------
    level:
        Log level name (e.g., "INFO", "DEBUG").
    log_file:
        If provided, logs are also written to this file and rotated once it
        grows past ``max_bytes``.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count)
        )

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=FORMAT,
        handlers=handlers,
        force=True,
    )
