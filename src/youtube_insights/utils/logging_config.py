"""Logging configuration for the insights pipeline."""

import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level: str = "INFO", log_dir: Optional[str] = None) -> None:
    """
    Configure root logging with a console handler and optional log files.

    When ``log_dir`` is given, every record at ``level`` or above goes to
    ``app.log`` and errors are additionally written to ``error.log``.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for the log files
    """
    handlers = [logging.StreamHandler()]

    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)

        handlers.append(logging.FileHandler(path / "app.log", encoding="utf-8"))

        error_handler = logging.FileHandler(path / "error.log", encoding="utf-8")
        error_handler.setLevel(logging.ERROR)
        handlers.append(error_handler)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True
    )

    # Provider SDKs are chatty at DEBUG
    for noisy in ("httpx", "httpcore", "openai", "googleapiclient.discovery_cache"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
