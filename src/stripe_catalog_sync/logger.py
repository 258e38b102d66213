"""
Logging utilities for catalog sync runs
"""
import logging
import sys
from pathlib import Path
from typing import Optional

PACKAGE_LOGGER = "stripe_catalog_sync"


def setup_logger(
    name: str = PACKAGE_LOGGER,
    log_file: Optional[Path] = None,
    level: str = "INFO"
) -> logging.Logger:
    """Set up logger with both file and console handlers"""

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    # Clear any existing handlers
    logger.handlers.clear()

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level.upper()))
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(getattr(logging, level.upper()))
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_run_logger(command: str, logs_dir: Optional[Path], level: str = "INFO") -> logging.Logger:
    """Get the package logger for one command run, logging to <logs_dir>/<command>.log"""
    log_file = logs_dir / f"{command}.log" if logs_dir else None
    return setup_logger(PACKAGE_LOGGER, log_file=log_file, level=level)
