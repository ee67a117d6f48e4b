"""Centralized logging configuration for the patching project."""

import logging
import sys
from pathlib import Path
from typing import Optional


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(
    name: str, log_file: Optional[str] = None, level: Optional[str] = None
) -> logging.Logger:
    """Setup a logger with console and optional file output.

    When the application has already configured the root logger (the CLI
    does), records propagate to it and pick up its handlers and level.
    Otherwise a console handler is attached so library use still logs.

    Examples:
        # Console only
        logger = setup_logger(__name__)

        # Console + file
        logger = setup_logger(__name__, "patching.log")

        # Infrastructure module
        logger = setup_logger("infrastructure.ssm_client", "aws.log")
    """
    logger = logging.getLogger(name)
    if level:
        try:
            logger.setLevel(getattr(logging, level.upper()))
        except AttributeError:
            logger.setLevel(logging.INFO)

    if not logger.handlers:
        formatter = logging.Formatter(LOG_FORMAT)

        if not logging.getLogger().handlers:
            stream_handler = logging.StreamHandler(sys.stdout)
            stream_handler.setFormatter(formatter)
            logger.addHandler(stream_handler)
            if logger.level == logging.NOTSET:
                logger.setLevel(logging.INFO)

        if log_file:
            Path("logs").mkdir(exist_ok=True)
            file_handler = logging.FileHandler(f"logs/{log_file}")
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger


def get_infrastructure_logger(module_name: str) -> logging.Logger:
    """Get logger for infrastructure modules."""
    return setup_logger(f"infrastructure.{module_name}")
