#!/usr/bin/env python3
"""
Logger setup for Receipt Identity
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from .config import LOGGING, PATHS


def setup_logger(log_level: str = LOGGING['level'], log_dir: Optional[Path] = None) -> logging.Logger:
    """
    Setup logging configuration

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for log files (defaults to 'logs/')

    Returns:
        Configured logger instance
    """
    log_dir = Path(log_dir or PATHS['log_folder'])

    # Create log directory
    log_dir.mkdir(parents=True, exist_ok=True)

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format=LOGGING['format'],
        handlers=[
            logging.FileHandler(log_dir / LOGGING['filename']),
            logging.StreamHandler(sys.stdout)
        ]
    )

    return logging.getLogger('receipt_identity')
