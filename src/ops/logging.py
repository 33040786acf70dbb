"""
Logging setup.
"""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(log_path: str, log_level: str) -> None:
    log_dir = os.path.dirname(log_path)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir)

    logging.basicConfig(
        level=getattr(logging, log_level),
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(log_path),
            logging.StreamHandler(),
        ],
        force=True,
    )


def module_logger(module_name: str, parent: logging.Logger = None) -> logging.Logger:
    """Logger that relays a module subprocess's stderr."""
    if parent is not None:
        return parent.getChild(f"module.{module_name}")
    return logging.getLogger(f"module.{module_name}")
