"""Input/output helpers: logging and on-disk locations."""

from .directories import get_config_dir, get_default_config_path
from .logger import get_logger, setup_logging

__all__ = [
    "get_logger",
    "setup_logging",
    "get_config_dir",
    "get_default_config_path",
]
