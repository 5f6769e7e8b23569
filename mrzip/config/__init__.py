"""Configuration for mrzip."""

from .config import Config, get_config, load_config
from .schema import MrzipConfig

__all__ = [
    "Config",
    "MrzipConfig",
    "get_config",
    "load_config",
]
