"""mrzip - turn Modrinth modpacks into ready-to-run zip archives"""

__version__ = "0.1.0"

# Config exports
from .config import Config, get_config

# Core exports
from .core import (
    ConversionOptions,
    EventBus,
    InjectedFile,
    JobState,
    MrzipError,
    ScriptOptions,
)

# Engine exports
from .engine import ConversionEngine, ConversionJob, EngineChannel

# IO exports
from .io import get_logger

# Manifest exports
from .manifest import Manifest, read_manifest

__all__ = [
    # Version
    "__version__",
    # Engine
    "ConversionEngine",
    "ConversionJob",
    "EngineChannel",
    # Core
    "ConversionOptions",
    "EventBus",
    "InjectedFile",
    "JobState",
    "MrzipError",
    "ScriptOptions",
    # Manifest
    "Manifest",
    "read_manifest",
    # Config
    "Config",
    "get_config",
    # IO
    "get_logger",
]
