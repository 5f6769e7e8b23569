"""XDG Base Directory support for mrzip.

Configuration lives in ~/.config/mrzip/, overridable through
$XDG_CONFIG_HOME.
"""

import os
from pathlib import Path


def get_config_dir() -> Path:
    """Get the configuration directory for mrzip.

    Returns ~/.config/mrzip/ by default, or respects $XDG_CONFIG_HOME if set.
    Does NOT create the directory.
    """
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        return Path(xdg_config_home) / "mrzip"
    return Path.home() / ".config" / "mrzip"


def get_default_config_path() -> Path:
    """Path of the user configuration file."""
    return get_config_dir() / "mrzip.yaml"
