"""Output archive assembly and startup scripts."""

from .builder import ArchiveBuilder, EntryCategory
from .scripts import (
    StartupScripts,
    build_java_command,
    default_server_jar,
    render_scripts,
    resolve_script_options,
)

__all__ = [
    "ArchiveBuilder",
    "EntryCategory",
    "StartupScripts",
    "build_java_command",
    "default_server_jar",
    "render_scripts",
    "resolve_script_options",
]
