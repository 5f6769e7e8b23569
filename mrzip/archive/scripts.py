"""Server startup script rendering.

Pure functions: no file system or network access, parameters are used
exactly as given.
"""

from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from ..core.constants import MOD_ARCHIVE_SUFFIX, ScriptDefaults
from ..core.types import ScriptOptions
from ..manifest.schema import Manifest


@dataclass(frozen=True)
class StartupScripts:
    """Rendered scripts, one per host shell convention."""

    sh: str
    bat: str

    def entries(self) -> List[Tuple[str, str, int]]:
        """(archive name, content, unix mode) for each script."""
        return [
            (ScriptDefaults.SH_NAME, self.sh, 0o755),
            (ScriptDefaults.BAT_NAME, self.bat, 0o644),
        ]


def build_java_command(options: ScriptOptions) -> str:
    """The java invocation shared by both scripts."""
    parts = [f"java -Xms{options.min_ram}G -Xmx{options.max_ram}G"]
    if options.java_flags and options.java_flags.strip():
        parts.append(options.java_flags.strip())
    parts.append(f"-jar {options.server_jar_name} nogui")
    return " ".join(parts)


def render_scripts(options: ScriptOptions) -> StartupScripts:
    """Render start.sh and start.bat for the given options."""
    command = build_java_command(options)

    sh = f"""#!/usr/bin/env bash
# Generated by mrzip
cd "$(dirname "$0")"
{command}
"""

    bat_lines = [
        "@echo off",
        "REM Generated by mrzip",
        'cd /d "%~dp0"',
        command,
        "pause",
    ]
    bat = "\r\n".join(bat_lines) + "\r\n"

    return StartupScripts(sh=sh, bat=bat)


def default_server_jar(
    manifest: Optional[Manifest] = None, selected_loader_filename: Optional[str] = None
) -> str:
    """Jar the startup scripts launch.

    The caller's loader choice wins; otherwise a single jar listed at the
    pack root is taken, and ``server.jar`` is the last resort.
    """
    if selected_loader_filename:
        return selected_loader_filename
    if manifest is not None:
        root_jars = [
            path
            for path in manifest.paths
            if "/" not in path and path.lower().endswith(MOD_ARCHIVE_SUFFIX)
        ]
        if len(root_jars) == 1:
            return root_jars[0]
    return ScriptDefaults.SERVER_JAR


def resolve_script_options(
    options: Optional[ScriptOptions],
    manifest: Optional[Manifest] = None,
    selected_loader_filename: Optional[str] = None,
) -> ScriptOptions:
    """Fill in the server jar when the caller left the default in place."""
    options = options or ScriptOptions()
    if options.server_jar_name == ScriptDefaults.SERVER_JAR:
        jar = default_server_jar(manifest, selected_loader_filename)
        if jar != options.server_jar_name:
            return replace(options, server_jar_name=jar)
    return options
