"""Show what is inside a pack."""

import sys
from collections import Counter
from pathlib import Path

import rich_click as click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..core.exceptions import MrzipError
from ..manifest import ManifestReader, list_overrides, open_pack
from ..manifest.selection import is_client_only, is_server_only
from ..ui.display_utils import DisplayUtils
from .constants import ENV_COLORS, NORD_BLUE, NORD_CYAN, NORD_DARK

console = Console()
display = DisplayUtils(console)


def format_size(num_bytes: int) -> str:
    """Human readable byte count (binary units)."""
    if num_bytes < 1024:
        return f"{num_bytes} B"
    size = num_bytes / 1024
    for unit in ("KiB", "MiB"):
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GiB"


@click.command()
@click.argument("pack", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--files", "show_files", is_flag=True, help="List every file of the manifest")
def info(pack: Path, show_files: bool):
    """Show the manifest summary of a pack.

    Prints loader, game version, file counts and sizes, and how many
    files a server build would leave out.
    """
    try:
        manifest = ManifestReader().read(pack)
        with open_pack(pack) as archive:
            client_overrides = len(list_overrides(archive, server_mode=False))
            server_overrides = len(list_overrides(archive, server_mode=True))
    except MrzipError as e:
        display.error(str(e), title="! Invalid Pack")
        sys.exit(1)

    table = Table(box=None, padding=(0, 2), show_header=False)
    table.add_column("Field", style=f"bold {NORD_CYAN}")
    table.add_column("Value")

    table.add_row("Name", manifest.name)
    table.add_row("Version", manifest.version_id)
    if manifest.summary:
        table.add_row("Summary", manifest.summary)
    table.add_row("Minecraft", manifest.game_version)
    loader = manifest.loader_display_name
    if manifest.loader_version:
        loader += f" {manifest.loader_version}"
    table.add_row("Loader", loader)
    table.add_row("Files", str(len(manifest.files)))
    table.add_row("Download size", format_size(manifest.total_size))
    table.add_row("Overrides", f"{client_overrides} client / {server_overrides} server")

    env = Counter()
    for entry in manifest.files:
        if is_server_only(entry):
            env["server only"] += 1
        elif is_client_only(entry):
            env["client only"] += 1
        else:
            env["both sides"] += 1
    table.add_row(
        "Sides",
        ", ".join(f"{count} {label}" for label, count in sorted(env.items())) or "-",
    )

    console.print(
        Panel(
            table,
            title=f"[bold {NORD_BLUE}]{manifest.name}[/bold {NORD_BLUE}]",
            border_style=NORD_DARK,
            expand=False,
        )
    )

    if show_files:
        files = Table(box=None, padding=(0, 2), header_style=f"bold {NORD_CYAN}")
        files.add_column("Path")
        files.add_column("Size", justify="right", style="dim")
        files.add_column("Client")
        files.add_column("Server")
        for entry in manifest.files:
            client = _env_cell(entry.env.client) if entry.env else "-"
            server = _env_cell(entry.env.server) if entry.env else "-"
            files.add_row(entry.path, format_size(entry.file_size), client, server)
        console.print(files)


def _env_cell(level: str) -> str:
    color = ENV_COLORS.get(level)
    return f"[{color}]{level}[/{color}]" if color else level
