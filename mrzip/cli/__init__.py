"""Main CLI entry point."""

import os

# Force color output for rich-click
os.environ.setdefault("FORCE_COLOR", "1")

# rich-click settings must be applied before it is imported as click
import rich_click.rich_click as rc

from rich.console import Console

rc.USE_RICH_MARKUP = True
rc.SHOW_ARGUMENTS = True
rc.GROUP_ARGUMENTS_OPTIONS = True
rc.SHOW_METAVARS_COLUMN = False
rc.APPEND_METAVARS_HELP = True
rc.MAX_WIDTH = 100

# Nord color scheme
rc.STYLE_OPTION = "bold #8fbcbb"  # Nord7 teal
rc.STYLE_ARGUMENT = "bold #88c0d0"  # Nord8 light blue
rc.STYLE_COMMAND = "bold #5e81ac"  # Nord10 blue
rc.STYLE_SWITCH = "#a3be8c"  # Nord14 green
rc.STYLE_METAVAR = "#d8dee9"  # Nord4 light gray
rc.STYLE_USAGE = "bold #8fbcbb"
rc.STYLE_OPTION_DEFAULT = "#4c566a"  # Nord3 dim gray
rc.STYLE_REQUIRED_SHORT = "bold #bf616a"  # Nord11 red
rc.STYLE_REQUIRED_LONG = "bold #bf616a"
rc.STYLE_HELPTEXT_FIRST_LINE = "bold"
rc.STYLE_HELPTEXT = "#d8dee9"  # Nord4 light gray

# Now import as click
import rich_click as click

from .. import __version__
from .config import config
from .constants import BANNER
from .convert import convert
from .info import info

console = Console()


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="mrzip")
def cli() -> None:
    """Turn Modrinth modpacks into ready-to-run zip archives.

    mrzip reads a pack's manifest, downloads every selected file and
    writes them, together with the pack's overrides, into one archive.
    Server builds leave out client-only files and add start scripts.

    QUICK START: mrzip convert MyPack.mrpack --server

    EXAMPLES:
    Inspect a pack:          mrzip info MyPack.mrpack
    Client archive:          mrzip convert MyPack.mrpack -o dist/
    Server with 6-12 GB:     mrzip convert MyPack.mrpack --server --min-ram 6 --max-ram 12
    Add a local mod:         mrzip convert MyPack.mrpack --inject extra.jar

    CONFIGURATION:
    • Configuration file: ~/.config/mrzip/mrzip.yaml (mrzip config --init)
    • MRZIP_DEBUG=1 shows tracebacks of event handler errors
    """


# Register commands
cli.add_command(info)
cli.add_command(convert)
cli.add_command(config)


def main() -> None:
    import sys

    if "--help" in sys.argv or "-h" in sys.argv or len(sys.argv) == 1:
        console.print(BANNER)

    cli()


if __name__ == "__main__":
    main()
