"""Create and inspect the mrzip configuration."""

import yaml
import rich_click as click
from rich.console import Console
from rich.syntax import Syntax

from ..config import Config
from ..io.directories import get_default_config_path
from ..ui.display_utils import DisplayUtils

console = Console()
display = DisplayUtils(console)


@click.command()
@click.option("--init", "init_config", is_flag=True, help="Write an example configuration file")
@click.option("--show", is_flag=True, help="Print the effective configuration")
@click.option(
    "--force", "-f", is_flag=True, help="Overwrite an existing file (use with --init)"
)
def config(init_config: bool, show: bool, force: bool):
    """Create or show the configuration.

    The file lives at ~/.config/mrzip/mrzip.yaml (or under
    $XDG_CONFIG_HOME).
    """
    config_path = get_default_config_path()

    if init_config:
        if config_path.exists() and not force:
            display.warning(
                f"Config file already exists at: {config_path}", use_panel=False
            )
            display.info("Use --force to overwrite", use_panel=False)
            return
        Config.write_example_config(config_path)
        display.success("Created configuration file")
        display.info(f"Location: {config_path}", use_panel=False)
        display.dim("Edit the file to customize settings")
        return

    if force:
        display.warning("--force flag only works with --init", use_panel=False)

    if show:
        try:
            effective = Config()
        except ValueError as e:
            display.error(str(e), title="! Invalid Configuration")
            raise click.Abort()
        text = yaml.safe_dump(effective.to_dict(), default_flow_style=False, sort_keys=False)
        console.print(Syntax(text, "yaml", theme="nord", background_color="default"))
        return

    state = "exists" if config_path.exists() else "not created yet"
    display.info(f"Config file: {config_path} ({state})", use_panel=False)
    display.dim("Use --init to create it or --show to print the effective settings")
