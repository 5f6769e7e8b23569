"""Convert a pack into a ready-to-run zip archive."""

import asyncio
import os
import sys
import time
import uuid
from dataclasses import replace
from pathlib import Path
from typing import BinaryIO, FrozenSet, Optional, Tuple

import rich_click as click
from rich.console import Console

from ..config import Config, get_config, load_config
from ..core.exceptions import MrzipError
from ..core.types import ConversionOptions, ConversionResult, InjectedFile
from ..engine import ConversionEngine
from ..io.logger import setup_logging
from ..manifest.schema import Manifest
from ..ui.display_utils import DisplayUtils
from ..ui.progress_display import ProgressDisplay
from .constants import EXIT_INTERRUPTED

console = Console()
display = DisplayUtils(console)


@click.command()
@click.argument("pack", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--output",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    help="Directory for the finished archive (default: current directory)",
)
@click.option("--server", "-s", is_flag=True, help="Build a dedicated server archive with start scripts")
@click.option("--cors-proxy", is_flag=True, help="Route every download through the configured CORS proxy")
@click.option(
    "--inject",
    "-i",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Add a local file; .jar files go to mods/ (repeatable)",
)
@click.option("--exclude", "-x", multiple=True, help="Manifest path to leave out (repeatable)")
@click.option("--min-ram", type=click.IntRange(min=1), help="Initial heap in GB for start scripts")
@click.option("--max-ram", type=click.IntRange(min=1), help="Maximum heap in GB for start scripts")
@click.option("--java-flags", help="Extra JVM flags for start scripts")
@click.option("--jar-name", help="Server jar the start scripts launch")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Use this YAML config instead of the default one",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging and every downloaded file")
def convert(
    pack: Path,
    output: Path,
    server: bool,
    cors_proxy: bool,
    inject: Tuple[Path, ...],
    exclude: Tuple[str, ...],
    min_ram: Optional[int],
    max_ram: Optional[int],
    java_flags: Optional[str],
    jar_name: Optional[str],
    config_path: Optional[Path],
    verbose: bool,
):
    """Convert a Modrinth pack (.mrpack) into a zip archive.

    Every selected file is downloaded and written next to the pack's
    overrides. With --server, client-only files are left out and start
    scripts are added. Files that fail to download are skipped and listed
    at the end. Press Ctrl+C to cancel.
    """
    try:
        config = load_config(config_path) if config_path else get_config()
    except (ValueError, FileNotFoundError) as e:
        display.error(str(e), title="! Invalid Configuration")
        sys.exit(1)

    setup_logging(level="DEBUG" if verbose else config.get("logging.level", "INFO"))
    engine = ConversionEngine(config=config)

    try:
        manifest = engine.read_manifest(pack)
    except MrzipError as e:
        display.error(str(e), title="! Invalid Pack")
        sys.exit(1)

    selection = _build_selection(engine, manifest, server, exclude)
    options = ConversionOptions(
        server_mode=server,
        use_cors_proxy=cors_proxy,
        script_options=_script_options(config, min_ram, max_ram, java_flags, jar_name)
        if server
        else None,
        injected_files=tuple(InjectedFile.from_path(path) for path in inject),
    )

    output.mkdir(parents=True, exist_ok=True)
    partial_path = output / f".mrzip-{uuid.uuid4().hex[:8]}.part"
    started = time.monotonic()

    sink = open(partial_path, "w+b")
    try:
        result = asyncio.run(
            _run_conversion(engine, pack, manifest, selection, options, sink, verbose)
        )
    except KeyboardInterrupt:
        sink.close()
        _remove_quietly(partial_path)
        display.warning("Conversion cancelled", use_panel=False)
        sys.exit(EXIT_INTERRUPTED)
    except MrzipError as e:
        sink.close()
        _remove_quietly(partial_path)
        display.error(str(e), title="! Conversion Failed")
        sys.exit(1)

    sink.close()
    if result is None:
        _remove_quietly(partial_path)
        display.warning("Conversion cancelled", use_panel=False)
        sys.exit(EXIT_INTERRUPTED)

    final_path = output / result.file_name
    os.replace(partial_path, final_path)

    display.conversion_complete(
        result.file_name,
        str(final_path.resolve()),
        len(result.written_files),
        list(result.failed_files),
        time.monotonic() - started,
    )


async def _run_conversion(
    engine: ConversionEngine,
    pack: Path,
    manifest: Manifest,
    selection: FrozenSet[str],
    options: ConversionOptions,
    sink: BinaryIO,
    verbose: bool,
) -> Optional[ConversionResult]:
    with ProgressDisplay(engine.bus, console, verbose=verbose) as progress:
        job = engine.start_conversion(
            pack, manifest=manifest, selection=selection, options=options, sink=sink
        )
        progress.job_id = job.job_id
        try:
            return await job.wait()
        except asyncio.CancelledError:
            job.cancel()
            raise
        finally:
            await engine.bus.stop()


def _build_selection(
    engine: ConversionEngine, manifest: Manifest, server: bool, exclude: Tuple[str, ...]
) -> FrozenSet[str]:
    selection = engine.default_selection(manifest, server_mode=server)
    unknown = sorted(set(exclude) - set(manifest.paths))
    for path in unknown:
        display.warning(f"--exclude {path}: not listed in the manifest", use_panel=False)
    left_out = len(set(manifest.paths)) - len(selection)
    if server and left_out:
        display.dim(f"Leaving out {left_out} client-only files")
    return selection - set(exclude)


def _script_options(
    config: Config,
    min_ram: Optional[int],
    max_ram: Optional[int],
    java_flags: Optional[str],
    jar_name: Optional[str],
):
    options = config.get_script_options()
    overrides = {
        "min_ram": min_ram,
        "max_ram": max_ram,
        "java_flags": java_flags,
        "server_jar_name": jar_name,
    }
    return replace(options, **{k: v for k, v in overrides.items() if v is not None})


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
