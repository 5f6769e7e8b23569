"""Output file naming."""

from ..core.constants import FULL_BUNDLE_SUFFIX
from ..manifest.schema import Manifest


def output_file_name(manifest: Manifest, full: bool = False) -> str:
    """``<name>-<versionId>[-FULL].zip``; path separators are replaced."""
    stem = f"{manifest.name}-{manifest.version_id}"
    if full:
        stem += FULL_BUNDLE_SUFFIX
    stem = stem.replace("/", "_").replace("\\", "_")
    return f"{stem}.zip"
