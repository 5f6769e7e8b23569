"""Pack manifest: schema, reading and file selection."""

from .reader import (
    ManifestReader,
    OverrideEntry,
    list_overrides,
    open_pack,
    read_manifest,
)
from .schema import FileEntry, FileEnv, FileHashes, Manifest
from .selection import (
    default_selection,
    is_client_only,
    is_full_selection,
    selected_entries,
    validate_selection,
)

__all__ = [
    "FileEntry",
    "FileEnv",
    "FileHashes",
    "Manifest",
    "ManifestReader",
    "OverrideEntry",
    "default_selection",
    "is_client_only",
    "is_full_selection",
    "list_overrides",
    "open_pack",
    "read_manifest",
    "selected_entries",
    "validate_selection",
]
