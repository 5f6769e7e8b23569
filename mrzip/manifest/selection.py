"""Which manifest files a job downloads.

A selection is a frozen set of manifest paths. Server mode drops files
that are flagged or look client-only; env flags are only a default, the
caller may still select anything the manifest lists.
"""

from typing import AbstractSet, FrozenSet, Iterable, List, Optional, Sequence

from ..core.constants import (
    CLIENT_ONLY_FOLDERS,
    EnvRequirement,
    SelectionDefaults,
)
from ..core.exceptions import SelectionError
from .schema import FileEntry, Manifest


def is_client_only(
    entry: FileEntry,
    keywords: Sequence[str] = SelectionDefaults.CLIENT_ONLY_KEYWORDS,
) -> bool:
    """True when a file should not be installed on a dedicated server.

    Explicit env flags win; without them fall back to folder and file
    name heuristics.
    """
    if entry.env is not None:
        return entry.env.server == EnvRequirement.UNSUPPORTED
    if entry.path.startswith(CLIENT_ONLY_FOLDERS):
        return True
    name = entry.file_name.lower()
    return any(keyword in name for keyword in keywords)


def is_server_only(entry: FileEntry) -> bool:
    return entry.env is not None and entry.env.client == EnvRequirement.UNSUPPORTED


def default_selection(
    manifest: Manifest,
    server_mode: bool = False,
    client_only_keywords: Optional[Sequence[str]] = None,
) -> FrozenSet[str]:
    """Paths selected when the caller does not choose explicitly."""
    keywords = (
        SelectionDefaults.CLIENT_ONLY_KEYWORDS
        if client_only_keywords is None
        else client_only_keywords
    )
    selected = set()
    for entry in manifest.files:
        if server_mode and is_client_only(entry, keywords):
            continue
        if not server_mode and is_server_only(entry):
            continue
        selected.add(entry.path)
    return frozenset(selected)


def validate_selection(manifest: Manifest, selection: Iterable[str]) -> FrozenSet[str]:
    """Snapshot a selection, rejecting paths the manifest does not list."""
    snapshot = frozenset(selection)
    unknown = snapshot - set(manifest.paths)
    if unknown:
        raise SelectionError(unknown)
    return snapshot


def selected_entries(manifest: Manifest, selection: AbstractSet[str]) -> List[FileEntry]:
    """Entries to download, one per path; the last manifest entry wins."""
    by_path = {}
    for entry in manifest.files:
        if entry.path in selection:
            by_path[entry.path] = entry
    return list(by_path.values())


def is_full_selection(manifest: Manifest, selection: AbstractSet[str]) -> bool:
    return set(manifest.paths) <= set(selection)
