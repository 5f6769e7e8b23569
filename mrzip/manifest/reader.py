"""Read and validate the manifest of a source pack."""

import io
import json
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Tuple, Union

from pydantic import ValidationError

from ..core.constants import MANIFEST_FILENAME, OverrideDirs
from ..core.exceptions import InvalidPackError, SchemaValidationError
from ..io.logger import get_logger
from .schema import Manifest, check_relative_path

logger = get_logger("manifest")

PackSource = Union[bytes, bytearray, memoryview, str, Path, BinaryIO]


@dataclass(frozen=True)
class OverrideEntry:
    """An override file of the source pack and where it lands in the output."""

    source_name: str
    target_path: str
    size: int
    date_time: Tuple[int, int, int, int, int, int]


def open_pack(source: PackSource) -> zipfile.ZipFile:
    """Open a pack given as raw bytes, a path, or a binary file object.

    Raises:
        InvalidPackError: If the source is missing or not a zip archive
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        source = io.BytesIO(bytes(source))
    try:
        return zipfile.ZipFile(source)
    except FileNotFoundError as e:
        raise InvalidPackError(f"Pack file not found: {source}") from e
    except (zipfile.BadZipFile, OSError) as e:
        raise InvalidPackError(f"Not a valid pack archive: {e}") from e


def format_validation_errors(error: ValidationError) -> List[str]:
    """Flatten pydantic errors into 'field → field: message' lines."""
    lines = []
    for err in error.errors():
        field_path = " → ".join(str(loc) for loc in err["loc"]) or "manifest"
        lines.append(f"{field_path}: {err['msg']}")
    return lines


class ManifestReader:
    """Locates, parses and validates the pack manifest."""

    manifest_name = MANIFEST_FILENAME

    def read(self, source: PackSource) -> Manifest:
        """Read the manifest from a pack.

        Raises:
            InvalidPackError: Not a zip, or no manifest entry
            SchemaValidationError: Manifest unparsable or invalid
        """
        with open_pack(source) as archive:
            return self.read_from_archive(archive)

    def read_from_archive(self, archive: zipfile.ZipFile) -> Manifest:
        try:
            raw = archive.read(self.manifest_name)
        except KeyError as e:
            raise InvalidPackError(f"{self.manifest_name} not found in pack") from e
        except (zipfile.BadZipFile, OSError, RuntimeError) as e:
            raise InvalidPackError(f"Could not read {self.manifest_name}: {e}") from e
        return self.parse(raw)

    def parse(self, raw: Union[bytes, str]) -> Manifest:
        """Parse manifest text."""
        try:
            data = json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SchemaValidationError(
                f"{self.manifest_name} is not valid JSON", [str(e)]
            ) from e
        return self.validate(data)

    def validate(self, data: Any) -> Manifest:
        """Validate an already decoded manifest document."""
        if isinstance(data, Manifest):
            return data
        if not isinstance(data, dict):
            raise SchemaValidationError(
                f"{self.manifest_name} must contain a JSON object"
            )
        try:
            manifest = Manifest.model_validate(data)
        except ValidationError as e:
            raise SchemaValidationError(
                f"Invalid {self.manifest_name}", format_validation_errors(e)
            ) from e
        logger.debug(
            f"Read manifest {manifest.name} {manifest.version_id} "
            f"({len(manifest.files)} files)"
        )
        return manifest


def read_manifest(source: PackSource) -> Manifest:
    """Read and validate the manifest of ``source``."""
    return ManifestReader().read(source)


def list_overrides(archive: zipfile.ZipFile, server_mode: bool = False) -> List[OverrideEntry]:
    """Override entries of a pack in write order.

    ``overrides/`` applies to both sides; ``server-overrides/`` or
    ``client-overrides/`` is layered on top and wins on colliding paths.
    """
    side_dir = OverrideDirs.SERVER if server_mode else OverrideDirs.CLIENT
    selected: Dict[str, OverrideEntry] = {}

    for root in (OverrideDirs.COMMON, side_dir):
        prefix = f"{root}/"
        for info in archive.infolist():
            if info.is_dir() or not info.filename.startswith(prefix):
                continue
            relative = info.filename[len(prefix):]
            try:
                check_relative_path(relative)
            except ValueError:
                logger.warning(f"Skipping unsafe override entry: {info.filename}")
                continue
            selected[relative] = OverrideEntry(
                source_name=info.filename,
                target_path=relative,
                size=info.file_size,
                date_time=info.date_time,
            )

    return list(selected.values())
