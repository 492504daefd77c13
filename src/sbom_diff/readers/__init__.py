"""SBOM document readers."""

import logging
import sys
from pathlib import Path
from typing import Optional

from sbom_diff.exceptions import SbomParseError, SbomReadError, UnknownFormatError
from sbom_diff.model import Sbom
from sbom_diff.readers.base import SbomReader, make_component_id, resolve_references
from sbom_diff.readers.cyclonedx import CycloneDxReader
from sbom_diff.readers.spdx import SpdxReader

logger = logging.getLogger(__name__)

# Readers tried in order when the format is "auto"
READERS: dict[str, type[SbomReader]] = {
    "cyclonedx": CycloneDxReader,
    "spdx": SpdxReader,
}

INPUT_FORMATS = ["auto", *READERS]


def read_content(content: str | bytes, format: str = "auto", source: Optional[str] = None) -> Sbom:
    """Parse document content in the given format.

    Args:
        content: Raw document text.
        format: "cyclonedx", "spdx" or "auto" to try each reader in turn.
        source: Label for error messages (e.g. "old" or "new").

    Returns:
        The parsed Sbom.

    Raises:
        SbomParseError: If the content does not parse as the requested format.
        UnknownFormatError: If format is "auto" and no reader accepts it.
    """
    if format != "auto":
        reader_cls = READERS.get(format)
        if reader_cls is None:
            raise ValueError(f"Unsupported format: {format}. Use one of: {', '.join(INPUT_FORMATS)}.")
        try:
            return reader_cls().read_json(content)
        except SbomParseError as e:
            raise SbomParseError(e.format_name, e.reason, source) from e

    for name, reader_cls in READERS.items():
        try:
            sbom = reader_cls().read_json(content)
        except SbomParseError as e:
            logger.debug(f"{name} reader rejected {source or 'input'}: {e.reason}")
            continue
        logger.debug(f"Detected {name} format for {source or 'input'}")
        return sbom

    raise UnknownFormatError(source)


def load_sbom(path: str, format: str = "auto", source: Optional[str] = None) -> Sbom:
    """Load an SBOM from a file path, or from stdin when path is "-".

    Raises:
        SbomReadError: If the file cannot be read.
        SbomParseError: If the content cannot be parsed.
    """
    try:
        if path == "-":
            content = sys.stdin.read()
        else:
            content = Path(path).read_bytes()
    except OSError as e:
        raise SbomReadError(path, e.strerror or str(e)) from e

    return read_content(content, format, source)


__all__ = [
    "CycloneDxReader",
    "INPUT_FORMATS",
    "READERS",
    "SbomReader",
    "SpdxReader",
    "load_sbom",
    "make_component_id",
    "read_content",
    "resolve_references",
]
