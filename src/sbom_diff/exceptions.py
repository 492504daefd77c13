"""Exceptions raised by sbom-diff collaborators.

The diff engine itself never raises for structurally valid documents;
these cover reading, parsing and configuration.
"""

from typing import Optional


class SbomDiffError(Exception):
    """Base exception for sbom-diff errors."""

    pass


class SbomReadError(SbomDiffError):
    """A document could not be read from disk or stdin."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"could not read {path}: {reason}")


class SbomParseError(SbomDiffError):
    """A document could not be parsed as the given format."""

    def __init__(self, format_name: str, reason: str, source: Optional[str] = None) -> None:
        self.format_name = format_name
        self.reason = reason
        self.source = source
        prefix = f"{source} sbom: " if source else ""
        super().__init__(f"{prefix}{format_name} error: {reason}")


class UnknownFormatError(SbomParseError):
    """Format auto-detection matched no reader."""

    def __init__(self, source: Optional[str] = None) -> None:
        super().__init__("auto", "could not detect sbom format automatically", source)


class ConfigError(SbomDiffError):
    """The configuration file is unreadable or invalid."""

    pass
