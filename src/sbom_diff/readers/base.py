"""Base classes for SBOM document readers."""

import json
from abc import ABC, abstractmethod
from typing import Any, Optional

from sbom_diff.exceptions import SbomParseError
from sbom_diff.model import ComponentId, Sbom


class SbomReader(ABC):
    """Abstract base class for format-specific SBOM readers."""

    #: Name used in error messages and on the command line
    format_name: str = ""

    def read_json(self, content: str | bytes) -> Sbom:
        """Parse a JSON document into an Sbom.

        Args:
            content: Raw document text.

        Returns:
            Fully populated Sbom with dependencies resolved.

        Raises:
            SbomParseError: If the content is not valid JSON or not this format.
        """
        try:
            data = json.loads(content)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise SbomParseError(self.format_name, f"invalid JSON: {e}") from e

        if not isinstance(data, dict) or not self.accepts(data):
            raise SbomParseError(self.format_name, "document is not in this format")

        try:
            return self.parse(data)
        except (KeyError, TypeError, AttributeError) as e:
            raise SbomParseError(self.format_name, f"unexpected document structure: {e}") from e

    @abstractmethod
    def accepts(self, data: dict[str, Any]) -> bool:
        """Return True if the decoded document looks like this format."""
        pass

    @abstractmethod
    def parse(self, data: dict[str, Any]) -> Sbom:
        """Build an Sbom from a decoded document.

        Args:
            data: The decoded JSON object.

        Returns:
            Sbom instance.
        """
        pass


def make_component_id(
    purl: Optional[str],
    name: str,
    version: Optional[str],
    supplier: Optional[str],
) -> ComponentId:
    """Build a component id using the shared property order.

    Every reader goes through here so that the same package read from
    different formats hashes to the same id.
    """
    props = [("name", name)]
    if version is not None:
        props.append(("version", version))
    if supplier is not None:
        props.append(("supplier", supplier))
    return ComponentId.new(purl, props)


def resolve_references(sbom: Sbom) -> dict[str, ComponentId]:
    """Map every in-document reference (bom-ref, SPDXID) to its component id."""
    ref_map: dict[str, ComponentId] = {}
    for cid, component in sbom.components.items():
        for source_id in component.source_ids:
            ref_map[source_id] = cid
    return ref_map
