"""Reader for SPDX 2.x JSON documents."""

import logging
from typing import Any, Optional

from sbom_diff.model import Component, Sbom, ecosystem_from_purl, parse_license_expression
from sbom_diff.readers.base import SbomReader, make_component_id, resolve_references

logger = logging.getLogger(__name__)

# Relationship types treated as dependency edges
DEPENDENCY_RELATIONSHIPS = {"DEPENDS_ON", "CONTAINS", "DESCRIBES"}

# License values meaning "no information"
NO_LICENSE_VALUES = {"NOASSERTION", "NONE"}


class SpdxReader(SbomReader):
    """Reader for SPDX 2.2/2.3 JSON."""

    format_name = "spdx"

    def accepts(self, data: dict[str, Any]) -> bool:
        """Check for the SPDX version marker."""
        return str(data.get("spdxVersion", "")).startswith("SPDX-")

    def parse(self, data: dict[str, Any]) -> Sbom:
        """Parse an SPDX document."""
        sbom = Sbom()

        creation_info = data.get("creationInfo") or {}
        if creation_info.get("created"):
            sbom.metadata.timestamp = str(creation_info["created"])
        for creator in creation_info.get("creators") or []:
            if creator.startswith("Tool: "):
                sbom.metadata.tools.append(creator[len("Tool: "):])
            else:
                sbom.metadata.authors.append(creator)

        for pkg in data.get("packages") or []:
            sbom.add_component(self._parse_package(pkg))

        ref_map = resolve_references(sbom)
        for rel in data.get("relationships") or []:
            if rel.get("relationshipType") not in DEPENDENCY_RELATIONSHIPS:
                continue
            parent_id = ref_map.get(rel.get("spdxElementId", ""))
            child_id = ref_map.get(rel.get("relatedSpdxElement", ""))
            if parent_id is not None and child_id is not None:
                sbom.add_dependency(parent_id, child_id)

        logger.debug(
            f"Read SPDX document: {len(sbom.components)} packages, "
            f"{sum(len(c) for c in sbom.dependencies.values())} dependency edges"
        )
        return sbom

    def _parse_package(self, pkg: dict[str, Any]) -> Component:
        """Convert one SPDX package."""
        name = str(pkg.get("name") or "")
        version = pkg.get("versionInfo")
        supplier = pkg.get("supplier")
        purl = self._find_purl(pkg)

        component = Component(
            id=make_component_id(purl, name, version, supplier),
            name=name,
            version=version,
            ecosystem=ecosystem_from_purl(purl) if purl else None,
            supplier=supplier,
            description=pkg.get("description"),
            purl=purl,
            source_ids=[str(pkg.get("SPDXID", ""))],
        )

        concluded = pkg.get("licenseConcluded")
        if concluded and concluded not in NO_LICENSE_VALUES:
            component.licenses.update(parse_license_expression(concluded))

        for checksum in pkg.get("checksums") or []:
            if checksum.get("algorithm") and checksum.get("checksumValue"):
                component.hashes[checksum["algorithm"]] = checksum["checksumValue"]

        return component

    def _find_purl(self, pkg: dict[str, Any]) -> Optional[str]:
        """Return the first purl external reference, if any."""
        for ref in pkg.get("externalRefs") or []:
            if ref.get("referenceType") == "purl":
                return ref.get("referenceLocator")
        return None
