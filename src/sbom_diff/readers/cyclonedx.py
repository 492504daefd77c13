"""Reader for CycloneDX JSON documents."""

import logging
from typing import Any, Iterator

from sbom_diff.model import Component, Sbom, ecosystem_from_purl, parse_license_expression
from sbom_diff.readers.base import SbomReader, make_component_id, resolve_references

logger = logging.getLogger(__name__)


class CycloneDxReader(SbomReader):
    """Reader for CycloneDX 1.4+ JSON.

    Dependencies are expressed through ``bom-ref`` values, which are kept
    as component source ids and resolved once all components are read.
    """

    format_name = "cyclonedx"

    def accepts(self, data: dict[str, Any]) -> bool:
        """Check for the CycloneDX document markers."""
        if data.get("bomFormat") == "CycloneDX":
            return True
        return "specVersion" in data and "components" in data and "spdxVersion" not in data

    def parse(self, data: dict[str, Any]) -> Sbom:
        """Parse a CycloneDX document."""
        sbom = Sbom()

        self._parse_metadata(data.get("metadata") or {}, sbom)

        for cdx_comp in self._iter_components(data.get("components") or []):
            sbom.add_component(self._parse_component(cdx_comp))

        ref_map = resolve_references(sbom)
        for dep in data.get("dependencies") or []:
            parent_id = ref_map.get(str(dep.get("ref", "")))
            if parent_id is None:
                continue
            for child_ref in dep.get("dependsOn") or []:
                child_id = ref_map.get(str(child_ref))
                if child_id is not None:
                    sbom.add_dependency(parent_id, child_id)

        logger.debug(
            f"Read CycloneDX document: {len(sbom.components)} components, "
            f"{sum(len(c) for c in sbom.dependencies.values())} dependency edges"
        )
        return sbom

    def _iter_components(self, components: list[dict[str, Any]]) -> Iterator[dict[str, Any]]:
        """Yield components depth-first, including nested ones."""
        for comp in components:
            yield comp
            yield from self._iter_components(comp.get("components") or [])

    def _parse_metadata(self, meta: dict[str, Any], sbom: Sbom) -> None:
        """Copy timestamp, tools and authors into the document metadata."""
        if meta.get("timestamp"):
            sbom.metadata.timestamp = str(meta["timestamp"])

        tools = meta.get("tools")
        if isinstance(tools, list):
            # Legacy form: [{"vendor": ..., "name": ..., "version": ...}]
            for tool in tools:
                parts = [tool.get("vendor"), tool.get("name"), tool.get("version")]
                sbom.metadata.tools.append(" ".join(str(p) for p in parts if p).strip())
        elif isinstance(tools, dict):
            # 1.5 form: {"components": [...], "services": [...]}
            for tool in tools.get("components") or []:
                parts = [tool.get("name"), tool.get("version")]
                sbom.metadata.tools.append(" ".join(str(p) for p in parts if p))

        for author in meta.get("authors") or []:
            text = author.get("name") or ""
            if author.get("email"):
                text += f" <{author['email']}>"
            sbom.metadata.authors.append(text.strip())

    def _parse_component(self, cdx_comp: dict[str, Any]) -> Component:
        """Convert one CycloneDX component."""
        name = str(cdx_comp.get("name") or "")
        version = cdx_comp.get("version")
        supplier_obj = cdx_comp.get("supplier")
        # An unnamed supplier still counts towards the id, as an empty name
        supplier = str(supplier_obj.get("name") or "") if supplier_obj is not None else None
        purl = cdx_comp.get("purl")

        component = Component(
            id=make_component_id(purl, name, version, supplier),
            name=name,
            version=version,
            ecosystem=ecosystem_from_purl(purl) if purl else None,
            supplier=supplier,
            description=cdx_comp.get("description"),
            purl=purl,
        )

        if cdx_comp.get("bom-ref"):
            component.source_ids.append(str(cdx_comp["bom-ref"]))

        for choice in cdx_comp.get("licenses") or []:
            if "expression" in choice:
                component.licenses.update(parse_license_expression(choice["expression"]))
                continue
            license_obj = choice.get("license") or {}
            identifier = license_obj.get("id") or license_obj.get("name")
            if identifier:
                component.licenses.add(identifier)

        for entry in cdx_comp.get("hashes") or []:
            if entry.get("alg") and entry.get("content"):
                component.hashes[entry["alg"]] = entry["content"]

        return component
