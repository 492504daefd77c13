"""Format-agnostic SBOM document model."""

import copy
import hashlib
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

from license_expression import ExpressionError, LicenseWithExceptionSymbol, get_spdx_licensing
from packageurl import PackageURL

# Prefix for identifiers derived from hashed component properties
HASH_ID_PREFIX = "h:"

# License references outside the SPDX list that are still valid ids
_LICENSE_REF_PREFIXES = ("LicenseRef-", "DocumentRef-")


@dataclass(frozen=True, order=True)
class ComponentId:
    """Stable identifier for a component.

    Built from a canonicalized package URL when one is known, or from a
    deterministic hash of the component's properties otherwise.
    """

    value: str

    @classmethod
    def new(
        cls,
        purl: Optional[str],
        properties: list[tuple[str, str]] | None = None,
    ) -> "ComponentId":
        """Create an identifier from a purl or from ordered properties.

        Args:
            purl: Package URL. A malformed purl is used verbatim.
            properties: Ordered (key, value) pairs hashed when purl is None.
                Callers pass name, then version, then supplier, each only
                if present.

        Returns:
            The component identifier.
        """
        if purl is not None:
            try:
                return cls(PackageURL.from_string(purl).to_string())
            except ValueError:
                return cls(purl)

        hasher = hashlib.sha256()
        for key, value in properties or []:
            hasher.update(f"{key}:{value}|".encode("utf-8"))
        return cls(f"{HASH_ID_PREFIX}{hasher.hexdigest()}")

    @property
    def is_hash(self) -> bool:
        """Whether this identifier came from the hash fallback."""
        return self.value.startswith(HASH_ID_PREFIX)

    def __str__(self) -> str:
        return self.value


@dataclass
class Metadata:
    """Document-level metadata. Volatile between tool runs."""

    timestamp: Optional[str] = None
    tools: list[str] = field(default_factory=list)
    authors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "timestamp": self.timestamp,
            "tools": list(self.tools),
            "authors": list(self.authors),
        }


@dataclass
class Component:
    """A single SBOM entry."""

    id: ComponentId
    name: str
    version: Optional[str] = None
    ecosystem: Optional[str] = None
    supplier: Optional[str] = None
    description: Optional[str] = None
    purl: Optional[str] = None
    licenses: set[str] = field(default_factory=set)
    hashes: dict[str, str] = field(default_factory=dict)
    source_ids: list[str] = field(default_factory=list)

    @classmethod
    def create(cls, name: str, version: Optional[str] = None) -> "Component":
        """Create a component whose id is hashed from its name and version."""
        props = [("name", name)]
        if version is not None:
            props.append(("version", version))
        return cls(id=ComponentId.new(None, props), name=name, version=version)

    @property
    def label(self) -> str:
        """Display label: the purl when known, the id otherwise."""
        return self.purl or str(self.id)

    def normalize(self) -> None:
        """Lowercase hash algorithms and digests."""
        self.hashes = {k.lower(): v.lower() for k, v in self.hashes.items()}

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "id": str(self.id),
            "name": self.name,
            "version": self.version,
            "ecosystem": self.ecosystem,
            "supplier": self.supplier,
            "description": self.description,
            "purl": self.purl,
            "licenses": sorted(self.licenses),
            "hashes": dict(sorted(self.hashes.items())),
            "source_ids": list(self.source_ids),
        }


@dataclass
class Sbom:
    """Format-agnostic SBOM document.

    Holds every component keyed by id and the dependency graph as an
    adjacency mapping of parent id to the set of child ids.
    """

    metadata: Metadata = field(default_factory=Metadata)
    components: dict[ComponentId, Component] = field(default_factory=dict)
    dependencies: dict[ComponentId, set[ComponentId]] = field(default_factory=dict)

    def add_component(self, component: Component) -> None:
        """Insert a component under its own id, replacing any previous entry."""
        self.components[component.id] = component

    def add_dependency(self, parent: ComponentId, child: ComponentId) -> None:
        """Record a parent -> child edge."""
        self.dependencies.setdefault(parent, set()).add(child)

    def clone(self) -> "Sbom":
        """Return a deep copy of this document."""
        return copy.deepcopy(self)

    def normalize(self) -> None:
        """Put the document in canonical form for comparison.

        Components are re-keyed in sorted id order, each component is
        normalized, and volatile metadata is cleared. Idempotent.
        """
        self.components = {k: self.components[k] for k in sorted(self.components)}

        for component in self.components.values():
            component.normalize()

        self.metadata = Metadata()

    def roots(self) -> list[ComponentId]:
        """Components that no other component depends on."""
        targets = {child for children in self.dependencies.values() for child in children}
        return [cid for cid in self.components if cid not in targets]

    def deps(self, cid: ComponentId) -> list[ComponentId]:
        """Direct dependencies of a component, sorted."""
        return sorted(self.dependencies.get(cid, set()))

    def rdeps(self, cid: ComponentId) -> list[ComponentId]:
        """Components that directly depend on the given one, sorted."""
        return sorted(parent for parent, children in self.dependencies.items() if cid in children)

    def transitive_deps(self, cid: ComponentId) -> set[ComponentId]:
        """All components reachable from the given one."""
        visited: set[ComponentId] = set()
        stack = [cid]
        while stack:
            current = stack.pop()
            for child in self.dependencies.get(current, set()):
                if child not in visited:
                    visited.add(child)
                    stack.append(child)
        return visited

    def ecosystems(self) -> set[str]:
        """Distinct ecosystems across all components."""
        return {c.ecosystem for c in self.components.values() if c.ecosystem}

    def licenses(self) -> set[str]:
        """Distinct licenses across all components."""
        return {lic for c in self.components.values() for lic in c.licenses}

    def missing_hashes(self) -> list[ComponentId]:
        """Ids of components that carry no checksums."""
        return [cid for cid, c in self.components.items() if not c.hashes]

    def by_purl(self, purl: str) -> Optional[Component]:
        """Find a component by its raw purl."""
        for component in self.components.values():
            if component.purl == purl:
                return component
        return None


def ecosystem_from_purl(purl: str) -> Optional[str]:
    """Return the purl type (e.g. ``npm``), or None if the purl is invalid."""
    try:
        return PackageURL.from_string(purl).type
    except ValueError:
        return None


@lru_cache(maxsize=None)
def _spdx_licensing():
    return get_spdx_licensing()


def parse_license_expression(expression: str) -> set[str]:
    """Extract license ids from an SPDX license expression.

    ``MIT OR Apache-2.0`` yields both ids. Exceptions following ``WITH``
    are dropped. An expression that does not parse, or that names a
    license outside the SPDX list (e.g. ``Custom License``), is kept as a
    single entry.
    """
    licensing = _spdx_licensing()
    try:
        parsed = licensing.parse(expression, strict=True)
    except ExpressionError:
        return {expression}
    if parsed is None:
        return {expression}

    unknown = [
        key
        for key in licensing.unknown_license_keys(parsed)
        if not key.startswith(_LICENSE_REF_PREFIXES)
    ]
    if unknown:
        return {expression}

    ids: set[str] = set()
    for symbol in licensing.license_symbols(parsed, decompose=False):
        if isinstance(symbol, LicenseWithExceptionSymbol):
            symbol = symbol.license_symbol
        ids.add(symbol.key)
    return ids or {expression}
