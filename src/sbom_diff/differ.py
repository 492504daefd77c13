"""Semantic diff between two SBOM documents.

Components are matched in two passes: first by identical id, then by
(ecosystem, name) identity so that a version bump which changes the purl
is reported as one change instead of an add/remove pair. The old -> new
id mapping produced by matching is reused to compare dependency edges.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional

from sbom_diff.model import Component, ComponentId, Sbom

logger = logging.getLogger(__name__)

IdentityKey = tuple[Optional[str], str]


class Field(Enum):
    """Fields that can be selected with a diff filter."""

    VERSION = "version"
    LICENSE = "license"
    SUPPLIER = "supplier"
    PURL = "purl"
    HASHES = "hashes"
    DEPS = "deps"

    @classmethod
    def parse(cls, value: str) -> "Field":
        """Look up a field by its name (case-insensitive)."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(f.value for f in cls)
            raise ValueError(f"Unknown field: {value}. Use one of: {valid}.") from None


@dataclass(frozen=True)
class FieldChange:
    """One changed field of a matched component.

    Hash changes are presence-only: ``old`` and ``new`` are None and the
    full digests are available on the ComponentChange snapshots.
    """

    field: Field
    old: Any = None
    new: Any = None

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        if self.field == Field.HASHES:
            return {"field": self.field.value}
        old, new = self.old, self.new
        if self.field == Field.LICENSE:
            old, new = sorted(old), sorted(new)
        return {"field": self.field.value, "old": old, "new": new}


@dataclass
class ComponentChange:
    """A component present in both documents with at least one changed field."""

    id: ComponentId
    old: Component
    new: Component
    changes: list[FieldChange] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "id": str(self.id),
            "old": self.old.to_dict(),
            "new": self.new.to_dict(),
            "changes": [c.to_dict() for c in self.changes],
        }


@dataclass
class EdgeDiff:
    """Dependency edges gained or lost by one parent (new-side id)."""

    parent: ComponentId
    added: set[ComponentId] = field(default_factory=set)
    removed: set[ComponentId] = field(default_factory=set)

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "parent": str(self.parent),
            "added": sorted(str(c) for c in self.added),
            "removed": sorted(str(c) for c in self.removed),
        }


@dataclass
class Diff:
    """Result of comparing two SBOM documents."""

    added: list[Component] = field(default_factory=list)
    removed: list[Component] = field(default_factory=list)
    changed: list[ComponentChange] = field(default_factory=list)
    edge_diffs: list[EdgeDiff] = field(default_factory=list)
    metadata_changed: bool = False

    @property
    def is_empty(self) -> bool:
        """True when no component or edge differences were found."""
        return not (self.added or self.removed or self.changed or self.edge_diffs)

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "added": [c.to_dict() for c in self.added],
            "removed": [c.to_dict() for c in self.removed],
            "changed": [c.to_dict() for c in self.changed],
            "edge_diffs": [e.to_dict() for e in self.edge_diffs],
            "metadata_changed": self.metadata_changed,
        }


def _identity_sort_key(key: IdentityKey) -> tuple[bool, str, str]:
    # Absent ecosystems sort first
    ecosystem, name = key
    return (ecosystem is not None, ecosystem or "", name)


class Differ:
    """Compute a Diff between two SBOM documents."""

    def __init__(self, only: Optional[Iterable[Field]] = None) -> None:
        """Initialize the differ.

        Args:
            only: Restrict comparison to these fields. None compares all.
        """
        self.only: Optional[frozenset[Field]] = frozenset(only) if only is not None else None

    def includes(self, f: Field) -> bool:
        """Whether the given field takes part in the comparison."""
        return self.only is None or f in self.only

    def diff(self, old: Sbom, new: Sbom) -> Diff:
        """Compare two documents without mutating them.

        Args:
            old: The baseline document.
            new: The document to compare against the baseline.

        Returns:
            Diff describing added, removed and changed components and
            dependency edge changes.
        """
        metadata_changed = old.metadata != new.metadata

        old = old.clone()
        new = new.clone()
        old.normalize()
        new.normalize()

        added, removed, changed, id_mapping = self.reconcile(old, new)

        if self.includes(Field.DEPS):
            edge_diffs = compute_edge_diffs(old, new, id_mapping)
        else:
            edge_diffs = []

        logger.debug(
            f"Diff computed: {len(added)} added, {len(removed)} removed, "
            f"{len(changed)} changed, {len(edge_diffs)} edge diffs"
        )

        return Diff(
            added=added,
            removed=removed,
            changed=changed,
            edge_diffs=edge_diffs,
            metadata_changed=metadata_changed,
        )

    def reconcile(
        self,
        old: Sbom,
        new: Sbom,
    ) -> tuple[list[Component], list[Component], list[ComponentChange], dict[ComponentId, ComponentId]]:
        """Match components of two normalized documents.

        Returns:
            Tuple of (added, removed, changed, id_mapping) where id_mapping
            maps every matched old id to its new id.
        """
        added: list[Component] = []
        changed: list[ComponentChange] = []
        processed_old: set[ComponentId] = set()
        processed_new: set[ComponentId] = set()
        id_mapping: dict[ComponentId, ComponentId] = {}

        # Pass 1: identical ids
        for cid, new_comp in new.components.items():
            old_comp = old.components.get(cid)
            if old_comp is None:
                continue
            processed_old.add(cid)
            processed_new.add(cid)
            id_mapping[cid] = cid
            change = self.compute_change(old_comp, new_comp)
            if change:
                changed.append(change)

        # Pass 2: (ecosystem, name) identity, each old candidate used once
        candidates: dict[IdentityKey, list[ComponentId]] = {}
        for cid, old_comp in old.components.items():
            if cid not in processed_old:
                candidates.setdefault((old_comp.ecosystem, old_comp.name), []).append(cid)

        # Candidate keys are fixed from here on
        ordered_keys = sorted(candidates, key=_identity_sort_key)
        exact_matches = len(id_mapping)

        for cid, new_comp in new.components.items():
            if cid in processed_new:
                continue

            old_id = self._take_candidate(candidates, ordered_keys, new_comp)
            processed_new.add(cid)

            if old_id is None:
                added.append(new_comp)
                continue

            processed_old.add(old_id)
            id_mapping[old_id] = cid
            change = self.compute_change(old.components[old_id], new_comp)
            if change:
                changed.append(change)

        removed = [c for cid, c in old.components.items() if cid not in processed_old]

        logger.debug(
            f"Reconciled {exact_matches} components by id and "
            f"{len(id_mapping) - exact_matches} by identity"
        )

        return added, removed, changed, id_mapping

    def _take_candidate(
        self,
        candidates: dict[IdentityKey, list[ComponentId]],
        ordered_keys: list[IdentityKey],
        component: Component,
    ) -> Optional[ComponentId]:
        """Pop the old component that best matches a new one, if any.

        Precedence: exact (ecosystem, name); then, for a new component with
        an ecosystem, an old one with the same name and no ecosystem; for a
        new component without an ecosystem, any old one with the same name.
        """
        exact = candidates.get((component.ecosystem, component.name))
        if exact:
            return exact.pop()

        if component.ecosystem is not None:
            wildcard = candidates.get((None, component.name))
            if wildcard:
                return wildcard.pop()
            return None

        for key in ordered_keys:
            ids = candidates[key]
            if key[1] == component.name and ids:
                return ids.pop()
        return None

    def compute_change(self, old: Component, new: Component) -> Optional[ComponentChange]:
        """Compare two matched components field by field.

        Returns:
            ComponentChange, or None when no selected field differs.
        """
        changes: list[FieldChange] = []

        if self.includes(Field.VERSION) and old.version != new.version:
            changes.append(FieldChange(Field.VERSION, old.version or "", new.version or ""))

        if self.includes(Field.LICENSE) and old.licenses != new.licenses:
            changes.append(
                FieldChange(Field.LICENSE, frozenset(old.licenses), frozenset(new.licenses))
            )

        if self.includes(Field.SUPPLIER) and old.supplier != new.supplier:
            changes.append(FieldChange(Field.SUPPLIER, old.supplier, new.supplier))

        if self.includes(Field.PURL) and old.purl != new.purl:
            changes.append(FieldChange(Field.PURL, old.purl, new.purl))

        if self.includes(Field.HASHES) and old.hashes != new.hashes:
            changes.append(FieldChange(Field.HASHES))

        if not changes:
            return None

        return ComponentChange(id=new.id, old=old, new=new, changes=changes)


def compute_edge_diffs(
    old: Sbom,
    new: Sbom,
    id_mapping: dict[ComponentId, ComponentId],
) -> list[EdgeDiff]:
    """Compare dependency edges in new-id space.

    Old parents and children are translated through ``id_mapping`` before
    set differencing, so a component whose id changed between documents
    does not show spurious edge changes. Ids without a translation pass
    through unchanged.

    Args:
        old: Normalized baseline document.
        new: Normalized new document.
        id_mapping: Old id -> new id for every matched component.

    Returns:
        One EdgeDiff per parent whose children changed, sorted by parent.
    """

    def translate(cid: ComponentId) -> ComponentId:
        return id_mapping.get(cid, cid)

    reverse_mapping = {new_id: old_id for old_id, new_id in id_mapping.items()}

    parents = set(new.dependencies)
    parents.update(translate(p) for p in old.dependencies)

    edge_diffs: list[EdgeDiff] = []
    for parent in sorted(parents):
        new_children = new.dependencies.get(parent, set())

        old_parent = reverse_mapping.get(parent, parent)
        old_children = {translate(c) for c in old.dependencies.get(old_parent, set())}

        added = new_children - old_children
        removed = old_children - new_children
        if added or removed:
            edge_diffs.append(EdgeDiff(parent=parent, added=added, removed=removed))

    return edge_diffs


def diff(old: Sbom, new: Sbom, only: Optional[Iterable[Field]] = None) -> Diff:
    """Compare two SBOM documents.

    Args:
        old: The baseline document.
        new: The document to compare against the baseline.
        only: Restrict comparison to these fields. None compares all.

    Returns:
        The computed Diff. Neither input is modified.
    """
    return Differ(only=only).diff(old, new)
