"""sbom-diff - Semantic diff for CycloneDX and SPDX SBOM documents."""

__version__ = "0.3.1"

from sbom_diff.differ import ComponentChange, Diff, Differ, EdgeDiff, Field, FieldChange, diff
from sbom_diff.model import Component, ComponentId, Metadata, Sbom

__all__ = [
    "__version__",
    "diff",
    "Component",
    "ComponentChange",
    "ComponentId",
    "Diff",
    "Differ",
    "EdgeDiff",
    "Field",
    "FieldChange",
    "Metadata",
    "Sbom",
]
