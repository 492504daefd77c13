"""Build-breaking checks evaluated on top of a diff."""

from enum import Enum
from typing import Iterable

from sbom_diff.differ import Diff
from sbom_diff.model import Sbom


class FailOn(Enum):
    """Conditions that make the command exit non-zero."""

    MISSING_HASHES = "missing-hashes"
    ADDED_COMPONENTS = "added-components"
    DEPS = "deps"


def check_licenses(sbom: Sbom, deny: Iterable[str] = (), allow: Iterable[str] = ()) -> list[str]:
    """Check component licenses against deny and allow lists.

    Args:
        sbom: Document whose components are checked.
        deny: Licenses that are never permitted.
        allow: If non-empty, the only licenses permitted.

    Returns:
        One message per violation; empty when the document complies.
    """
    deny_set = set(deny)
    allow_set = set(allow)
    violations: list[str] = []

    for component in sbom.components.values():
        for license_id in sorted(component.licenses):
            if deny_set and license_id in deny_set:
                violations.append(f"license {license_id} is denied (component {component.id})")
            if allow_set and license_id not in allow_set:
                violations.append(f"license {license_id} is not allowed (component {component.id})")

    return violations


def check_fail_on(diff: Diff, conditions: Iterable[FailOn]) -> list[str]:
    """Evaluate fail-on conditions against a diff.

    Returns:
        One message per offending component or edge.
    """
    violations: list[str] = []

    for condition in conditions:
        if condition == FailOn.ADDED_COMPONENTS:
            for comp in diff.added:
                violations.append(f"added component {comp.id} (--fail-on added-components)")

        elif condition == FailOn.MISSING_HASHES:
            for comp in diff.added:
                if not comp.hashes:
                    violations.append(
                        f"added component {comp.id} has no hashes (--fail-on missing-hashes)"
                    )

        elif condition == FailOn.DEPS:
            for edge in diff.edge_diffs:
                for added in sorted(edge.added):
                    violations.append(
                        f"added dependency edge {edge.parent} -> {added} (--fail-on deps)"
                    )
                for removed in sorted(edge.removed):
                    violations.append(
                        f"removed dependency edge {edge.parent} -> {removed} (--fail-on deps)"
                    )

    return violations
