"""Tests for license and fail-on checks."""

import json

import pytest

from sbom_diff.differ import Differ
from sbom_diff.model import Component, Sbom
from sbom_diff.policy import FailOn, check_fail_on, check_licenses
from sbom_diff.readers import SpdxReader


def licensed_sbom(*license_sets):
    """Build a document with one component per license set."""
    sbom = Sbom()
    for i, licenses in enumerate(license_sets):
        comp = Component.create(f"pkg-{i}", "1.0")
        comp.licenses.update(licenses)
        sbom.add_component(comp)
    return sbom


class TestCheckLicenses:
    """Tests for deny and allow lists."""

    def test_no_lists_passes(self):
        assert check_licenses(licensed_sbom({"GPL-3.0-only"})) == []

    def test_denied_license(self):
        sbom = licensed_sbom({"GPL-3.0-only"})
        violations = check_licenses(sbom, deny=["GPL-3.0-only"])
        assert len(violations) == 1
        assert "license GPL-3.0-only is denied" in violations[0]

    def test_deny_with_multiple_licenses(self):
        sbom = licensed_sbom({"MIT", "GPL-3.0-only"})
        violations = check_licenses(sbom, deny=["GPL-3.0-only"])
        assert len(violations) == 1

    def test_allowed_license(self):
        sbom = licensed_sbom({"MIT"})
        assert check_licenses(sbom, allow=["MIT", "Apache-2.0"]) == []

    def test_not_allowed_license(self):
        sbom = licensed_sbom({"MIT", "BSD-3-Clause"})
        violations = check_licenses(sbom, allow=["MIT"])
        assert len(violations) == 1
        assert "license BSD-3-Clause is not allowed" in violations[0]

    def test_deny_and_allow_combined(self):
        sbom = licensed_sbom({"GPL-3.0-only"})
        violations = check_licenses(sbom, deny=["GPL-3.0-only"], allow=["MIT"])
        assert len(violations) == 2

    def test_component_without_license_passes_allow_list(self):
        sbom = licensed_sbom(set())
        assert check_licenses(sbom, allow=["MIT"]) == []

    def test_unparsable_spdx_license_checked_whole(self):
        doc = {
            "spdxVersion": "SPDX-2.3",
            "packages": [
                {
                    "name": "pkg",
                    "SPDXID": "SPDXRef-pkg",
                    "licenseConcluded": "MIT OR Custom License",
                }
            ],
        }
        sbom = SpdxReader().read_json(json.dumps(doc))
        assert check_licenses(sbom, allow=["MIT", "MIT OR Custom License"]) == []
        violations = check_licenses(sbom, allow=["MIT"])
        assert len(violations) == 1
        assert "license MIT OR Custom License is not allowed" in violations[0]

    def test_message_names_component(self):
        sbom = licensed_sbom({"GPL-3.0-only"})
        cid = next(iter(sbom.components))
        assert str(cid) in check_licenses(sbom, deny=["GPL-3.0-only"])[0]


class TestCheckFailOn:
    """Tests for fail-on conditions."""

    @pytest.fixture
    def growing_diff(self):
        """One hashed and one unhashed component added, with a new edge."""
        old = Sbom()
        root = Component.create("root", "1.0")
        old.add_component(root)

        new = Sbom()
        new.add_component(Component.create("root", "1.0"))
        hashed = Component.create("hashed", "1.0")
        hashed.hashes["sha256"] = "abc"
        bare = Component.create("bare", "1.0")
        new.add_component(hashed)
        new.add_component(bare)
        new.add_dependency(root.id, bare.id)
        return Differ().diff(old, new), bare

    def test_no_conditions(self, growing_diff):
        diff, _ = growing_diff
        assert check_fail_on(diff, []) == []

    def test_added_components(self, growing_diff):
        diff, _ = growing_diff
        violations = check_fail_on(diff, [FailOn.ADDED_COMPONENTS])
        assert len(violations) == 2
        assert all("added component" in v for v in violations)

    def test_missing_hashes(self, growing_diff):
        diff, bare = growing_diff
        violations = check_fail_on(diff, [FailOn.MISSING_HASHES])
        assert violations == [
            f"added component {bare.id} has no hashes (--fail-on missing-hashes)"
        ]

    def test_deps(self, growing_diff):
        diff, bare = growing_diff
        violations = check_fail_on(diff, [FailOn.DEPS])
        assert len(violations) == 1
        assert "added dependency edge" in violations[0]
        assert str(bare.id) in violations[0]

    def test_clean_diff(self):
        sbom = licensed_sbom({"MIT"})
        diff = Differ().diff(sbom, sbom.clone())
        conditions = [FailOn.ADDED_COMPONENTS, FailOn.MISSING_HASHES, FailOn.DEPS]
        assert check_fail_on(diff, conditions) == []

    def test_parse_condition_names(self):
        assert FailOn("missing-hashes") is FailOn.MISSING_HASHES
        with pytest.raises(ValueError):
            FailOn("everything")
