"""Tests for diff renderers."""

import io
import json

import pytest

from sbom_diff.differ import Diff, Differ, Field
from sbom_diff.model import Component, ComponentId, Sbom
from sbom_diff.renderer import (
    JsonRenderer,
    MarkdownRenderer,
    TextRenderer,
    create_renderer,
    describe_change,
    render_summary,
)


def npm_component(name, version):
    purl = f"pkg:npm/{name}@{version}"
    return Component(
        id=ComponentId.new(purl), name=name, version=version, ecosystem="npm", purl=purl
    )


@pytest.fixture
def sample_documents():
    """An upgrade of lodash, one removal and one addition."""
    old = Sbom()
    old.add_component(npm_component("lodash", "4.17.20"))
    old.add_component(npm_component("old-pkg", "1.0.0"))

    new = Sbom()
    lodash = npm_component("lodash", "4.17.21")
    added = npm_component("new-pkg", "2.0.0")
    new.add_component(lodash)
    new.add_component(added)
    return old, new


@pytest.fixture
def sample_diff(sample_documents):
    """Diff of the sample documents."""
    old, new = sample_documents
    return Differ().diff(old, new)


@pytest.fixture
def edge_diff(sample_documents):
    """Diff where the upgraded lodash gains a dependency."""
    old, new = sample_documents
    new.add_dependency(
        ComponentId("pkg:npm/lodash@4.17.21"), ComponentId("pkg:npm/new-pkg@2.0.0")
    )
    return Differ().diff(old, new)


class TestTextRenderer:
    """Tests for plain text output."""

    def test_full_output(self, sample_diff):
        output = TextRenderer().generate(sample_diff)
        assert output == (
            "Diff Summary\n"
            "============\n"
            "Added:   1\n"
            "Removed: 1\n"
            "Changed: 1\n"
            "\n"
            "[+] Added\n"
            "---------\n"
            "pkg:npm/new-pkg@2.0.0\n"
            "\n"
            "[-] Removed\n"
            "-----------\n"
            "pkg:npm/old-pkg@1.0.0\n"
            "\n"
            "[~] Changed\n"
            "-----------\n"
            "pkg:npm/lodash@4.17.21\n"
            "  Version: 4.17.20 -> 4.17.21\n"
            "  Purl: pkg:npm/lodash@4.17.20 -> pkg:npm/lodash@4.17.21\n"
            "\n"
        )

    def test_empty_diff(self):
        output = TextRenderer().generate(Diff())
        assert output == (
            "Diff Summary\n"
            "============\n"
            "Added:   0\n"
            "Removed: 0\n"
            "Changed: 0\n"
            "\n"
        )

    def test_edge_section(self, edge_diff):
        output = TextRenderer().generate(edge_diff)
        assert output.endswith(
            "[~] Edge Changes\n"
            "----------------\n"
            "pkg:npm/lodash@4.17.21\n"
            "  + pkg:npm/new-pkg@2.0.0\n"
        )

    def test_hash_label_without_purl(self):
        old = Sbom()
        new = Sbom()
        new.add_component(Component.create("unpurled", "1.0"))
        diff = Differ().diff(old, new)
        output = TextRenderer().generate(diff)
        assert str(Component.create("unpurled", "1.0").id) in output

    def test_render_to_stream(self, sample_diff):
        stream = io.StringIO()
        TextRenderer().render(sample_diff, stream)
        assert stream.getvalue() == TextRenderer().generate(sample_diff)


class TestMarkdownRenderer:
    """Tests for markdown output."""

    def test_summary_table(self, sample_diff):
        output = MarkdownRenderer().generate(sample_diff)
        assert output.startswith("### SBOM Diff Summary\n")
        assert "| Added | 1 |" in output
        assert "| Removed | 1 |" in output
        assert "| Changed | 1 |" in output

    def test_collapsible_sections(self, sample_diff):
        output = MarkdownRenderer().generate(sample_diff)
        assert "<details><summary><b>Added (1)</b></summary>" in output
        assert "<details><summary><b>Removed (1)</b></summary>" in output
        assert output.count("<details>") == output.count("</details>")

    def test_changed_fields(self, sample_diff):
        output = MarkdownRenderer().generate(sample_diff)
        assert "#### `pkg:npm/lodash@4.17.21`" in output
        assert "- **Version**: `4.17.20` &rarr; `4.17.21`" in output

    def test_edge_section(self, edge_diff):
        output = MarkdownRenderer().generate(edge_diff)
        assert "<b>Edge Changes (1)</b>" in output
        assert "**Added dependencies:**" in output
        assert "- `pkg:npm/new-pkg@2.0.0`" in output
        assert output.count("<details>") == output.count("</details>")

    def test_hashes_reported_as_changed(self):
        old_comp = Component.create("pkg", "1.0")
        old_comp.hashes["sha256"] = "aaa"
        new_comp = Component.create("pkg", "1.0")
        new_comp.hashes["sha256"] = "bbb"
        old, new = Sbom(), Sbom()
        old.add_component(old_comp)
        new.add_component(new_comp)

        output = MarkdownRenderer().generate(Differ().diff(old, new))
        assert "- **Hashes**: changed" in output
        assert "aaa" not in output


class TestJsonRenderer:
    """Tests for JSON output."""

    def test_valid_json(self, sample_diff):
        data = json.loads(JsonRenderer().generate(sample_diff))
        assert data == sample_diff.to_dict()
        assert "summary" not in data
        assert data["added"][0]["purl"] == "pkg:npm/new-pkg@2.0.0"
        assert data["changed"][0]["changes"][0] == {
            "field": "version",
            "old": "4.17.20",
            "new": "4.17.21",
        }

    def test_edges_serialized(self, edge_diff):
        data = json.loads(JsonRenderer().generate(edge_diff))
        assert data["edge_diffs"] == [
            {
                "parent": "pkg:npm/lodash@4.17.21",
                "added": ["pkg:npm/new-pkg@2.0.0"],
                "removed": [],
            }
        ]

    def test_custom_indent(self, sample_diff):
        output = JsonRenderer(indent=4).generate(sample_diff)
        assert '\n    "added"' in output


class TestHelpers:
    """Tests for shared rendering helpers."""

    def test_render_summary(self, sample_diff):
        stream = io.StringIO()
        render_summary(sample_diff, stream)
        assert stream.getvalue() == "Added:   1\nRemoved: 1\nChanged: 1\n"

    def test_describe_license_change(self):
        old = Component.create("pkg", "1.0")
        old.licenses.add("MIT")
        new = Component.create("pkg", "1.0")
        new.licenses.update(["Apache-2.0", "MIT"])
        change = Differ(only=[Field.LICENSE]).compute_change(old, new).changes[0]
        assert describe_change(change) == ("License", "MIT -> Apache-2.0, MIT")

    def test_describe_missing_value(self):
        old = Component.create("pkg", "1.0")
        new = Component.create("pkg", "1.0")
        new.supplier = "acme"
        change = Differ().compute_change(old, new).changes[0]
        assert describe_change(change) == ("Supplier", "(none) -> acme")

    def test_rendering_does_not_modify_diff(self, edge_diff):
        before = edge_diff.to_dict()
        for format in ("text", "markdown", "json"):
            create_renderer(format).generate(edge_diff)
        assert edge_diff.to_dict() == before


class TestCreateRenderer:
    """Tests for the renderer factory."""

    @pytest.mark.parametrize(
        "format,cls",
        [("text", TextRenderer), ("markdown", MarkdownRenderer), ("json", JsonRenderer)],
    )
    def test_known_formats(self, format, cls):
        assert isinstance(create_renderer(format), cls)

    def test_invalid_format(self):
        with pytest.raises(ValueError, match="Unsupported format"):
            create_renderer("html")
