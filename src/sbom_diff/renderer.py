"""Diff renderers for terminals, review comments and tooling."""

import io
import json
from abc import ABC, abstractmethod
from typing import Any, TextIO

from sbom_diff.differ import Diff, Field, FieldChange

RENDER_FORMATS = ["text", "markdown", "json"]


def _format_value(value: Any) -> str:
    """Format a field value for display."""
    if value is None:
        return "(none)"
    if isinstance(value, (set, frozenset)):
        return ", ".join(sorted(value)) if value else "(none)"
    return str(value)


def describe_change(change: FieldChange) -> tuple[str, str]:
    """Return a (label, description) pair for a field change."""
    label = change.field.value.capitalize()
    if change.field == Field.HASHES:
        return label, "changed"
    return label, f"{_format_value(change.old)} -> {_format_value(change.new)}"


class Renderer(ABC):
    """Abstract base class for diff renderers."""

    @abstractmethod
    def render(self, diff: Diff, stream: TextIO) -> None:
        """Write a formatted diff to a stream.

        Args:
            diff: The diff to render. Not modified.
            stream: Text stream to write to.
        """
        pass

    def generate(self, diff: Diff) -> str:
        """Render a diff to a string."""
        buffer = io.StringIO()
        self.render(diff, buffer)
        return buffer.getvalue()


class TextRenderer(Renderer):
    """Plain text for terminal output."""

    def render(self, diff: Diff, stream: TextIO) -> None:
        """Render plain text sections."""
        w = stream.write
        w("Diff Summary\n")
        w("============\n")
        w(f"Added:   {len(diff.added)}\n")
        w(f"Removed: {len(diff.removed)}\n")
        w(f"Changed: {len(diff.changed)}\n")
        w("\n")

        if diff.added:
            w("[+] Added\n")
            w("---------\n")
            for c in diff.added:
                w(f"{c.label}\n")
            w("\n")

        if diff.removed:
            w("[-] Removed\n")
            w("-----------\n")
            for c in diff.removed:
                w(f"{c.label}\n")
            w("\n")

        if diff.changed:
            w("[~] Changed\n")
            w("-----------\n")
            for c in diff.changed:
                w(f"{c.new.label}\n")
                for change in c.changes:
                    label, text = describe_change(change)
                    w(f"  {label}: {text}\n")
            w("\n")

        if diff.edge_diffs:
            w("[~] Edge Changes\n")
            w("----------------\n")
            for edge in diff.edge_diffs:
                w(f"{edge.parent}\n")
                for removed in sorted(edge.removed):
                    w(f"  - {removed}\n")
                for added in sorted(edge.added):
                    w(f"  + {added}\n")


class MarkdownRenderer(Renderer):
    """GitHub-flavored markdown with collapsible sections, for PR comments."""

    def render(self, diff: Diff, stream: TextIO) -> None:
        """Render a summary table followed by <details> blocks."""
        w = stream.write
        w("### SBOM Diff Summary\n\n")
        w("| Change | Count |\n")
        w("| --- | --- |\n")
        w(f"| Added | {len(diff.added)} |\n")
        w(f"| Removed | {len(diff.removed)} |\n")
        w(f"| Changed | {len(diff.changed)} |\n")
        w("\n")

        if diff.added:
            self._open(stream, "Added", len(diff.added))
            for c in diff.added:
                w(f"- `{c.label}`\n")
            self._close(stream)

        if diff.removed:
            self._open(stream, "Removed", len(diff.removed))
            for c in diff.removed:
                w(f"- `{c.label}`\n")
            self._close(stream)

        if diff.changed:
            self._open(stream, "Changed", len(diff.changed))
            for c in diff.changed:
                w(f"#### `{c.new.label}`\n")
                for change in c.changes:
                    if change.field == Field.HASHES:
                        w("- **Hashes**: changed\n")
                        continue
                    label = change.field.value.capitalize()
                    w(
                        f"- **{label}**: `{_format_value(change.old)}` &rarr; "
                        f"`{_format_value(change.new)}`\n"
                    )
            self._close(stream)

        if diff.edge_diffs:
            self._open(stream, "Edge Changes", len(diff.edge_diffs))
            for edge in diff.edge_diffs:
                w(f"#### `{edge.parent}`\n")
                if edge.removed:
                    w("**Removed dependencies:**\n")
                    for removed in sorted(edge.removed):
                        w(f"- `{removed}`\n")
                if edge.added:
                    w("**Added dependencies:**\n")
                    for added in sorted(edge.added):
                        w(f"- `{added}`\n")
                w("\n")
            self._close(stream)

    def _open(self, stream: TextIO, title: str, count: int) -> None:
        stream.write(f"<details><summary><b>{title} ({count})</b></summary>\n\n")

    def _close(self, stream: TextIO) -> None:
        stream.write("</details>\n\n")


class JsonRenderer(Renderer):
    """Machine-readable JSON of the full diff."""

    def __init__(self, indent: int = 2) -> None:
        """Initialize JSON renderer.

        Args:
            indent: JSON indentation level.
        """
        self.indent = indent

    def render(self, diff: Diff, stream: TextIO) -> None:
        """Serialize the diff as JSON."""
        json.dump(diff.to_dict(), stream, indent=self.indent)
        stream.write("\n")


def render_summary(diff: Diff, stream: TextIO) -> None:
    """Write only the added/removed/changed counts."""
    stream.write(f"Added:   {len(diff.added)}\n")
    stream.write(f"Removed: {len(diff.removed)}\n")
    stream.write(f"Changed: {len(diff.changed)}\n")


def create_renderer(format: str) -> Renderer:
    """Create a renderer for the specified format.

    Args:
        format: Output format ('text', 'markdown', 'json').

    Returns:
        Appropriate Renderer instance.

    Raises:
        ValueError: If format is not supported.
    """
    if format == "text":
        return TextRenderer()
    elif format == "markdown":
        return MarkdownRenderer()
    elif format == "json":
        return JsonRenderer()
    else:
        raise ValueError(f"Unsupported format: {format}. Use 'text', 'markdown', or 'json'.")
