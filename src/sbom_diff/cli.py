"""Command-line interface for sbom-diff."""

import io
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape

from sbom_diff import __version__
from sbom_diff.config import DiffConfig, load_config
from sbom_diff.differ import Differ, Field
from sbom_diff.exceptions import SbomDiffError
from sbom_diff.policy import FailOn, check_fail_on, check_licenses
from sbom_diff.readers import INPUT_FORMATS, load_sbom
from sbom_diff.renderer import RENDER_FORMATS, create_renderer, render_summary

console = Console(stderr=True)

# Exit codes
EXIT_ERROR = 1
EXIT_LICENSE_VIOLATION = 2
EXIT_FAIL_ON_VIOLATION = 3


def _split_fields(values: tuple[str, ...]) -> list[str]:
    """Flatten repeated and comma-separated --only values."""
    names: list[str] = []
    for value in values:
        names.extend(part.strip() for part in value.split(",") if part.strip())
    return names


def _merge_options(
    config: DiffConfig,
    format: str | None,
    output: str | None,
    only: tuple[str, ...],
    fail_on: tuple[str, ...],
    deny_license: tuple[str, ...],
    allow_license: tuple[str, ...],
    summary: bool,
    quiet: bool,
) -> DiffConfig:
    """Apply command-line options on top of file configuration."""
    if format:
        config.input_format = format
    if output:
        config.output = output
    if only:
        config.only = _split_fields(only)
    if fail_on:
        config.fail_on = list(fail_on)
    if deny_license:
        config.deny_licenses = list(deny_license)
    if allow_license:
        config.allow_licenses = list(allow_license)
    config.summary = config.summary or summary
    config.quiet = config.quiet or quiet
    return config


def _report_violations(violations: list[str]) -> None:
    for message in violations:
        console.print(f"[red]error:[/red] {escape(message)}", highlight=False, soft_wrap=True)


@click.command()
@click.version_option(version=__version__, prog_name="sbom-diff")
@click.argument("old", type=str)
@click.argument("new", type=str)
@click.option(
    "--format",
    "-f",
    type=click.Choice(INPUT_FORMATS),
    default=None,
    help="Input format (default: auto)",
)
@click.option(
    "--output",
    "-o",
    type=click.Choice(RENDER_FORMATS),
    default=None,
    help="Output format (default: text)",
)
@click.option(
    "--only",
    multiple=True,
    help="Only report changes in these fields (comma-separated: "
    + ", ".join(f.value for f in Field)
    + ")",
)
@click.option(
    "--fail-on",
    type=click.Choice([c.value for c in FailOn]),
    multiple=True,
    help="Exit with code 3 on this condition (repeatable)",
)
@click.option("--deny-license", multiple=True, help="Deny this license (repeatable)")
@click.option("--allow-license", multiple=True, help="Allow only these licenses (repeatable)")
@click.option("--summary", is_flag=True, help="Print only summary counts")
@click.option("--quiet", "-q", is_flag=True, help="Suppress all output except errors")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Configuration file (default: .sbom-diff.yaml if present)",
)
def main(
    old: str,
    new: str,
    format: str | None,
    output: str | None,
    only: tuple[str, ...],
    fail_on: tuple[str, ...],
    deny_license: tuple[str, ...],
    allow_license: tuple[str, ...],
    summary: bool,
    quiet: bool,
    config_path: Path | None,
) -> None:
    """Compare two SBOM documents.

    OLD and NEW are CycloneDX or SPDX JSON files; use - to read one from stdin.
    """
    try:
        config = load_config(config_path)
        config = _merge_options(
            config, format, output, only, fail_on, deny_license, allow_license, summary, quiet
        )
        config.validate()
    except SbomDiffError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]", highlight=False, soft_wrap=True)
        sys.exit(EXIT_ERROR)

    logging.basicConfig(level=config.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

    try:
        old_sbom = load_sbom(old, config.input_format, source="old")
        new_sbom = load_sbom(new, config.input_format, source="new")
    except SbomDiffError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]", highlight=False, soft_wrap=True)
        sys.exit(EXIT_ERROR)

    result = Differ(only=config.only_fields()).diff(old_sbom, new_sbom)

    license_violations = check_licenses(new_sbom, config.deny_licenses, config.allow_licenses)
    fail_on_violations = check_fail_on(result, config.fail_on_conditions())

    if not config.quiet:
        if config.summary:
            buffer = io.StringIO()
            render_summary(result, buffer)
            report = buffer.getvalue()
        else:
            report = create_renderer(config.output).generate(result)
        click.echo(report, nl=False)

    if license_violations:
        _report_violations(license_violations)
        sys.exit(EXIT_LICENSE_VIOLATION)

    if fail_on_violations:
        _report_violations(fail_on_violations)
        sys.exit(EXIT_FAIL_ON_VIOLATION)
