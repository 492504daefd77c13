"""Configuration for sbom-diff runs."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from sbom_diff.differ import Field
from sbom_diff.exceptions import ConfigError
from sbom_diff.policy import FailOn
from sbom_diff.readers import INPUT_FORMATS
from sbom_diff.renderer import RENDER_FORMATS

# Looked up in the working directory when no --config is given
CONFIG_FILENAMES = [".sbom-diff.yaml", "sbom-diff.yaml"]

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _as_list(value) -> list[str]:
    """Accept a YAML list or a comma-separated string."""
    if not value:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [str(v) for v in value]


@dataclass
class DiffConfig:
    """Defaults for the diff command. Command-line options override these."""

    # Input/output
    input_format: str = "auto"
    output: str = "text"

    # Comparison
    only: list[str] = field(default_factory=list)

    # Policy
    fail_on: list[str] = field(default_factory=list)
    deny_licenses: list[str] = field(default_factory=list)
    allow_licenses: list[str] = field(default_factory=list)

    # Behavior
    summary: bool = False
    quiet: bool = False

    # Logging
    log_level: str = "WARNING"

    @classmethod
    def from_dict(cls, data: dict) -> "DiffConfig":
        """Create config from dictionary."""
        return cls(
            input_format=data.get("input_format", "auto"),
            output=data.get("output", "text"),
            only=_as_list(data.get("only")),
            fail_on=_as_list(data.get("fail_on")),
            deny_licenses=_as_list(data.get("deny_licenses")),
            allow_licenses=_as_list(data.get("allow_licenses")),
            summary=data.get("summary", False),
            quiet=data.get("quiet", False),
            log_level=os.environ.get("SBOM_DIFF_LOG_LEVEL") or data.get("log_level", "WARNING"),
        )

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "input_format": self.input_format,
            "output": self.output,
            "only": self.only,
            "fail_on": self.fail_on,
            "deny_licenses": self.deny_licenses,
            "allow_licenses": self.allow_licenses,
            "summary": self.summary,
            "quiet": self.quiet,
            "log_level": self.log_level,
        }

    def only_fields(self) -> Optional[list[Field]]:
        """Parsed field filter, or None to compare every field."""
        if not self.only:
            return None
        return [Field.parse(name) for name in self.only]

    def fail_on_conditions(self) -> list[FailOn]:
        """Parsed fail-on conditions."""
        return [FailOn(name) for name in self.fail_on]

    def validate(self) -> None:
        """Check enumerated values.

        Raises:
            ConfigError: If a value is not recognized.
        """
        try:
            self.only_fields()
            self.fail_on_conditions()
        except ValueError as e:
            raise ConfigError(str(e)) from e

        if self.input_format not in INPUT_FORMATS:
            raise ConfigError(f"Unknown input format: {self.input_format}")
        if self.output not in RENDER_FORMATS:
            raise ConfigError(f"Unknown output format: {self.output}")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f"Unknown log level: {self.log_level}")


def find_config_file(directory: Path) -> Optional[Path]:
    """Return the first config file present in a directory."""
    for name in CONFIG_FILENAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def load_config(path: Optional[Path] = None) -> DiffConfig:
    """Load configuration from YAML.

    Args:
        path: Explicit config file. When None, the working directory is
            searched for a default config file.

    Returns:
        DiffConfig, with defaults when no file is found.

    Raises:
        ConfigError: If the file cannot be read or is not a YAML mapping.
    """
    if path is None:
        path = find_config_file(Path.cwd())
        if path is None:
            return DiffConfig.from_dict({})

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except OSError as e:
        raise ConfigError(f"could not read config {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"config {path} must be a mapping")

    config = DiffConfig.from_dict(data)
    config.validate()
    return config
