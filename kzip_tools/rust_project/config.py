"""Configuration loading and validation for the rust-project converter."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml


class ConfigError(Exception):
    """Fatal setup error: bad configuration, manifest, project root or output."""

    def __init__(
        self,
        message: str,
        file: Optional[str] = None,
        line: Optional[int] = None,
        error_type: str = "config_invalid",
    ):
        super().__init__(message)
        self.message = message
        self.file = file
        self.line = line
        self.error_type = error_type

    def to_json(self) -> dict[str, Any]:
        """Serialize error to JSON format for machine parsing."""
        result: dict[str, Any] = {
            "error": self.error_type,
            "message": self.message,
        }
        if self.file:
            result["file"] = self.file
        if self.line:
            result["line"] = self.line
        return result

    def __str__(self) -> str:
        parts = [self.message]
        if self.file:
            parts.append(f"file: {self.file}")
        if self.line:
            parts.append(f"line: {self.line}")
        return " | ".join(parts)


DEFAULT_CONFIG_PATH = "rust_project_to_kzip.yaml"
DEFAULT_CORPUS = "fuchsia"
DEFAULT_LANGUAGE = "rust"


@dataclass
class ConverterConfig:
    """Complete converter configuration."""

    corpus: str = DEFAULT_CORPUS
    language: str = DEFAULT_LANGUAGE
    source_extensions: list[str] = field(default_factory=lambda: [".rs"])
    dedupe_inputs: bool = True
    follow_symlinks: bool = False
    show_first_crate: bool = True
    show_closures: bool = True


def get_default_config() -> ConverterConfig:
    """Return the default converter configuration."""
    return ConverterConfig()


def _check_type(
    data: dict[str, Any],
    key: str,
    expected: type,
    config_file: Optional[str] = None,
) -> None:
    """Reject a present key whose value is not of the expected type."""
    if key in data and not isinstance(data[key], expected):
        raise ConfigError(
            f"'{key}' must be of type {expected.__name__}, got {type(data[key]).__name__}",
            file=config_file,
            error_type="config_invalid",
        )


def validate_config(config: ConverterConfig, config_file: Optional[str] = None) -> None:
    """Validate configuration values.

    Raises:
        ConfigError: If configuration is invalid.
    """
    for name in ("corpus", "language"):
        value = getattr(config, name)
        if not isinstance(value, str) or not value.strip():
            raise ConfigError(
                f"'{name}' must be a non-empty string",
                file=config_file,
                error_type="config_invalid",
            )

    if not config.source_extensions:
        raise ConfigError(
            "'source_extensions' must list at least one extension",
            file=config_file,
            error_type="config_invalid",
        )
    for ext in config.source_extensions:
        if not isinstance(ext, str) or not ext.startswith(".") or len(ext) < 2:
            raise ConfigError(
                f"Invalid source extension '{ext}': must look like '.rs'",
                file=config_file,
                error_type="config_invalid",
            )


def load_config(config_path: Path | str) -> ConverterConfig:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to the YAML config file.

    Returns:
        ConverterConfig with loaded values merged with defaults.

    Raises:
        ConfigError: If the file exists but contains invalid configuration.
    """
    config_path = Path(config_path)
    config_file = str(config_path)

    defaults = get_default_config()

    if not config_path.exists():
        return defaults

    try:
        content = config_path.read_text()
        if not content.strip():
            return defaults

        data = yaml.safe_load(content)
        if not data:
            return defaults
        if not isinstance(data, dict):
            raise ConfigError(
                "Top-level converter config must be a mapping",
                file=config_file,
                error_type="config_invalid",
            )

    except yaml.YAMLError as e:
        line = None
        mark = getattr(e, "problem_mark", None)
        if mark is not None:
            line = mark.line + 1
        raise ConfigError(
            f"Invalid YAML: {e}",
            file=config_file,
            line=line,
            error_type="config_invalid",
        )

    for key in ("dedupe_inputs", "follow_symlinks", "show_first_crate", "show_closures"):
        _check_type(data, key, bool, config_file)
    _check_type(data, "source_extensions", list, config_file)

    config = ConverterConfig(
        corpus=data.get("corpus", defaults.corpus),
        language=data.get("language", defaults.language),
        source_extensions=data.get("source_extensions", defaults.source_extensions),
        dedupe_inputs=data.get("dedupe_inputs", defaults.dedupe_inputs),
        follow_symlinks=data.get("follow_symlinks", defaults.follow_symlinks),
        show_first_crate=data.get("show_first_crate", defaults.show_first_crate),
        show_closures=data.get("show_closures", defaults.show_closures),
    )

    validate_config(config, config_file)

    return config
