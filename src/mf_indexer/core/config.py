"""
Configuration module for mf-indexer.

Supports loading from YAML/JSON files with environment variable overrides.
Default values are loaded from defaults.yaml for maintainability.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

# Path to the default configuration file
_DEFAULTS_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

# Cache for default values
_defaults_cache: dict[str, Any] | None = None


def _load_defaults() -> dict[str, Any]:
    """Load default configuration values from defaults.yaml."""
    global _defaults_cache

    if _defaults_cache is not None:
        return _defaults_cache

    if not _DEFAULTS_CONFIG_PATH.exists():
        logger.warning(f"Defaults config not found: {_DEFAULTS_CONFIG_PATH}")
        _defaults_cache = {}
        return _defaults_cache

    try:
        content = _DEFAULTS_CONFIG_PATH.read_text(encoding="utf-8")
        _defaults_cache = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse defaults config: {e}")
        _defaults_cache = {}

    return _defaults_cache


def _get_default(section: str, key: str, fallback: Any = None) -> Any:
    """Get a default value from the defaults config."""
    defaults = _load_defaults()
    section_defaults = defaults.get(section, {})
    return section_defaults.get(key, fallback)


@dataclass
class ScanConfig:
    """Configuration for a single scan.

    The scanner takes a snapshot of these values when a scan starts, so
    changing a ScanConfig afterwards does not affect a running scan.
    """

    root: str = field(default_factory=lambda: _get_default("scan", "root", "."))
    include_globs: list[str] = field(
        default_factory=lambda: list(_get_default("scan", "include_globs", ["**/*"]))
    )
    extra_ignore: list[str] = field(
        default_factory=lambda: list(_get_default("scan", "extra_ignore", []))
    )
    max_size_bytes: Optional[int] = field(
        default_factory=lambda: _get_default("scan", "max_size_bytes", 5 * 1024 * 1024)
    )
    concurrency: int = field(default_factory=lambda: _get_default("scan", "concurrency", 64))
    follow_symlinks: bool = field(
        default_factory=lambda: _get_default("scan", "follow_symlinks", False)
    )
    absolute: bool = field(default_factory=lambda: _get_default("scan", "absolute", False))
    sample_bytes: int = field(default_factory=lambda: _get_default("scan", "sample_bytes", 4096))
    channel_capacity: int = field(
        default_factory=lambda: _get_default("scan", "channel_capacity", 1024)
    )

    @property
    def worker_count(self) -> int:
        """Concurrency clamped to at least one worker."""
        return max(1, int(self.concurrency))

    def validate(self) -> "ScanConfig":
        """
        Check value ranges.

        Returns:
            Self, for chaining

        Raises:
            ValueError: If a numeric setting is out of range
        """
        if self.max_size_bytes is not None and self.max_size_bytes < 0:
            raise ValueError(f"max_size_bytes must be >= 0, got {self.max_size_bytes}")
        if self.sample_bytes < 0:
            raise ValueError(f"sample_bytes must be >= 0, got {self.sample_bytes}")
        if self.channel_capacity < 1:
            raise ValueError(f"channel_capacity must be >= 1, got {self.channel_capacity}")
        return self


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = field(default_factory=lambda: _get_default("logging", "level", "WARNING"))
    format: str = field(
        default_factory=lambda: _get_default(
            "logging", "format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
    )


@dataclass
class IndexerConfig:
    """Main configuration class for mf-indexer."""

    scan: ScanConfig = field(default_factory=ScanConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, path: Path | str) -> "IndexerConfig":
        """
        Load configuration from a YAML or JSON file.

        Args:
            path: Path to the configuration file (.yaml, .yml, or .json)

        Returns:
            IndexerConfig instance with loaded values

        Raises:
            FileNotFoundError: If the config file doesn't exist
            ValueError: If the format is unsupported, the file does not parse,
                or it names an unknown section or key
        """
        path = Path(path)
        fmt = _file_format(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        content = path.read_text(encoding="utf-8")
        if not content.strip():
            return cls()

        try:
            data = yaml.safe_load(content) if fmt == "yaml" else json.loads(content)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {path}: {e}") from e

        return cls._from_dict(data if data is not None else {})

    @classmethod
    def _from_dict(cls, data: dict) -> "IndexerConfig":
        """
        Create IndexerConfig from a dictionary.

        Raises:
            ValueError: If a section or key is unknown or a section is not a mapping
        """
        if not isinstance(data, dict):
            raise ValueError(f"Configuration must be a mapping, got {type(data).__name__}")

        sections = {"scan": ScanConfig, "logging": LoggingConfig}
        unknown = sorted(set(data) - set(sections))
        if unknown:
            raise ValueError(f"Unknown configuration section(s): {', '.join(map(str, unknown))}")

        config = cls()
        for name, section_cls in sections.items():
            if name in data:
                setattr(config, name, _build_section(section_cls, name, data[name]))

        return config

    def apply_env_overrides(self) -> "IndexerConfig":
        """
        Apply environment variable overrides to the configuration.

        Environment variables follow the pattern: MF_<SECTION>_<KEY>
        Examples:
            - MF_SCAN_ROOT
            - MF_SCAN_INCLUDE_GLOBS (comma-separated)
            - MF_SCAN_MAX_SIZE_BYTES ("none" disables the limit)
            - MF_SCAN_CONCURRENCY
            - MF_LOGGING_LEVEL

        Returns:
            Self with environment overrides applied
        """
        env_mappings = {
            # Scan config
            "MF_SCAN_ROOT": ("scan", "root", str),
            "MF_SCAN_INCLUDE_GLOBS": ("scan", "include_globs", _parse_list),
            "MF_SCAN_EXTRA_IGNORE": ("scan", "extra_ignore", _parse_list),
            "MF_SCAN_MAX_SIZE_BYTES": ("scan", "max_size_bytes", _parse_optional_int),
            "MF_SCAN_CONCURRENCY": ("scan", "concurrency", int),
            "MF_SCAN_FOLLOW_SYMLINKS": ("scan", "follow_symlinks", _parse_bool),
            "MF_SCAN_ABSOLUTE": ("scan", "absolute", _parse_bool),
            "MF_SCAN_SAMPLE_BYTES": ("scan", "sample_bytes", int),
            "MF_SCAN_CHANNEL_CAPACITY": ("scan", "channel_capacity", int),
            # Logging config
            "MF_LOGGING_LEVEL": ("logging", "level", str),
            "MF_LOGGING_FORMAT": ("logging", "format", str),
        }

        for env_var, (section, key, converter) in env_mappings.items():
            value = os.environ.get(env_var)
            if value is not None:
                section_obj = getattr(self, section)
                setattr(section_obj, key, converter(value))

        return self

    def to_dict(self) -> dict:
        """Convert configuration to a dictionary."""
        return asdict(self)

    def to_yaml(self) -> str:
        """Serialize configuration to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    def to_json(self) -> str:
        """Serialize configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=2)

    def save(self, path: Path | str) -> None:
        """
        Write the configuration to a file, choosing YAML or JSON by suffix.

        Raises:
            ValueError: If the file format is unsupported
        """
        path = Path(path)
        content = self.to_yaml() if _file_format(path) == "yaml" else self.to_json() + "\n"

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def _file_format(path: Path) -> str:
    """Return "yaml" or "json" for a config path, by suffix."""
    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return "yaml"
    if suffix == ".json":
        return "json"
    raise ValueError(f"Unsupported config file format: {path.suffix or path.name}")


def _parse_bool(value: str) -> bool:
    """Parse a string to boolean."""
    return value.lower() in ("true", "1", "yes", "on")


def _parse_list(value: str) -> list[str]:
    """Parse a comma-separated string to a list, dropping empty items."""
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_optional_int(value: str) -> Optional[int]:
    """Parse an integer, where 'none' or an empty string means no value."""
    if value.strip().lower() in ("", "none", "null"):
        return None
    return int(value)


def _build_section(section_cls: type, name: str, values: Any) -> Any:
    """Instantiate a config section, rejecting keys the section does not define."""
    if values is None:
        return section_cls()
    if not isinstance(values, dict):
        raise ValueError(f"Section '{name}' must be a mapping, got {type(values).__name__}")

    known = {f.name for f in fields(section_cls)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ValueError(f"Unknown key(s) in section '{name}': {', '.join(map(str, unknown))}")

    return section_cls(**values)


def load_config(config_path: Optional[Path | str] = None, apply_env: bool = True) -> IndexerConfig:
    """
    Load configuration with optional environment variable overrides.

    Args:
        config_path: Optional path to config file. If None, uses defaults.
        apply_env: Whether to apply environment variable overrides.

    Returns:
        IndexerConfig instance
    """
    if config_path:
        config = IndexerConfig.from_file(config_path)
    else:
        config = IndexerConfig()

    if apply_env:
        config.apply_env_overrides()

    return config
