"""
Configuration for mountain.

Provides:
1. Sectioned dataclass configuration with defaults
2. Environment variable overrides (MOUNTAIN_<SECTION>_<KEY>, and
   MOUNTAIN_LOG_<KEY> for logging)
3. Config file loading (JSON/TOML/YAML)
4. Validation on construction

Configuration Hierarchy (highest to lowest priority):
1. Environment variables
2. Config file
3. Default values

Example:
    config = MountainConfig.load("mountain.toml")
    hasher = make_hasher(config.hash)

    # Override with environment
    # MOUNTAIN_HASH_ALGORITHM=sha512
    # MOUNTAIN_LOG_LEVEL=DEBUG
"""

from __future__ import annotations

import json
import logging
import os
import tomllib
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .logging import LoggingOptions, load_logging_options_from_env

logger = logging.getLogger(__name__)

HASH_BACKENDS = ("hashlib", "cryptography")


# =============================================================================
# Configuration Sections
# =============================================================================

@dataclass
class HashConfig:
    """Hash function backing the MMR."""
    backend: str = "hashlib"
    algorithm: str = "sha256"

    def __post_init__(self):
        if self.backend not in HASH_BACKENDS:
            raise ValueError(f"backend must be one of {HASH_BACKENDS}")
        if not isinstance(self.algorithm, str) or not self.algorithm:
            raise ValueError("algorithm must be a non-empty string")


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "WARNING"
    format: str = "text"  # "json" or "text"
    file: Optional[str] = None

    def __post_init__(self):
        if self.format not in ("text", "json"):
            raise ValueError("format must be 'text' or 'json'")
        if not isinstance(self.level, str) or not isinstance(
            logging.getLevelName(self.level.upper()), int
        ):
            raise ValueError(f"Unknown log level: {self.level}")
        if self.file is not None and not isinstance(self.file, str):
            raise ValueError("file must be a path string")

    def to_options(self) -> LoggingOptions:
        return LoggingOptions(level=self.level, format=self.format, file=self.file)


# =============================================================================
# Main Configuration
# =============================================================================

@dataclass
class MountainConfig:
    """Main configuration combining all sections."""
    hash: HashConfig = field(default_factory=HashConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def load(
        cls,
        config_file: Optional[Union[str, Path]] = None,
        env_prefix: str = "MOUNTAIN",
    ) -> "MountainConfig":
        """
        Load configuration with hierarchy: env vars > config file > defaults.

        Args:
            config_file: Path to config file (JSON, TOML or YAML)
            env_prefix: Prefix for environment variables

        Returns:
            Loaded and validated configuration
        """
        config_dict: Dict[str, Any] = {}

        if config_file:
            config_dict = cls._load_file(Path(config_file))

        config_dict = cls._apply_env_overrides(config_dict, env_prefix)
        config = cls._from_dict(config_dict)

        # Logging reads PREFIX_LOG_*, shared with load_logging_options_from_env
        options = load_logging_options_from_env(config.logging.to_options(), env_prefix)
        config.logging = LoggingConfig(
            level=options.level, format=options.format, file=options.file
        )
        return config

    @classmethod
    def _load_file(cls, path: Path) -> Dict[str, Any]:
        """Load configuration from file."""
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        content = path.read_text()

        try:
            if path.suffix == ".json":
                parsed = json.loads(content)
            elif path.suffix == ".toml":
                parsed = tomllib.loads(content)
            elif path.suffix in {".yaml", ".yml"}:
                parsed = yaml.safe_load(content)
            else:
                raise ValueError(f"Unknown config file format: {path.suffix}")
        except (json.JSONDecodeError, tomllib.TOMLDecodeError, yaml.YAMLError) as exc:
            raise ValueError(f"Invalid config file {path}: {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise ValueError("Config must be a mapping at top level")
        return parsed

    @classmethod
    def _apply_env_overrides(cls, config: Dict[str, Any], prefix: str) -> Dict[str, Any]:
        """Apply environment variable overrides."""
        sections = {f.name for f in fields(cls)} - {"logging"}
        for key, value in os.environ.items():
            if not key.startswith(f"{prefix}_"):
                continue

            # MOUNTAIN_HASH_ALGORITHM -> hash.algorithm
            parts = key[len(prefix) + 1:].lower().split("_")
            if len(parts) < 2 or parts[0] not in sections:
                continue

            section = parts[0]
            field_name = "_".join(parts[1:])
            config.setdefault(section, {})[field_name] = value

        return config

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "MountainConfig":
        """Create config from dictionary, ignoring unknown keys."""
        def build(section_cls, values: Any):
            if not isinstance(values, dict):
                return section_cls()
            known = {f.name for f in fields(section_cls)}
            unknown = set(values) - known
            if unknown:
                logger.warning("Ignoring unknown config keys: %s", sorted(unknown))
            return section_cls(**{k: v for k, v in values.items() if k in known})

        return cls(
            hash=build(HashConfig, data.get("hash")),
            logging=build(LoggingConfig, data.get("logging")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
