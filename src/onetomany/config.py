# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Configuration loading and validation for onetomany relations."""

import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = ".onetomany.yml"


class ConfigurationError(Exception):
    """Raised when configuration validation fails critically."""

    pass


class Config:
    """Configuration for OneToMany relations.

    Loads configuration from .onetomany.yml with validation and defaults.
    Hosts that keep their settings elsewhere can build one with from_mapping().
    """

    DEFAULTS = {
        "check_invariants": False,
        "prune_empty_sets": False,
        "most_linked_limit": 10,
        "log_mutations": False,
    }

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_path: Path to configuration file. If None, uses default location.
        """
        if config_path is None:
            config_path = Path.cwd() / DEFAULT_CONFIG_FILENAME

        self.config_path: Optional[Path] = config_path
        self._config: Dict[str, Any] = {}
        self._load_config()

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any], strict: bool = False) -> "Config":
        """Build a configuration from an in-memory mapping instead of a file.

        Args:
            values: Parameter overrides. Missing keys take their defaults.
            strict: If True, unknown or invalid parameters raise instead of
                    being logged and replaced by defaults.

        Returns:
            Config instance with no backing file.

        Raises:
            ConfigurationError: In strict mode, if any parameter is unknown or invalid.
        """
        config = cls.__new__(cls)
        config.config_path = None
        config._config = cls.DEFAULTS.copy()
        config._validate_and_merge(dict(values), strict=strict)
        return config

    def _load_config(self) -> None:
        """Load and validate configuration from file."""
        assert self.config_path is not None
        if not self.config_path.exists():
            logger.info(f"Configuration file not found at {self.config_path}, using defaults")
            self._config = self.DEFAULTS.copy()
            return

        try:
            with open(self.config_path, encoding="utf-8") as f:
                loaded_config = yaml.safe_load(f)

            if loaded_config is None:
                logger.warning("Configuration file is empty, using defaults")
                self._config = self.DEFAULTS.copy()
                return

            if not isinstance(loaded_config, dict):
                logger.warning(
                    f"Configuration file must contain a YAML dictionary, "
                    f"got {type(loaded_config)}, using defaults"
                )
                self._config = self.DEFAULTS.copy()
                return

            self._config = self.DEFAULTS.copy()
            self._validate_and_merge(loaded_config)

        except yaml.YAMLError as e:
            logger.warning(
                f"Error parsing configuration file {self.config_path}: {e}, using defaults"
            )
            self._config = self.DEFAULTS.copy()
        except OSError as e:
            logger.warning(
                f"Could not read configuration file {self.config_path}: {e}, using defaults"
            )
            self._config = self.DEFAULTS.copy()

    def _validate_and_merge(self, loaded_config: Dict[str, Any], strict: bool = False) -> None:
        """Validate loaded configuration and merge with defaults.

        Invalid parameters are logged as warnings and defaults are used,
        unless strict is set.
        """
        for key, value in loaded_config.items():
            if key not in self.DEFAULTS:
                if strict:
                    raise ConfigurationError(f"Unknown configuration parameter '{key}'")
                logger.warning(f"Unknown configuration parameter '{key}', ignoring")
                continue

            if not self._validate_parameter(key, value):
                if strict:
                    raise ConfigurationError(f"Invalid value for '{key}': {value!r}")
                logger.warning(
                    f"Invalid value for '{key}': {value}, using default {self.DEFAULTS[key]}"
                )
                continue

            self._config[key] = value

    def _validate_parameter(self, key: str, value: Any) -> bool:
        """Validate a configuration parameter.

        Returns:
            True if valid, False if invalid
        """
        expected_type = type(self.DEFAULTS[key])
        # bool is a subclass of int; "most_linked_limit: true" is not a limit
        if expected_type is int and isinstance(value, bool):
            return False
        if not isinstance(value, expected_type):
            return False

        if key == "most_linked_limit":
            return bool(value > 0)

        return True

    def to_dict(self) -> Dict[str, Any]:
        """Effective configuration values, defaults included."""
        return self._config.copy()

    @property
    def check_invariants(self) -> bool:
        """Whether to validate both indices after every mutation."""
        value = self._config["check_invariants"]
        assert isinstance(value, bool)
        return value

    @property
    def prune_empty_sets(self) -> bool:
        """Whether a Source entry is dropped once its last Target is unlinked.

        Not observable through the relation API, where an absent Source and
        a Source with an empty set read the same.
        """
        value = self._config["prune_empty_sets"]
        assert isinstance(value, bool)
        return value

    @property
    def most_linked_limit(self) -> int:
        """Number of Sources listed under graph_metadata in exports."""
        value = self._config["most_linked_limit"]
        assert isinstance(value, int)
        return value

    @property
    def log_mutations(self) -> bool:
        """Whether each link/unlink emits a DEBUG log record."""
        value = self._config["log_mutations"]
        assert isinstance(value, bool)
        return value
