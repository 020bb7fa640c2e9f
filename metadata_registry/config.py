"""
NFT Metadata Registry - Configuration

Handles hierarchical configuration loading (defaults, config file,
environment variables), logging setup, and construction of a registry from
a validated configuration.
"""

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

from .manager import MetadataRegistry
from .providers import (
    ClockSequence, CounterSequence, IdentityProvider, SequenceProvider
)
from .storage import InMemoryStore, JSONFileStore, KeyValueStore, MetadataStore, UriStore


# Configuration file locations in order of precedence (highest to lowest)
CONFIG_SEARCH_PATHS = [
    Path.cwd() / '.nftmeta.yml',
    Path.cwd() / '.nftmeta.json',
    Path.home() / '.nftmeta' / 'config.yml',
    Path.home() / '.nftmeta' / 'config.json',
]

ENV_PREFIX = 'NFTMETA_'

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class StorageConfig(BaseModel):
    """Storage backend settings."""

    backend: Literal['memory', 'json'] = 'memory'
    directory: str = 'registry_data'
    compressed: bool = False
    lock_timeout: float = Field(default=30.0, gt=0)


class RegistryConfig(BaseModel):
    """Validated registry configuration."""

    owner: Optional[str] = None
    storage: StorageConfig = Field(default_factory=StorageConfig)
    sequence: Literal['counter', 'clock'] = 'counter'
    log_level: str = 'INFO'

    @field_validator('owner', mode='before')
    @classmethod
    def coerce_owner(cls, v):
        """Identities read from the environment may parse as numbers."""
        return str(v) if v is not None else v


class ConfigurationManager:
    """Merges configuration from defaults, a config file and the environment."""

    def __init__(self, config_file: Optional[str] = None, search_paths: Optional[List[Path]] = None):
        """
        Initialize configuration manager.

        Args:
            config_file: Explicit configuration file path
            search_paths: Locations searched when no explicit file is given
        """
        self.logger = logging.getLogger(__name__)
        self.config_file = config_file
        self.search_paths = search_paths if search_paths is not None else CONFIG_SEARCH_PATHS
        self.sources: List[str] = []

    def load(self) -> RegistryConfig:
        """
        Load configuration from all sources in hierarchical order.

        Returns:
            Validated configuration
        """
        self.sources = ["defaults"]
        configs = [RegistryConfig().model_dump()]

        if self.config_file:
            configs.append(self._load_config_file(Path(self.config_file)))
            self.sources.append(f"file:{self.config_file}")
        else:
            for config_path in self.search_paths:
                if config_path.exists():
                    configs.append(self._load_config_file(config_path))
                    self.sources.append(f"file:{config_path}")
                    self.logger.debug(f"Loaded config from {config_path}")
                    break

        env_config = self._load_environment_variables()
        if env_config:
            configs.append(env_config)
            self.sources.append("environment")

        merged = self._deep_merge(*configs)
        if merged['storage'].get('directory'):
            merged['storage']['directory'] = os.path.expanduser(
                os.path.expandvars(merged['storage']['directory'])
            )
        return RegistryConfig.model_validate(merged)

    def _load_config_file(self, path: Path) -> Dict[str, Any]:
        """Load configuration from a YAML or JSON file."""
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, 'r') as f:
            if path.suffix in ('.yml', '.yaml'):
                data = yaml.safe_load(f)
            elif path.suffix == '.json':
                data = json.load(f)
            else:
                raise ValueError(f"Unknown config file format: {path}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {path}")
        return data

    def _load_environment_variables(self) -> Dict[str, Any]:
        """
        Load configuration from environment variables.

        NFTMETA_STORAGE_BACKEND=json becomes {'storage': {'backend': 'json'}}.
        Only the first underscore after a section name nests, so
        NFTMETA_LOG_LEVEL maps to 'log_level'.
        """
        env_config: Dict[str, Any] = {}
        sections = {'storage'}

        for key, value in os.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue

            config_key = key[len(ENV_PREFIX):].lower()
            section, _, rest = config_key.partition('_')
            if section in sections and rest:
                env_config.setdefault(section, {})[rest] = self._parse_env_value(value)
            else:
                env_config[config_key] = self._parse_env_value(value)

        return env_config

    def _parse_env_value(self, value: str) -> Union[str, int, float, bool]:
        """Parse environment variable value to appropriate type."""
        if value.lower() in ('true', 'yes'):
            return True
        if value.lower() in ('false', 'no'):
            return False

        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value

    def _deep_merge(self, *dicts: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge multiple dictionaries."""
        result: Dict[str, Any] = {}

        for dictionary in dicts:
            for key, value in dictionary.items():
                if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                    result[key] = self._deep_merge(result[key], value)
                else:
                    result[key] = value

        return result


def load_config(config_file: Optional[str] = None) -> RegistryConfig:
    """Load configuration using the standard search paths."""
    return ConfigurationManager(config_file).load()


def setup_logging(level: Union[str, int] = 'INFO') -> logging.Logger:
    """Configure the package logger on stderr."""
    package_logger = logging.getLogger('metadata_registry')
    package_logger.setLevel(level)

    if not package_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package_logger.addHandler(handler)

    return package_logger


def _create_backend(config: StorageConfig, name: str) -> KeyValueStore:
    if config.backend == 'json':
        suffix = '.json.gz' if config.compressed else '.json'
        return JSONFileStore(
            Path(config.directory) / f"{name}{suffix}",
            compressed=config.compressed,
            lock_timeout=config.lock_timeout
        )
    return InMemoryStore()


def _create_sequence(config: RegistryConfig, metadata_store: MetadataStore) -> SequenceProvider:
    # Persistent stores outlive the process, so resume past the newest marker
    latest = metadata_store.latest_marker()
    if config.sequence == 'clock':
        return ClockSequence(floor=latest)
    return CounterSequence(start=latest + 1)


def create_registry(
    config: RegistryConfig,
    identity: IdentityProvider,
    sequence: Optional[SequenceProvider] = None
) -> MetadataRegistry:
    """
    Build a registry from configuration.

    Args:
        config: Validated configuration
        identity: Provider for the current caller
        sequence: Overrides the configured sequence provider

    Returns:
        Registry with separate metadata and URI stores
    """
    setup_logging(config.log_level)

    metadata_store = MetadataStore(_create_backend(config.storage, 'metadata'))

    return MetadataRegistry(
        metadata_store=metadata_store,
        uri_store=UriStore(_create_backend(config.storage, 'uris')),
        identity=identity,
        sequence=sequence or _create_sequence(config, metadata_store),
        owner=config.owner
    )
