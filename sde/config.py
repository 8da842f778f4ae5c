"""
Connection settings and configuration file management.

``ConnectionSettings`` is the validated, immutable description of the one
connection a facade owns. ``ConfigManager`` loads the same values from YAML
files with environment variable overrides for deployment.
"""

import os
from copy import deepcopy
from enum import Enum
from pathlib import Path
from typing import Dict, Any, Optional, Union

import yaml
from jsonschema import validate, ValidationError
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.engine import URL

from .dialects import is_file_based
from .exceptions import ConfigurationError
from .security import redact_mapping, setup_secure_logging

logger = setup_secure_logging(__name__)

DEFAULT_DRIVER = 'mysql+pymysql'


class ErrorMode(str, Enum):
    """How execution failures surface to the caller."""
    EXCEPTION = "exception"


class FetchMode(str, Enum):
    """Shape of fetched rows."""
    MAPPING = "mapping"


class ConnectionSettings(BaseModel):
    """
    Connection parameters for one facade.

    The error and fetch modes are fixed: failures always raise and rows are
    always column-name mappings. They are kept as fields so the behaviour is
    visible on the settings object instead of being ambient driver state.
    """

    name: str = Field(..., description="Database name, or file path for file-based drivers")
    username: str = Field(default="root", description="Database user")
    password: str = Field(default="", description="Database password")
    host: str = Field(default="localhost", description="Database host")
    port: Optional[int] = Field(default=None, ge=1, le=65535, description="Database port")
    driver: str = Field(default=DEFAULT_DRIVER, description="SQLAlchemy drivername")
    prefix: Optional[Union[str, bool]] = Field(default=False, description="Table name prefix")
    engine_args: Dict[str, Any] = Field(default_factory=dict, description="Extra create_engine arguments")
    error_mode: ErrorMode = Field(default=ErrorMode.EXCEPTION, description="Execution failure behaviour")
    fetch_mode: FetchMode = Field(default=FetchMode.MAPPING, description="Row shape")

    model_config = {
        "frozen": True,
    }

    @field_validator('name', 'driver')
    @classmethod
    def validate_not_empty(cls, v):
        """Database name and driver are required."""
        if not v or not v.strip():
            raise ValueError('must not be empty')
        return v

    @field_validator('prefix')
    @classmethod
    def validate_prefix(cls, v):
        """A prefix is either a string or disabled."""
        if v is True:
            raise ValueError('prefix must be a string or False')
        if v is None or v is False or v == '':
            return False
        return v

    @property
    def table_prefix(self) -> str:
        """String prepended to every table name."""
        return f"{self.prefix}_" if self.prefix else ""

    def url(self) -> URL:
        """
        Build the SQLAlchemy URL for these settings.

        File-based drivers take the name as the database path and ignore
        credentials and host.
        """
        if is_file_based(self.driver):
            return URL.create(self.driver, database=self.name)

        return URL.create(
            self.driver,
            username=self.username,
            password=self.password or None,
            host=self.host,
            port=self.port,
            database=self.name,
        )

    def engine_kwargs(self) -> Dict[str, Any]:
        """create_engine arguments with defaults applied."""
        engine_args = dict(self.engine_args)
        engine_args.setdefault('pool_pre_ping', True)
        engine_args.setdefault('echo', False)
        return engine_args


# Configuration schema for validation
CONFIG_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["database"],
    "properties": {
        "database": {
            "type": "object",
            "required": ["name"],
            "properties": {
                "name": {"type": "string", "minLength": 1},
                "username": {"type": "string"},
                "password": {"type": ["string", "null"]},
                "host": {"type": "string"},
                "port": {"type": ["integer", "null"], "minimum": 1, "maximum": 65535},
                "driver": {"type": "string"},
                "prefix": {"type": ["string", "boolean", "null"]},
                "engine_args": {"type": "object"}
            }
        },
        "logging": {
            "type": "object",
            "properties": {
                "level": {"type": "string", "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]},
                "log_file": {"type": "string"}
            }
        }
    }
}


class ConfigManager:
    """Loads facade configuration from YAML with environment overrides."""

    # Environment variable mappings; values arrive as strings
    ENV_MAPPINGS = {
        'database.name': 'SDE_DB_NAME',
        'database.username': 'SDE_DB_USER',
        'database.password': 'SDE_DB_PASSWORD',
        'database.host': 'SDE_DB_HOST',
        'database.port': 'SDE_DB_PORT',
        'database.driver': 'SDE_DB_DRIVER',
        'database.prefix': 'SDE_DB_PREFIX',
    }

    def __init__(self, base_config_path: Union[str, Path]):
        """Initialize config manager with base configuration file.

        Args:
            base_config_path: Path to base configuration YAML file
        """
        self.base_config_path = Path(base_config_path)
        if not self.base_config_path.exists():
            raise FileNotFoundError(f"Base config not found: {base_config_path}")

        self.base_config = self._load_yaml_file(self.base_config_path)
        self.merged_config = deepcopy(self.base_config)
        self._apply_env_overrides()

    def _load_yaml_file(self, path: Path) -> Dict[str, Any]:
        try:
            with open(path, 'r') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML file {path}: {e}")
            raise ConfigurationError(str(e)) from e

        if not isinstance(config, dict):
            raise ConfigurationError(f"Config file must contain a dictionary, got {type(config).__name__}")

        return config

    def merge_override(self, override_path: Union[str, Path]) -> None:
        """Merge an override configuration file on top of the current one.

        Args:
            override_path: Path to override configuration file
        """
        override_path = Path(override_path)
        if not override_path.exists():
            raise FileNotFoundError(f"Override config not found: {override_path}")

        override_config = self._load_yaml_file(override_path)
        self.merged_config = self._deep_merge(self.merged_config, override_config)
        self._apply_env_overrides()

        logger.info(f"Merged override config from: {override_path}")

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        result = deepcopy(base)

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = deepcopy(value)

        return result

    def _apply_env_overrides(self) -> None:
        for config_path, env_var in self.ENV_MAPPINGS.items():
            env_value = os.environ.get(env_var)
            if env_value:
                if config_path == 'database.port':
                    try:
                        env_value = int(env_value)
                    except ValueError as e:
                        raise ConfigurationError(f"{env_var} must be an integer, got '{env_value}'") from e
                self._set_nested_value(self.merged_config, config_path, env_value)
                logger.info(f"Applied environment override for {config_path}")

    def _set_nested_value(self, config: Dict[str, Any], path: str, value: Any) -> None:
        keys = path.split('.')
        current = config

        for key in keys[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value

    def get(self, path: str, default: Any = None) -> Any:
        """Get a configuration value using dot notation.

        Args:
            path: Dot-separated path (e.g., 'database.host')
            default: Default value if path not found
        """
        current = self.merged_config

        for key in path.split('.'):
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default

        return current

    def validate(self, schema: Optional[Dict[str, Any]] = None) -> None:
        """Validate configuration against schema.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        schema = schema or CONFIG_SCHEMA

        try:
            validate(self.merged_config, schema)
        except ValidationError as e:
            failed_at = '.'.join(str(p) for p in e.path)
            logger.error(f"Configuration validation failed at '{failed_at}': {e.message}")
            raise ConfigurationError(e.message) from e

        logger.info("Configuration validation successful")

    def get_config(self, redact_secrets: bool = True) -> Dict[str, Any]:
        """Get the merged configuration, optionally with secrets masked."""
        if redact_secrets:
            return redact_mapping(self.merged_config)
        return deepcopy(self.merged_config)

    def connection_settings(self) -> ConnectionSettings:
        """Build validated connection settings from the ``database`` section."""
        database = dict(self.merged_config.get('database') or {})
        if database.get('password') is None:
            database.pop('password', None)
        try:
            return ConnectionSettings(**database)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e


def load_config(base_path: Union[str, Path],
                override_path: Optional[Union[str, Path]] = None,
                validate_schema: bool = True) -> Dict[str, Any]:
    """Load, merge and validate a configuration file.

    Args:
        base_path: Path to base configuration file
        override_path: Optional path to override configuration
        validate_schema: Whether to validate against schema

    Returns:
        Merged configuration (secrets not redacted)
    """
    manager = ConfigManager(base_path)

    if override_path:
        manager.merge_override(override_path)

    if validate_schema:
        manager.validate()

    return manager.get_config(redact_secrets=False)
