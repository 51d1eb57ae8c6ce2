#!/usr/bin/env python3
"""
Configuration management for the inventory store.

This module handles loading, merging, and validating configuration from:
1. Default values
2. User config file (~/.invstore/config.toml, or --config)
3. Environment variables (prefixed with INVENTORY_)
4. Command-line options
"""
from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

import tomli
from pydantic import ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from inventorystore.errors import ConfigError

ENV_PREFIX = "INVENTORY_"
DEFAULT_CONFIG_PATH = Path.home() / ".invstore" / "config.toml"


class StoreKind(str, Enum):
    """Supported storage backends."""
    MEMORY = "memory"
    FILE = "file"


class LogLevel(str, Enum):
    """Log levels for application logging."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class InventoryConfig(BaseSettings):
    """Main configuration model for the inventory store."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        case_sensitive=False,
        extra="forbid",  # Raise error on unknown fields
    )

    # Storage settings
    store: StoreKind = StoreKind.MEMORY
    store_file: Optional[Path] = Path("data") / "products.json"

    # Logging settings
    log_level: LogLevel = LogLevel.INFO
    log_file: Optional[Path] = None
    color_output: bool = True

    @field_validator("store", mode="before")
    @classmethod
    def normalize_store(cls, v: Any) -> Any:
        """Accept "mem" as an alias and any letter case."""
        if isinstance(v, str):
            v = v.strip().lower()
            return "memory" if v == "mem" else v
        return v

    @field_validator("store_file", mode="before")
    @classmethod
    def empty_store_file_is_unset(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def file_store_needs_path(self) -> "InventoryConfig":
        if self.store == StoreKind.FILE and self.store_file is None:
            raise ValueError("file path required for file store")
        return self

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip().lower()
            return "warning" if v == "warn" else v
        return v


# Deep merge utility for configurations
def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dictionaries, with values from override taking precedence.

    If both values are dictionaries, they are deep-merged recursively.
    Otherwise, the value from override is used.
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_toml_config(file_path: Union[str, Path], required: bool = False) -> Dict[str, Any]:
    """
    Load configuration from a TOML file.

    A missing file gives an empty dict unless ``required`` is set.

    Raises:
        ConfigError: If the file is required but missing, or cannot be parsed
    """
    path = Path(file_path)
    if not path.exists():
        if required:
            raise ConfigError(f"Config file not found: {path}")
        return {}

    try:
        with open(path, "rb") as f:
            return tomli.load(f)
    except (tomli.TOMLDecodeError, OSError) as e:
        raise ConfigError(f"Error loading config file {path}: {e}") from e


def env_to_config_dict() -> Dict[str, Any]:
    """
    Collect INVENTORY_* environment variables that name a config field.

    Example: INVENTORY_STORE_FILE=/tmp/p.json becomes {'store_file': '/tmp/p.json'}
    """
    fields = InventoryConfig.model_fields
    config_dict: Dict[str, Any] = {}

    for key, value in os.environ.items():
        if key.upper().startswith(ENV_PREFIX):
            name = key[len(ENV_PREFIX):].lower()
            if name in fields:
                config_dict[name] = value

    return config_dict


def load_config(
    config_file: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> InventoryConfig:
    """
    Load and merge configuration from all sources.

    Order of precedence (highest to lowest):
    1. ``overrides`` (command-line options; None values are ignored)
    2. Environment variables
    3. Config file
    4. Default values from InventoryConfig

    Args:
        config_file: Config file to read. If None, the default location is used when it exists.
        overrides: Values given on the command line

    Raises:
        ConfigError: If the configuration is invalid or contains unknown fields
    """
    if config_file is None:
        file_config = load_toml_config(DEFAULT_CONFIG_PATH)
    else:
        file_config = load_toml_config(config_file, required=True)

    cli_config = {k: v for k, v in (overrides or {}).items() if v is not None}

    merged: Dict[str, Any] = {}
    merged = deep_merge(merged, file_config)
    merged = deep_merge(merged, env_to_config_dict())
    merged = deep_merge(merged, cli_config)

    try:
        return InventoryConfig(**merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
