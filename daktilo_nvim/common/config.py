"""Configuration file loading and management"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_RPC_PORT = 50051
DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
CONFIG_ENV_VAR = "DAKTILO_NVIM_CONFIG"


@dataclass
class PluginConfig:
    """Plugin settings recognised by DaktiloStart"""
    rpc_port: int = DEFAULT_RPC_PORT


@dataclass
class LoggingConfig:
    """Logging configuration settings"""
    level: str = DEFAULT_LOG_LEVEL
    file: Optional[str] = None
    format: str = DEFAULT_LOG_FORMAT


@dataclass
class Config:
    """Complete plugin configuration"""
    plugin: PluginConfig = field(default_factory=PluginConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def rpcPort_validate(value: Any) -> Optional[int]:
    """
    Validate an rpc_port value.

    Args:
        value: Raw value from the config source

    Returns:
        The port as int, or None when it is not an unsigned 16-bit integer
    """
    # bool is an int subclass; true/false from Lua must not become port 1/0
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    if not 0 <= value <= 0xFFFF:
        return None
    return value


class ConfigLoader:
    """Loads and parses configuration from YAML files and start arguments"""

    DEFAULT_CONFIG_PATHS = [
        "~/.config/daktilo_nvim/config.yml",
    ]

    @staticmethod
    def configFile_find() -> Optional[Path]:
        """
        Find configuration file in standard locations

        The DAKTILO_NVIM_CONFIG environment variable takes precedence.

        Returns:
            Path to config file, or None if not found
        """
        candidates: list[str] = list(ConfigLoader.DEFAULT_CONFIG_PATHS)
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            candidates.insert(0, env_path)

        for config_path in candidates:
            path = Path(config_path).expanduser().resolve()
            if path.exists() and path.is_file():
                return path
        return None

    @staticmethod
    def yaml_load(file_path: Path) -> Dict[str, Any]:
        """
        Load YAML configuration file

        Args:
            file_path: Path to YAML file

        Returns:
            Parsed configuration dictionary

        Raises:
            FileNotFoundError: If file does not exist
            yaml.YAMLError: If file is not valid YAML
            ValueError: If the document is not a mapping
        """
        with open(file_path, "r") as f:
            data = yaml.safe_load(f)

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {file_path} must contain a YAML dictionary")

        return data

    @staticmethod
    def plugin_parse(data: Any, base: Optional[PluginConfig] = None) -> PluginConfig:
        """
        Parse plugin options, keeping defaults for anything unusable

        Args:
            data: Raw option mapping (any other value is ignored)
            base: Values to start from, defaults when None

        Returns:
            Parsed PluginConfig
        """
        plugin = PluginConfig(rpc_port=base.rpc_port if base else DEFAULT_RPC_PORT)
        if not isinstance(data, dict):
            if data is not None:
                logger.warning("Ignoring plugin options of type %s", type(data).__name__)
            return plugin

        if "rpc_port" in data:
            port = rpcPort_validate(data["rpc_port"])
            if port is None:
                logger.warning(
                    "Invalid rpc_port %r, using %s", data["rpc_port"], plugin.rpc_port
                )
            else:
                plugin.rpc_port = port
        return plugin

    @staticmethod
    def logging_parse(data: Any) -> LoggingConfig:
        """
        Parse the logging section

        Args:
            data: Raw logging mapping

        Returns:
            Parsed LoggingConfig
        """
        logging_config = LoggingConfig()
        if not isinstance(data, dict):
            return logging_config

        level = data.get("level")
        if isinstance(level, str) and isinstance(logging.getLevelName(level.upper()), int):
            logging_config.level = level.upper()
        log_file = data.get("file")
        if isinstance(log_file, str) and log_file:
            logging_config.file = log_file
        log_format = data.get("format")
        if isinstance(log_format, str) and log_format:
            logging_config.format = log_format
        return logging_config

    @staticmethod
    def config_parse(data: Dict[str, Any]) -> Config:
        """
        Parse configuration dictionary into Config object

        `rpc_port` may sit at the top level (as passed to DaktiloStart) or
        under a `plugin` section. Unknown keys are ignored.

        Args:
            data: Raw configuration dictionary

        Returns:
            Parsed Config object
        """
        plugin = ConfigLoader.plugin_parse(data.get("plugin"))
        top_level = {key: value for key, value in data.items() if key == "rpc_port"}
        plugin = ConfigLoader.plugin_parse(top_level, base=plugin)

        return Config(
            plugin=plugin,
            logging=ConfigLoader.logging_parse(data.get("logging")),
        )

    @staticmethod
    def config_load(file_path: Optional[Path] = None) -> Config:
        """
        Load configuration from file

        A missing or unreadable file yields the defaults.

        Args:
            file_path: Optional path to config file. If None, searches standard locations.

        Returns:
            Parsed Config object
        """
        if file_path is None:
            file_path = ConfigLoader.configFile_find()
            if file_path is None:
                return Config()

        try:
            data = ConfigLoader.yaml_load(file_path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.warning("Could not load config %s, using defaults: %s", file_path, e)
            return Config()
        return ConfigLoader.config_parse(data)

    @staticmethod
    def configWithOverrides_load(
        file_path: Optional[Path] = None,
        **overrides: Any
    ) -> Config:
        """
        Load configuration and apply the options passed to DaktiloStart

        Args:
            file_path: Optional path to config file
            **overrides: Plugin options, e.g. rpc_port

        Returns:
            Config object with overrides applied

        Example:
            config = ConfigLoader.configWithOverrides_load(rpc_port=50052)
        """
        config = ConfigLoader.config_load(file_path)
        config.plugin = ConfigLoader.plugin_parse(overrides, base=config.plugin)
        return config
