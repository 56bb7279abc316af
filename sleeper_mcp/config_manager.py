"""
Configuration management system for the Sleeper MCP Server.

This module provides flexible configuration management with support for:
- Environment variables
- Configuration files (YAML/JSON)
- Configuration validation
- Hot-reloading
"""

import os
import json
import yaml
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Union
from dataclasses import dataclass, field
from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler
import httpx
from pydantic import BaseModel, ValidationError, Field

logger = logging.getLogger(__name__)


@dataclass
class TimeoutConfig:
    """HTTP timeout configuration."""
    total: float = 30.0
    connect: float = 10.0


@dataclass
class LongTimeoutConfig:
    """Long HTTP timeout configuration for the full player catalog fetch."""
    total: float = 120.0
    connect: float = 15.0


@dataclass
class ServerConfig:
    """Server configuration."""
    version: str = "0.1.0"
    host: str = "0.0.0.0"
    port: int = 9000
    base_url: str = "https://api.sleeper.app/v1"
    base_user_agent: str = field(init=False)

    def __post_init__(self):
        self.base_user_agent = f"Sleeper-MCP-Server/{self.version}"


@dataclass
class ValidationLimits:
    """Parameter validation limits."""
    search_limit_min: int = 1
    search_limit_max: int = 50
    search_limit_default: int = 10
    week_min: int = 1
    week_max: int = 22
    trending_lookback_min: int = 1
    trending_lookback_max: int = 168
    trending_limit_min: int = 1
    trending_limit_max: int = 100
    player_ids_max: int = 200


@dataclass
class CacheConfig:
    """Player catalog cache configuration."""
    directory: str = ".cache"
    ttl_hours: float = 24.0
    players_file: str = "players.json"
    meta_file: str = "cache-meta.json"
    format_version: str = "1.0.0"

    @property
    def ttl_seconds(self) -> float:
        return self.ttl_hours * 3600


@dataclass
class RetryConfig:
    """Retry policy for transport-level Sleeper API failures."""
    max_retries: int = 2
    initial_delay: float = 0.5
    max_delay: float = 10.0


@dataclass
class SecurityConfig:
    """Security configuration."""
    max_string_length: int = 1000
    enable_injection_detection: bool = True


class ConfigurationModel(BaseModel):
    """Pydantic model for configuration validation."""
    timeout: TimeoutConfig = Field(default_factory=TimeoutConfig)
    long_timeout: LongTimeoutConfig = Field(default_factory=LongTimeoutConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    limits: ValidationLimits = Field(default_factory=ValidationLimits)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)

    model_config = {"arbitrary_types_allowed": True}


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ['true', '1', 'yes', 'on']


ENV_MAPPINGS = {
    # Timeouts
    'SLEEPER_MCP_TIMEOUT_TOTAL': ('timeout', 'total', float),
    'SLEEPER_MCP_TIMEOUT_CONNECT': ('timeout', 'connect', float),
    'SLEEPER_MCP_LONG_TIMEOUT_TOTAL': ('long_timeout', 'total', float),
    'SLEEPER_MCP_LONG_TIMEOUT_CONNECT': ('long_timeout', 'connect', float),

    # Server
    'SLEEPER_MCP_SERVER_VERSION': ('server', 'version', str),
    'SLEEPER_MCP_HOST': ('server', 'host', str),
    'SLEEPER_MCP_PORT': ('server', 'port', int),
    'SLEEPER_MCP_BASE_URL': ('server', 'base_url', str),

    # Validation limits
    'SLEEPER_MCP_SEARCH_LIMIT_MAX': ('limits', 'search_limit_max', int),
    'SLEEPER_MCP_SEARCH_LIMIT_DEFAULT': ('limits', 'search_limit_default', int),
    'SLEEPER_MCP_WEEK_MIN': ('limits', 'week_min', int),
    'SLEEPER_MCP_WEEK_MAX': ('limits', 'week_max', int),
    'SLEEPER_MCP_TRENDING_LOOKBACK_MAX': ('limits', 'trending_lookback_max', int),
    'SLEEPER_MCP_TRENDING_LIMIT_MAX': ('limits', 'trending_limit_max', int),
    'SLEEPER_MCP_PLAYER_IDS_MAX': ('limits', 'player_ids_max', int),

    # Cache
    'SLEEPER_MCP_CACHE_DIR': ('cache', 'directory', str),
    'SLEEPER_MCP_CACHE_TTL_HOURS': ('cache', 'ttl_hours', float),

    # Retry
    'SLEEPER_MCP_MAX_RETRIES': ('retry', 'max_retries', int),
    'SLEEPER_MCP_RETRY_INITIAL_DELAY': ('retry', 'initial_delay', float),
    'SLEEPER_MCP_RETRY_MAX_DELAY': ('retry', 'max_delay', float),

    # Security
    'SLEEPER_MCP_MAX_STRING_LENGTH': ('security', 'max_string_length', int),
    'SLEEPER_MCP_ENABLE_INJECTION_DETECTION': ('security', 'enable_injection_detection', _parse_bool),
}


class ConfigFileHandler(FileSystemEventHandler):
    """File system event handler for configuration hot-reloading."""

    def __init__(self, config_manager: 'ConfigManager'):
        self.config_manager = config_manager
        super().__init__()

    def on_modified(self, event):
        if not event.is_directory and event.src_path == str(self.config_manager.config_file_path):
            logger.info(f"Configuration file {event.src_path} modified, reloading...")
            self.config_manager.reload_configuration()


class ConfigManager:
    """
    Configuration manager supporting environment variables,
    configuration files, validation, and hot-reloading.
    """

    def __init__(self, config_file: Optional[Union[str, Path]] = None, enable_hot_reload: bool = True):
        """
        Initialize the configuration manager.

        Args:
            config_file: Path to configuration file (YAML or JSON)
            enable_hot_reload: Whether to enable hot-reloading of configuration files
        """
        self.config_file_path = Path(config_file) if config_file else None
        self.enable_hot_reload = enable_hot_reload
        self._config_lock = threading.RLock()
        self._observer = None
        self._config: Optional[ConfigurationModel] = None

        self.load_configuration()

        if self.enable_hot_reload and self.config_file_path and self.config_file_path.exists():
            self._setup_hot_reload()

    def _setup_hot_reload(self):
        """Set up file system monitoring for hot-reloading."""
        if self._observer:
            self._observer.stop()
            self._observer.join()

        self._observer = Observer()
        event_handler = ConfigFileHandler(self)
        self._observer.schedule(event_handler, str(self.config_file_path.parent), recursive=False)
        self._observer.start()

    def load_configuration(self):
        """Load configuration from environment variables and config file."""
        with self._config_lock:
            config_dict = {}

            if self.config_file_path and self.config_file_path.exists():
                config_dict = self._load_config_file()

            config_dict = self._load_environment_variables(config_dict)

            try:
                self._config = ConfigurationModel(**config_dict)
            except ValidationError as e:
                raise ValueError(f"Configuration validation failed: {e}")

    def _load_config_file(self) -> Dict[str, Any]:
        """Load configuration from YAML or JSON file."""
        try:
            with open(self.config_file_path, 'r') as f:
                if self.config_file_path.suffix.lower() in ['.yml', '.yaml']:
                    return yaml.safe_load(f) or {}
                elif self.config_file_path.suffix.lower() == '.json':
                    return json.load(f)
                else:
                    raise ValueError(f"Unsupported configuration file format: {self.config_file_path.suffix}")
        except Exception as e:
            raise ValueError(f"Failed to load configuration file {self.config_file_path}: {e}")

    def _load_environment_variables(self, config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """Overlay SLEEPER_MCP_* environment variables onto the file configuration."""
        for env_var, (section, key, type_converter) in ENV_MAPPINGS.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                try:
                    if section not in config_dict:
                        config_dict[section] = {}
                    config_dict[section][key] = type_converter(env_value)
                except (ValueError, TypeError) as e:
                    raise ValueError(f"Invalid value for environment variable {env_var}: {env_value} ({e})")

        return config_dict

    def reload_configuration(self):
        """Reload configuration from file and environment variables."""
        try:
            self.load_configuration()
            logger.info("Configuration reloaded successfully")
        except Exception as e:
            logger.error(f"Failed to reload configuration: {e}")

    @property
    def config(self) -> ConfigurationModel:
        """Get the current configuration."""
        with self._config_lock:
            if self._config is None:
                raise RuntimeError("Configuration not loaded")
            return self._config

    def get_http_timeout(self) -> httpx.Timeout:
        """Get HTTP timeout configuration."""
        timeout_config = self.config.timeout
        return httpx.Timeout(timeout_config.total, connect=timeout_config.connect)

    def get_long_http_timeout(self) -> httpx.Timeout:
        """Get long HTTP timeout configuration."""
        timeout_config = self.config.long_timeout
        return httpx.Timeout(timeout_config.total, connect=timeout_config.connect)

    def get_user_agent(self, service_name: str = None) -> str:
        """Get user agent string for a service."""
        base_agent = self.config.server.base_user_agent
        if service_name:
            service_descriptions = {
                "sleeper_user": "Sleeper User Fetcher",
                "sleeper_league": "Sleeper League Fetcher",
                "sleeper_rosters": "Sleeper Rosters Fetcher",
                "sleeper_users": "Sleeper Users Fetcher",
                "sleeper_matchups": "Sleeper Matchups Fetcher",
                "sleeper_transactions": "Sleeper Transactions Fetcher",
                "sleeper_drafts": "Sleeper Drafts Fetcher",
                "sleeper_nfl_state": "Sleeper NFL State Fetcher",
                "sleeper_players": "Sleeper Player Catalog Fetcher",
                "sleeper_trending": "Sleeper Trending Players Fetcher",
            }
            description = service_descriptions.get(service_name, "Generic Service")
            return f"{base_agent} ({description})"
        return base_agent

    def get_limits_dict(self) -> Dict[str, int]:
        """Get validation limits as a plain dictionary."""
        limits = self.config.limits
        return {
            "search_limit_min": limits.search_limit_min,
            "search_limit_max": limits.search_limit_max,
            "search_limit_default": limits.search_limit_default,
            "week_min": limits.week_min,
            "week_max": limits.week_max,
            "trending_lookback_min": limits.trending_lookback_min,
            "trending_lookback_max": limits.trending_lookback_max,
            "trending_limit_min": limits.trending_limit_min,
            "trending_limit_max": limits.trending_limit_max,
            "player_ids_max": limits.player_ids_max,
        }

    def stop(self):
        """Stop the configuration manager and clean up resources."""
        if self._observer:
            self._observer.stop()
            self._observer.join()
            self._observer = None


_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get the process configuration manager, creating it on first use."""
    global _config_manager
    if _config_manager is None:
        config_paths = [
            Path("config.yml"),
            Path("config.yaml"),
            Path("config.json"),
            Path("/etc/sleeper-mcp/config.yml"),
            Path("/etc/sleeper-mcp/config.yaml"),
            Path("/etc/sleeper-mcp/config.json"),
        ]

        config_file = None
        for path in config_paths:
            if path.exists():
                config_file = path
                break

        _config_manager = ConfigManager(config_file)

    return _config_manager


def set_config_manager(config_manager: ConfigManager):
    """Replace the process configuration manager."""
    global _config_manager
    if _config_manager:
        _config_manager.stop()
    _config_manager = config_manager
