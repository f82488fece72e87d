"""
Configuration management for crawls.
"""

import importlib
import yaml
import logging
from pathlib import Path
from typing import Dict, List, Any, Optional
from dataclasses import dataclass, field, fields

from ..crawler.errors import ConfigError
from ..crawler.fetcher import DEFAULT_USER_AGENT
from ..crawler.processor import PageProcessor
from ..crawler.router import Router


DEFAULT_PROCESSOR = 'routecrawl.crawler.processor:DefaultPageProcessor'


@dataclass
class CrawlerConfig:
    """Configuration for crawler behavior."""
    seed_urls: List[str]
    worker_count: int = 1
    request_timeout: int = 30
    max_concurrent_requests: int = 10
    user_agent: str = DEFAULT_USER_AGENT
    shared_visited: bool = False
    validate_seeds: bool = True
    stats_interval: float = 30.0


@dataclass
class RouteConfig:
    """One route: URL pattern and the processor class handling it."""
    pattern: str
    processor: str = DEFAULT_PROCESSOR
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class DownloadConfig:
    """Configuration for the content downloader."""
    allowed_extensions: List[str] = field(default_factory=lambda: ['.jpg', '.png', '.gif', '.jpeg'])
    save_path: Optional[str] = None


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = 'INFO'
    file: str = 'logs/crawler.log'
    format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    json: bool = False


@dataclass
class MonitoringConfig:
    """Configuration for monitoring."""
    prometheus_port: int = 8000
    metrics_enabled: bool = False


@dataclass
class Config:
    """Main configuration class."""
    crawler: CrawlerConfig
    routes: List[RouteConfig]
    download: DownloadConfig = field(default_factory=DownloadConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)


def _build_section(cls, data: Any, name: str):
    """Instantiate a config dataclass, reporting bad keys as ConfigError."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping")

    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown keys in config section '{name}': {', '.join(unknown)}")

    try:
        return cls(**data)
    except TypeError as e:
        raise ConfigError(f"Invalid config section '{name}': {e}") from e


def parse_config(config_data: Dict[str, Any]) -> Config:
    """
    Build and validate a Config from already-loaded data.

    Raises:
        ConfigError: on any missing, unknown or invalid value
    """
    if not isinstance(config_data, dict):
        raise ConfigError("Configuration must be a mapping")
    if 'crawler' not in config_data:
        raise ConfigError("Missing config section 'crawler'")

    unknown = sorted(set(config_data) - {f.name for f in fields(Config)})
    if unknown:
        raise ConfigError(f"Unknown config sections: {', '.join(unknown)}")

    routes_data = config_data.get('routes') or []
    if not isinstance(routes_data, list):
        raise ConfigError("Config section 'routes' must be a list")

    config = Config(
        crawler=_build_section(CrawlerConfig, config_data['crawler'], 'crawler'),
        routes=[_build_section(RouteConfig, route, f"routes[{i}]")
                for i, route in enumerate(routes_data)],
        download=_build_section(DownloadConfig, config_data.get('download'), 'download'),
        logging=_build_section(LoggingConfig, config_data.get('logging'), 'logging'),
        monitoring=_build_section(MonitoringConfig, config_data.get('monitoring'), 'monitoring'),
    )
    validate_config(config)
    return config


def validate_config(config: Config):
    """Validate configuration values."""
    if not config.crawler.seed_urls:
        raise ConfigError("At least one seed URL must be provided")

    if config.crawler.worker_count < 1:
        raise ConfigError("worker_count must be at least 1")

    if config.crawler.max_concurrent_requests < 1:
        raise ConfigError("max_concurrent_requests must be at least 1")

    if config.crawler.request_timeout <= 0:
        raise ConfigError("request_timeout must be positive")

    if not config.routes:
        raise ConfigError("At least one route must be configured")

    if not isinstance(logging.getLevelName(config.logging.level.upper()), int):
        raise ConfigError(f"Unknown log level: {config.logging.level}")

    logging.getLogger(__name__).debug("Configuration validation passed")


def load_processor_class(path: str) -> type:
    """
    Import a processor class from ``package.module:ClassName`` or
    ``package.module.ClassName``.
    """
    module_name, sep, class_name = path.partition(':')
    if not sep:
        module_name, _, class_name = path.rpartition('.')
    if not module_name or not class_name:
        raise ConfigError(f"Invalid processor path: {path!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"Cannot import processor module {module_name!r}: {e}") from e

    processor_class = getattr(module, class_name, None)
    if not isinstance(processor_class, type) or not issubclass(processor_class, PageProcessor):
        raise ConfigError(f"{path!r} is not a PageProcessor class")

    return processor_class


def build_router(config: Config) -> Router:
    """Instantiate every configured processor and register its route."""
    router = Router()
    for route in config.routes:
        processor_class = load_processor_class(route.processor)
        try:
            processor = processor_class(**route.options)
        except TypeError as e:
            raise ConfigError(f"Invalid options for {route.processor}: {e}") from e
        router.insert(route.pattern, processor)
    return router


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_path: str = "config.yaml"):
        self.config_path = Path(config_path)
        self._config: Optional[Config] = None

    def load_config(self) -> Config:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            raise ConfigError(f"Configuration file not found: {self.config_path}")

        try:
            with open(self.config_path, 'r') as file:
                config_data = yaml.safe_load(file)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {self.config_path}: {e}") from e

        self._config = parse_config(config_data)
        return self._config

    @property
    def config(self) -> Config:
        """Get the loaded configuration."""
        if not self._config:
            raise ConfigError("Configuration not loaded. Call load_config() first.")
        return self._config


# Global config manager instance
config_manager = ConfigManager()


def get_config() -> Config:
    """Get the global configuration instance."""
    return config_manager.config


def load_config(config_path: str = "config.yaml") -> Config:
    """Load configuration from file."""
    global config_manager
    config_manager = ConfigManager(config_path)
    return config_manager.load_config()
