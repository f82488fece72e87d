"""
Utility modules for the crawler.
"""

from .logger import setup_logging, get_crawler_logger
from .monitoring import CrawlerMonitor, MetricsCollector
from .config import Config, ConfigManager, load_config, get_config, build_router
from .downloader import ContentDownloader

__all__ = [
    'setup_logging', 'get_crawler_logger',
    'CrawlerMonitor', 'MetricsCollector',
    'Config', 'ConfigManager', 'load_config', 'get_config', 'build_router',
    'ContentDownloader'
]
