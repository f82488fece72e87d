"""
Logging utilities for crawls.
"""

import logging
import logging.handlers
import json
import platform
import sys
from pathlib import Path
from typing import Dict, Any, List, Optional
from datetime import datetime, timezone

import psutil


# Record attributes attached by CrawlerLogAdapter
CONTEXT_FIELDS = ('worker_id', 'seed_url', 'url', 'event_type')

# Quieted to WARNING; covers aiohttp.access and aiohttp.client
NOISY_LOGGERS = ('aiohttp', 'asyncio')

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with any crawl context fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'location': f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update({key: getattr(record, key) for key in CONTEXT_FIELDS if hasattr(record, key)})

        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False)


class CrawlerLogAdapter(logging.LoggerAdapter):
    """
    Attaches worker context to every record.

    Messages from a worker are prefixed with ``[worker-N]`` so plain-text
    logs of concurrent workers stay readable.
    """

    def __init__(self, logger: logging.Logger, extra: Optional[Dict[str, Any]] = None):
        super().__init__(logger, extra or {})

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        kwargs['extra'] = {**self.extra, **(kwargs.get('extra') or {})}
        if 'worker_id' in self.extra:
            msg = f"[worker-{self.extra['worker_id']}] {msg}"
        return msg, kwargs

    def log_url_event(self, level: int, url: str, message: str, **kwargs):
        """Log an event about one URL, tagged for filtering in JSON logs."""
        kwargs['extra'] = {**(kwargs.get('extra') or {}), 'url': url, 'event_type': 'url_event'}
        self.log(level, message, **kwargs)


def _build_handlers(log_file: Path) -> List[logging.Handler]:
    """Console at INFO, rotating crawl log at DEBUG, rotating errors.log at ERROR."""
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.INFO)

    crawl_log = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=50 * 1024 * 1024, backupCount=5, encoding='utf-8'
    )
    crawl_log.setLevel(logging.DEBUG)

    error_log = logging.handlers.RotatingFileHandler(
        log_file.parent / 'errors.log', maxBytes=10 * 1024 * 1024, backupCount=3, encoding='utf-8'
    )
    error_log.setLevel(logging.ERROR)

    return [console, crawl_log, error_log]


def setup_logging(config: Dict[str, Any], enable_json: bool = False) -> logging.Logger:
    """
    Configure the root logger for a crawl run.

    Args:
        config: Logging section as a dict (level, file, format)
        enable_json: Emit one JSON object per line instead of plain text

    Returns:
        The root logger
    """
    log_file = Path(config.get('file', 'logs/crawler.log'))
    log_file.parent.mkdir(parents=True, exist_ok=True)
    level = config.get('level', 'INFO').upper()

    formatter = JSONFormatter() if enable_json else logging.Formatter(
        config.get('format', DEFAULT_FORMAT)
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level))
    root_logger.handlers.clear()
    for handler in _build_handlers(log_file):
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info(f"Logging to {log_file} at {level} (json={enable_json})")
    return root_logger


def get_crawler_logger(name: str, **context) -> CrawlerLogAdapter:
    """Module logger wrapped with worker context, e.g. ``worker_id`` and ``seed_url``."""
    return CrawlerLogAdapter(logging.getLogger(name), context)


def log_system_info():
    """Log one line describing the host the crawl runs on."""
    memory_gb = psutil.virtual_memory().total / 1024 ** 3
    logging.getLogger(__name__).info(
        f"Host: {platform.platform()}, Python {platform.python_version()}, "
        f"{psutil.cpu_count()} CPUs, {memory_gb:.1f} GB memory"
    )
