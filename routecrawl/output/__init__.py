"""
Crawl records and the sinks workers emit them to.
"""

from .record import CrawlRecord
from .sinks import RecordSink, LoggingSink, CallbackSink, QueueSink, CollectingSink

__all__ = [
    'CrawlRecord',
    'RecordSink', 'LoggingSink', 'CallbackSink', 'QueueSink', 'CollectingSink'
]
