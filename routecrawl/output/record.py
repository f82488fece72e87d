"""
Crawl record emitted once per dispatched page.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class CrawlRecord:
    """Output of one dispatched page."""
    url: str
    contents: List[str]
    metainfo: Dict[str, List[str]]
    params: Dict[str, str] = field(default_factory=dict)
    worker_id: Optional[int] = None
    crawled_at: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'url': self.url,
            'contents': list(self.contents),
            'metainfo': {key: list(values) for key, values in self.metainfo.items()},
            'params': dict(self.params),
            'worker_id': self.worker_id,
            'crawled_at': self.crawled_at
        }
