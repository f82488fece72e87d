"""
Visited-URL sets used by workers to avoid requeueing.
"""

from typing import Set


class VisitedSet:
    """Per-worker visited set."""

    def __init__(self):
        self._urls: Set[str] = set()

    def __contains__(self, url: str) -> bool:
        return url in self._urls

    def __len__(self) -> int:
        return len(self._urls)

    def add(self, url: str) -> bool:
        """Mark a URL as visited. Returns False if it already was."""
        if url in self._urls:
            return False
        self._urls.add(url)
        return True


class SharedVisitedSet(VisitedSet):
    """
    Visited set shared by all workers of a crawl.

    Gives global at-most-once fetching. Workers run as tasks on one event
    loop and ``add`` never awaits, so check-and-insert is atomic without a
    lock. Not safe to share across threads.
    """
