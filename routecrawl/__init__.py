"""
Route-gated web crawler framework.

Pages are fetched from seed URLs, links are followed only when they
match a registered route, and every visited page is handed to the
processor registered for its route.
"""

__version__ = "1.0.0"
__description__ = "A route-gated, depth-first web crawler framework"
