"""
Content classification for ingested items.
"""

from .detector import (
    ContentDetector,
    LOWEST_PRIORITY,
    PRIORITY_MAP,
    detect_content,
)

__all__ = [
    'ContentDetector',
    'LOWEST_PRIORITY',
    'PRIORITY_MAP',
    'detect_content',
]
