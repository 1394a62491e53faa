"""
ORDEX processing queue.
"""

from .queue import ProcessingQueue, QueueConfig, QueueItem, QueueItemStatus

__all__ = ['ProcessingQueue', 'QueueConfig', 'QueueItem', 'QueueItemStatus']
