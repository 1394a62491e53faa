"""
Notification connectors for processed items.
"""

from .base import BaseNotifier, LoggingNotifier, NotificationResult
from .webhook import WebhookConfig, WebhookNotifier

__all__ = [
    'BaseNotifier',
    'LoggingNotifier',
    'NotificationResult',
    'WebhookConfig',
    'WebhookNotifier',
]
