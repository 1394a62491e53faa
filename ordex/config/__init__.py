"""
ORDEX configuration package.
"""

from .ordex_config import OrdexConfig, setup_logging

__all__ = ['OrdexConfig', 'setup_logging']
