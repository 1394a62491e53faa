"""
Canonical identifier matching for clients and products.
"""

from .registry import CanonicalRegistry, SQLRegistry
from .resolver import IdentifierResolver

__all__ = ['CanonicalRegistry', 'SQLRegistry', 'IdentifierResolver']
