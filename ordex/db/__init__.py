from .connection import Base, Database, build_database_url
from .models import (
    Client,
    ClientAlias,
    Order,
    OrderLine,
    ProcessingLog,
    Product,
    ProductAlias,
)

__all__ = [
    'Base',
    'Database',
    'build_database_url',
    'Client',
    'ClientAlias',
    'Order',
    'OrderLine',
    'ProcessingLog',
    'Product',
    'ProductAlias',
]
