from .log_store import ProcessingLogStore
from .order_store import OrderStore, SQLOrderStore

__all__ = ['OrderStore', 'ProcessingLogStore', 'SQLOrderStore']
