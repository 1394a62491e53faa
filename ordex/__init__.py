"""
ORDEX - Order Extraction Library

Turns incoming order messages (email, chat, API payloads) into structured,
canonically-coded orders.

Basic usage:
    from ordex import OrderIntakeService

    service = OrderIntakeService.from_config()
    service.db.create_all()

    # Classify and queue an ingested item
    item_id = await service.submit({
        'channel': 'api',
        'body': 'Pedido: ACEITE OLIVA Litro 10 27,98 €',
    })
    await service.queue.join()

    # Inspect the outcome
    print(service.queue.get_item(item_id).order_id)
"""

from ordex.config.ordex_config import OrdexConfig
from ordex.service import OrderIntakeService

__all__ = ['OrderIntakeService', 'OrdexConfig']

__version__ = '1.0.0'
