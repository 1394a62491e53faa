"""
ORM models

Canonical registry (clients, products and their learned aliases), saved
orders with their lines, and the processing event log.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from ordex.db.connection import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _uuid() -> str:
    return str(uuid4())


class Client(Base):
    """Canonical client entry"""
    __tablename__ = 'clients'

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(100), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    aliases = relationship('ClientAlias', back_populates='client', cascade='all, delete-orphan')

    def __repr__(self):
        return f"<Client(code='{self.code}', name='{self.name}')>"


class ClientAlias(Base):
    """Free-text client name learned to resolve to a canonical client"""
    __tablename__ = 'client_aliases'

    id = Column(Integer, primary_key=True, autoincrement=True)
    alias = Column(String(255), nullable=False, unique=True, index=True)
    client_id = Column(Integer, ForeignKey('clients.id', ondelete='CASCADE'), nullable=False)
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    client = relationship('Client', back_populates='aliases')


class Product(Base):
    """Canonical product entry"""
    __tablename__ = 'products'

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(100), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=True)
    unit = Column(String(50), nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    aliases = relationship('ProductAlias', back_populates='product', cascade='all, delete-orphan')

    def __repr__(self):
        return f"<Product(code='{self.code}', name='{self.name}')>"


class ProductAlias(Base):
    """Free-text product name learned to resolve to a canonical product"""
    __tablename__ = 'product_aliases'

    id = Column(Integer, primary_key=True, autoincrement=True)
    alias = Column(String(255), nullable=False, unique=True, index=True)
    product_id = Column(Integer, ForeignKey('products.id', ondelete='CASCADE'), nullable=False)
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    product = relationship('Product', back_populates='aliases')


class Order(Base):
    """Saved order"""
    __tablename__ = 'orders'

    id = Column(String(36), primary_key=True, default=_uuid)
    order_number = Column(String(100), nullable=False, index=True)
    customer = Column(String(255), nullable=False)
    customer_code = Column(String(100), nullable=True, index=True)
    customer_match_status = Column(String(20), nullable=True)
    order_date = Column(String(10), nullable=False)
    order_total = Column(Float, nullable=True)
    note = Column(Text, nullable=True)

    confidence = Column(Float, nullable=False, default=0.0)
    method = Column(String(100), nullable=True)
    channel = Column(String(20), nullable=True)
    sender = Column(String(255), nullable=True)
    raw_output = Column(Text, nullable=True)
    warnings = Column(JSON, nullable=True)

    created_at = Column(DateTime, nullable=False, default=_utcnow)

    lines = relationship('OrderLine', back_populates='order', cascade='all, delete-orphan',
                         order_by='OrderLine.position')

    def __repr__(self):
        return f"<Order(id='{self.id}', order_number='{self.order_number}')>"


class OrderLine(Base):
    """Order line item"""
    __tablename__ = 'order_lines'

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(36), ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    position = Column(Integer, nullable=False)

    name = Column(String(255), nullable=True)
    code = Column(String(100), nullable=True)
    match_status = Column(String(20), nullable=True)
    match_confidence = Column(Float, nullable=True)
    quantity = Column(Float, nullable=True)
    unit = Column(String(50), nullable=True)
    unit_price = Column(Float, nullable=True)
    total = Column(Float, nullable=True)

    order = relationship('Order', back_populates='lines')


class ProcessingLog(Base):
    """Processing event log entry"""
    __tablename__ = 'processing_logs'

    id = Column(Integer, primary_key=True, autoincrement=True)
    event = Column(String(100), nullable=False, index=True)
    item_id = Column(String(36), nullable=True, index=True)
    level = Column(String(10), nullable=False, default='info')
    message = Column(Text, nullable=True)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)
