"""
Order and OrderItem models.

Only what the reward engine reads: delivered line-item quantities per
customer within a date window.
"""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from ..extensions import db


class OrderStatus(str, Enum):
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    PROCESSING = 'processing'
    SHIPPED = 'shipped'
    DELIVERED = 'delivered'
    CANCELLED = 'cancelled'


class Order(db.Model):
    __tablename__ = 'orders'

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(50), nullable=False, unique=True)
    customer_id = db.Column(db.Integer, db.ForeignKey('customers.id'), nullable=False, index=True)

    status = db.Column(db.String(20), nullable=False, default=OrderStatus.PENDING.value, index=True)
    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal('0'))
    total = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal('0'))
    paid_amount = db.Column(db.Numeric(12, 2), default=Decimal('0'))  # Portion paid from wallet
    notes = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = db.relationship('OrderItem', backref='order', lazy='dynamic', cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Order {self.order_number} ({self.status})>'


class OrderItem(db.Model):
    __tablename__ = 'order_items'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)  # Cartons
    unit_price = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal('0'))
    total_price = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal('0'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
