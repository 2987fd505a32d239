"""
Payment model.
"""
from datetime import datetime
from enum import Enum
from ..extensions import db


class PaymentMethod(str, Enum):
    CASH = 'cash'
    BANK_TRANSFER = 'bank_transfer'
    CREDIT = 'credit'


class PaymentType(str, Enum):
    USER_TOPUP = 'user_topup'
    CASH_PAYMENT = 'cash_payment'
    REWARD = 'reward'


class PaymentStatus(str, Enum):
    PENDING = 'pending'
    COMPLETED = 'completed'
    FAILED = 'failed'
    REFUNDED = 'refunded'


class Payment(db.Model):
    """
    Money received from or credited to a customer.
    Quarterly rewards are recorded as type='reward', method='credit'.
    """
    __tablename__ = 'payments'

    id = db.Column(db.Integer, primary_key=True)
    payment_number = db.Column(db.String(50), nullable=False, unique=True)
    customer_id = db.Column(db.Integer, db.ForeignKey('customers.id'), nullable=False, index=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'))

    amount = db.Column(db.Numeric(12, 2), nullable=False)
    method = db.Column(db.String(20), nullable=False)
    type = db.Column(db.String(20), nullable=False, default=PaymentType.USER_TOPUP.value)
    status = db.Column(db.String(20), nullable=False, default=PaymentStatus.PENDING.value)
    reference = db.Column(db.String(255))
    notes = db.Column(db.Text)

    processed_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<Payment {self.payment_number} {self.type} ${self.amount}>'

    def to_dict(self):
        return {
            'id': self.id,
            'payment_number': self.payment_number,
            'customer_id': self.customer_id,
            'order_id': self.order_id,
            'amount': float(self.amount),
            'method': self.method,
            'type': self.type,
            'status': self.status,
            'reference': self.reference,
            'notes': self.notes,
            'processed_at': self.processed_at.isoformat() if self.processed_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
