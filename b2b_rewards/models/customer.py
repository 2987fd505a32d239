"""
User and Customer models.
"""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from sqlalchemy.orm import validates
from ..extensions import db


class UserRole(str, Enum):
    ADMIN = 'admin'
    SUPERVISOR = 'supervisor'
    CUSTOMER = 'customer'


def normalize_category(value):
    """Trim + lowercase key used to match customer categories to tier names."""
    if value is None:
        return None
    value = value.strip().lower()
    return value or None


class User(db.Model):
    """
    Login principal for the admin panel and the storefront.
    Admins and supervisors operate the back office; customers own a Customer row.
    """
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True)
    role = db.Column(db.String(20), nullable=False, default=UserRole.CUSTOMER.value)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<User {self.email} ({self.role})>'


class Customer(db.Model):
    """
    B2B customer account.

    wallet_balance is prepaid money (top-ups and quarterly rewards);
    current_balance is credit already used against credit_limit.
    """
    __tablename__ = 'customers'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'))

    business_name = db.Column(db.String(255), nullable=False)
    business_name_ar = db.Column(db.String(255))
    contact_name = db.Column(db.String(255))
    phone = db.Column(db.String(20))
    email = db.Column(db.String(255))
    area = db.Column(db.String(100))

    # Selects the family of reward tiers (matched against RewardTier.name_key)
    reward_category = db.Column(db.String(100))

    # Balances
    credit_limit = db.Column(db.Numeric(12, 2), default=Decimal('0'))
    current_balance = db.Column(db.Numeric(12, 2), default=Decimal('0'))
    wallet_balance = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal('0'))

    # Running totals
    total_orders = db.Column(db.Integer, nullable=False, default=0)
    total_spent = db.Column(db.Numeric(12, 2), default=Decimal('0'))

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = db.relationship('User', backref=db.backref('customer', uselist=False))
    orders = db.relationship('Order', backref='customer', lazy='dynamic')
    payments = db.relationship('Payment', backref='customer', lazy='dynamic')

    @validates('reward_category')
    def _clean_category(self, key, value):
        if value is None:
            return None
        value = value.strip()
        return value or None

    @property
    def reward_category_key(self):
        return normalize_category(self.reward_category)

    @property
    def available_credit(self) -> Decimal:
        return Decimal(str(self.credit_limit or 0)) - Decimal(str(self.current_balance or 0))

    def __repr__(self):
        return f'<Customer {self.business_name}>'

    def to_dict(self):
        return {
            'id': self.id,
            'business_name': self.business_name,
            'business_name_ar': self.business_name_ar,
            'contact_name': self.contact_name,
            'phone': self.phone,
            'email': self.email,
            'reward_category': self.reward_category,
            'wallet_balance': float(self.wallet_balance or 0),
            'current_balance': float(self.current_balance or 0),
            'credit_limit': float(self.credit_limit or 0),
            'is_active': self.is_active,
        }
