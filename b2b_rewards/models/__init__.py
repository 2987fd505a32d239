"""
Database models for the B2B rewards service.
Customers, orders and payments are collaborators; reward tiers and the
quarterly reward ledger are the core.
"""
from .customer import User, UserRole, Customer, normalize_category
from .order import Order, OrderItem, OrderStatus
from .payment import Payment, PaymentMethod, PaymentType, PaymentStatus
from .rewards import RewardTier, CustomerQuarterlyReward, RewardStatus

__all__ = [
    'User',
    'UserRole',
    'Customer',
    'normalize_category',
    'Order',
    'OrderItem',
    'OrderStatus',
    'Payment',
    'PaymentMethod',
    'PaymentType',
    'PaymentStatus',
    # Rewards
    'RewardTier',
    'CustomerQuarterlyReward',
    'RewardStatus',
]
