"""
Shared fixtures for the rewards test suite.

Each test gets a fresh in-memory SQLite database inside one app context;
fixtures and the test body share the same session.
"""
from datetime import datetime
from decimal import Decimal

import pytest

from b2b_rewards import create_app
from b2b_rewards.extensions import db as _db
from b2b_rewards.middleware.auth import create_access_token
from b2b_rewards.models import (
    Customer,
    Order,
    OrderItem,
    OrderStatus,
    RewardTier,
    User,
    UserRole,
)


@pytest.fixture
def app():
    """Create application for testing."""
    app = create_app('testing')

    ctx = app.app_context()
    ctx.push()
    _db.create_all()

    yield app

    _db.session.remove()
    _db.drop_all()
    ctx.pop()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def client(app):
    """Test client."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """CLI runner."""
    return app.test_cli_runner()


@pytest.fixture
def admin_user(db):
    user = User(email='admin@example.com', role=UserRole.ADMIN.value)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def supervisor_user(db):
    user = User(email='supervisor@example.com', role=UserRole.SUPERVISOR.value)
    db.session.add(user)
    db.session.commit()
    return user


def _headers(user):
    token = create_access_token(user.id, user.email, user.role)
    return {
        'Authorization': f'Bearer {token}',
        'Content-Type': 'application/json'
    }


@pytest.fixture
def auth_headers(admin_user):
    """Bearer headers for an admin."""
    return _headers(admin_user)


@pytest.fixture
def supervisor_headers(supervisor_user):
    return _headers(supervisor_user)


@pytest.fixture
def customer_headers(db):
    user = User(email='shop@example.com', role=UserRole.CUSTOMER.value)
    db.session.add(user)
    db.session.commit()
    return _headers(user)


@pytest.fixture
def make_customer(db):
    """Factory for customers."""
    def _make(business_name='Al Noor Market', reward_category='Gold', **kwargs):
        customer = Customer(
            business_name=business_name,
            reward_category=reward_category,
            **kwargs
        )
        db.session.add(customer)
        db.session.commit()
        return customer
    return _make


@pytest.fixture
def make_tier(db):
    """Factory for reward tiers (Q1 2025 by default)."""
    def _make(name='Gold', min_cartons=0, max_cartons=None, cashback='1.00',
              quarter=1, year=2025, is_active=True):
        tier = RewardTier(
            name=name,
            quarter=quarter,
            year=year,
            min_cartons=min_cartons,
            max_cartons=max_cartons,
            cashback_per_carton=Decimal(cashback),
            is_active=is_active,
        )
        db.session.add(tier)
        db.session.commit()
        return tier
    return _make


@pytest.fixture
def make_order(db):
    """Factory for orders with a single carton line item."""
    counter = {'n': 0}

    def _make(customer, cartons, created_at=datetime(2025, 2, 15, 10, 0),
              status=OrderStatus.DELIVERED.value):
        counter['n'] += 1
        order = Order(
            order_number=f'ORD-TEST-{counter["n"]:05d}',
            customer_id=customer.id,
            status=status,
            subtotal=Decimal('0'),
            total=Decimal('0'),
            created_at=created_at,
        )
        db.session.add(order)
        db.session.flush()
        db.session.add(OrderItem(
            order_id=order.id,
            product_name='Water 24x500ml',
            quantity=cartons,
            unit_price=Decimal('10.00'),
            total_price=Decimal('10.00') * cartons,
        ))
        db.session.commit()
        return order
    return _make


@pytest.fixture
def gold_tiers(make_tier):
    """Two Gold brackets for Q1 2025: 0-99 at 0.50 and 100+ at 1.00."""
    low = make_tier(name='Gold', min_cartons=0, max_cartons=99, cashback='0.50')
    high = make_tier(name='Gold', min_cartons=100, max_cartons=None, cashback='1.00')
    return low, high
