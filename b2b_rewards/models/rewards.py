"""
Quarterly carton reward models.

RewardTier: a named carton bracket with a cashback-per-carton rate, scoped to
one category (the tier name) and one quarter/year.

CustomerQuarterlyReward: one ledger row per customer per quarter holding the
calculated, manually adjusted and final reward. Rows are recomputed while
pending and become immutable once processed.
"""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from sqlalchemy.orm import validates
from ..extensions import db
from .customer import normalize_category


class RewardStatus(str, Enum):
    PENDING = 'pending'
    PROCESSED = 'processed'
    CANCELLED = 'cancelled'


def _money(value):
    return float(value) if value is not None else None


class RewardTier(db.Model):
    __tablename__ = 'reward_tiers'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)     # Category, e.g. 'Gold'
    name_ar = db.Column(db.String(255))
    name_key = db.Column(db.String(255), nullable=False, index=True)  # normalized name

    quarter = db.Column(db.Integer, nullable=False)  # 1-4
    year = db.Column(db.Integer, nullable=False)
    min_cartons = db.Column(db.Integer, nullable=False)
    max_cartons = db.Column(db.Integer)  # NULL = no upper bound
    cashback_per_carton = db.Column(db.Numeric(10, 2), nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.Index('ix_reward_tiers_period', 'year', 'quarter', 'is_active'),
    )

    @validates('name')
    def _set_name_key(self, key, value):
        self.name_key = normalize_category(value) or ''
        return value

    def matches(self, cartons: int) -> bool:
        """True if the carton count falls inside [min_cartons, max_cartons]."""
        if cartons < self.min_cartons:
            return False
        return self.max_cartons is None or cartons <= self.max_cartons

    def __repr__(self):
        return f'<RewardTier {self.name} Q{self.quarter}/{self.year} {self.min_cartons}-{self.max_cartons}>'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'name_ar': self.name_ar,
            'quarter': self.quarter,
            'year': self.year,
            'min_cartons': self.min_cartons,
            'max_cartons': self.max_cartons,
            'cashback_per_carton': _money(self.cashback_per_carton),
            'is_active': self.is_active,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


class CustomerQuarterlyReward(db.Model):
    __tablename__ = 'customer_quarterly_rewards'

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey('customers.id'), nullable=False, index=True)
    quarter = db.Column(db.Integer, nullable=False)
    year = db.Column(db.Integer, nullable=False)

    total_cartons_purchased = db.Column(db.Integer, nullable=False, default=0)
    eligible_tier_id = db.Column(db.Integer, db.ForeignKey('reward_tiers.id'))

    calculated_reward = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal('0'))
    manual_adjustment = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal('0'))
    final_reward = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal('0'))

    status = db.Column(db.String(20), nullable=False, default=RewardStatus.PENDING.value, index=True)
    payment_id = db.Column(db.Integer, db.ForeignKey('payments.id'))
    processed_at = db.Column(db.DateTime)
    processed_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    notes = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    customer = db.relationship('Customer', backref=db.backref('quarterly_rewards', lazy='dynamic'))
    eligible_tier = db.relationship('RewardTier')
    payment = db.relationship('Payment')

    __table_args__ = (
        db.UniqueConstraint('customer_id', 'quarter', 'year', name='uq_customer_quarter_reward'),
        db.Index('ix_customer_rewards_period_status', 'year', 'quarter', 'status'),
    )

    @property
    def is_locked(self) -> bool:
        return self.status != RewardStatus.PENDING.value

    def __repr__(self):
        return f'<CustomerQuarterlyReward customer={self.customer_id} Q{self.quarter}/{self.year} {self.status}>'

    def to_dict(self, include_relations: bool = False):
        data = {
            'id': self.id,
            'customer_id': self.customer_id,
            'quarter': self.quarter,
            'year': self.year,
            'total_cartons_purchased': self.total_cartons_purchased,
            'eligible_tier_id': self.eligible_tier_id,
            'calculated_reward': _money(self.calculated_reward),
            'manual_adjustment': _money(self.manual_adjustment),
            'final_reward': _money(self.final_reward),
            'status': self.status,
            'payment_id': self.payment_id,
            'processed_at': self.processed_at.isoformat() if self.processed_at else None,
            'processed_by': self.processed_by,
            'notes': self.notes,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_relations:
            data['customer'] = self.customer.to_dict() if self.customer else None
            data['eligible_tier'] = self.eligible_tier.to_dict() if self.eligible_tier else None
        return data
