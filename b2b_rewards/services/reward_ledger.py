"""
Reward Ledger Service.

Maintains one CustomerQuarterlyReward row per customer per quarter:
- Recompute: refresh cartons, tier and calculated reward while the row is pending
- Manual adjustment: admin delta added on top of the calculated reward
- Batch recompute: every active customer, one at a time, failures isolated
- History and quarter listings

Processed rows are immutable history. Recompute leaves them untouched and
adjustment is rejected. Writes to an existing row go through a conditional
UPDATE ... WHERE status='pending', so a settlement committing between the
read and the write cannot be overwritten.
"""
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional, List, Dict, Any, Tuple
from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from ..extensions import db
from ..models import Customer, CustomerQuarterlyReward, RewardStatus
from ..utils.exceptions import (
    AlreadyProcessedError,
    CustomerNotFoundError,
    InvalidInputError,
    RewardNotFoundError,
)
from ..utils.quarters import get_quarter_date_range
from .reward_calculator import RewardCalculator

CENT = Decimal('0.01')

OUTCOME_CREATED = 'created'
OUTCOME_UPDATED = 'updated'
OUTCOME_SKIPPED = 'skipped'


def _to_decimal(value, field: str) -> Decimal:
    if value is None or isinstance(value, bool):
        raise InvalidInputError(f'{field} must be a number', field)
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidInputError(f'{field} must be a number', field)
    if not result.is_finite():
        raise InvalidInputError(f'{field} must be a number', field)
    return result.quantize(CENT)


class RewardLedgerService:
    """
    Quarterly reward ledger operations.

    Usage:
        service = RewardLedgerService()
        reward, outcome = service.recompute(customer_id, 1, 2025)
    """

    def __init__(self, calculator: RewardCalculator = None):
        self.calculator = calculator or RewardCalculator()

    # ==================== Recompute ====================

    def recompute(
        self,
        customer_id: int,
        quarter: int,
        year: int,
        commit: bool = True
    ) -> Tuple[CustomerQuarterlyReward, str]:
        """
        Recalculate one customer's reward for a quarter.

        Creates the row if missing; refreshes it if pending (keeping the
        manual adjustment); leaves it alone if processed.

        Returns:
            (reward row, outcome) where outcome is 'created', 'updated' or 'skipped'
        """
        get_quarter_date_range(quarter, year)  # validates quarter

        customer = db.session.get(Customer, customer_id)
        if not customer:
            raise CustomerNotFoundError(customer_id)

        existing = self._find(customer_id, quarter, year)
        if existing and existing.is_locked:
            return existing, OUTCOME_SKIPPED

        calc = self.calculator.calculate(customer, quarter, year)
        tier = calc['tier']

        if existing:
            if not self._apply_calculation(existing, calc):
                db.session.rollback()
                return existing, OUTCOME_SKIPPED
            if commit:
                db.session.commit()
            return existing, OUTCOME_UPDATED

        reward = CustomerQuarterlyReward(
            customer_id=customer_id,
            quarter=quarter,
            year=year,
            total_cartons_purchased=calc['cartons'],
            eligible_tier_id=tier.id if tier else None,
            calculated_reward=calc['calculated_reward'],
            manual_adjustment=Decimal('0.00'),
            final_reward=calc['calculated_reward'],
            status=RewardStatus.PENDING.value,
        )
        db.session.add(reward)

        if commit:
            try:
                db.session.commit()
            except IntegrityError:
                # Another request inserted the same (customer, quarter, year) first
                db.session.rollback()
                existing = self._find(customer_id, quarter, year)
                if existing is None:
                    raise
                if existing.is_locked or not self._apply_calculation(existing, calc):
                    db.session.rollback()
                    return existing, OUTCOME_SKIPPED
                db.session.commit()
                return existing, OUTCOME_UPDATED

        return reward, OUTCOME_CREATED

    def _apply_calculation(self, reward: CustomerQuarterlyReward, calc: Dict[str, Any]) -> bool:
        """
        Write a calculation onto a row that is still pending.

        final_reward is derived from the stored manual_adjustment inside the
        statement. Returns False when the row is no longer pending.
        """
        tier = calc['tier']
        calculated = calc['calculated_reward']
        return self._update_pending(
            reward,
            total_cartons_purchased=calc['cartons'],
            eligible_tier_id=tier.id if tier else None,
            calculated_reward=calculated,
            final_reward=calculated + CustomerQuarterlyReward.manual_adjustment,
        )

    def _update_pending(self, reward: CustomerQuarterlyReward, **values) -> bool:
        result = db.session.execute(
            update(CustomerQuarterlyReward)
            .where(
                CustomerQuarterlyReward.id == reward.id,
                CustomerQuarterlyReward.status == RewardStatus.PENDING.value,
            )
            .values(updated_at=datetime.utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        # Reload on next access; the in-session copy predates the statement
        db.session.expire(reward)
        return result.rowcount == 1

    def _find(self, customer_id: int, quarter: int, year: int) -> Optional[CustomerQuarterlyReward]:
        return CustomerQuarterlyReward.query.filter_by(
            customer_id=customer_id,
            quarter=quarter,
            year=year
        ).first()

    # ==================== Batch Recompute ====================

    def batch_recompute_for_quarter(self, quarter: int, year: int) -> Dict[str, Any]:
        """
        Recompute every active customer for a quarter, sequentially.

        A failing customer is rolled back and recorded in errors; the rest of
        the pass continues.
        """
        get_quarter_date_range(quarter, year)

        customer_ids = [
            row.id for row in
            db.session.query(Customer.id)
            .filter(Customer.is_active.is_(True))
            .order_by(Customer.business_name)
            .all()
        ]

        results = {
            'quarter': quarter,
            'year': year,
            'processed': 0,
            'created': 0,
            'updated': 0,
            'skipped': 0,
            'errors': [],
        }

        for customer_id in customer_ids:
            results['processed'] += 1
            try:
                _, outcome = self.recompute(customer_id, quarter, year)
                results[outcome] += 1
            except Exception as e:
                db.session.rollback()
                current_app.logger.error(
                    f"Reward recompute failed for customer {customer_id} Q{quarter}/{year}: {e}"
                )
                results['errors'].append({
                    'customer_id': customer_id,
                    'error': str(e)
                })

        current_app.logger.info(
            f"Recomputed Q{quarter}/{year}: {results['created']} created, "
            f"{results['updated']} updated, {results['skipped']} locked, "
            f"{len(results['errors'])} errors"
        )
        return results

    # ==================== Manual Adjustment ====================

    def adjust_manual(
        self,
        reward_id: int,
        manual_adjustment,
        notes: Optional[str] = None
    ) -> CustomerQuarterlyReward:
        """
        Set the admin adjustment on a pending reward.

        Negative values reduce the reward; no floor is applied here. The
        settlement step skips non-positive final rewards.

        Raises:
            InvalidInputError: If manual_adjustment is not numeric
            RewardNotFoundError: If the row does not exist
            AlreadyProcessedError: If the row is no longer pending
        """
        adjustment = _to_decimal(manual_adjustment, 'manual_adjustment')

        reward = db.session.get(CustomerQuarterlyReward, reward_id)
        if not reward:
            raise RewardNotFoundError(reward_id)

        if reward.is_locked:
            raise AlreadyProcessedError(reward_id)

        values = {
            'manual_adjustment': adjustment,
            'final_reward': CustomerQuarterlyReward.calculated_reward + adjustment,
        }
        if notes:
            values['notes'] = notes

        if not self._update_pending(reward, **values):
            # Settled by a concurrent batch after the row was read
            db.session.rollback()
            raise AlreadyProcessedError(reward_id)

        db.session.commit()

        current_app.logger.info(
            f"Reward {reward.id} adjusted by {adjustment}: final {reward.final_reward}"
        )
        return reward

    # ==================== Queries ====================

    def list_quarter(self, quarter: int, year: int) -> List[CustomerQuarterlyReward]:
        """All rows for a quarter with customer and tier loaded."""
        get_quarter_date_range(quarter, year)
        return (
            CustomerQuarterlyReward.query
            .options(
                joinedload(CustomerQuarterlyReward.customer),
                joinedload(CustomerQuarterlyReward.eligible_tier),
            )
            .join(Customer, CustomerQuarterlyReward.customer_id == Customer.id)
            .filter(
                CustomerQuarterlyReward.quarter == quarter,
                CustomerQuarterlyReward.year == year,
            )
            .order_by(Customer.business_name)
            .all()
        )

    def customer_history(self, customer_id: int) -> List[CustomerQuarterlyReward]:
        """All rows for a customer, newest quarter first."""
        return (
            CustomerQuarterlyReward.query
            .filter_by(customer_id=customer_id)
            .order_by(
                CustomerQuarterlyReward.year.desc(),
                CustomerQuarterlyReward.quarter.desc()
            )
            .all()
        )
