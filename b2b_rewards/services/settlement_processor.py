"""
Reward settlement processor.
Disburses pending quarterly rewards as wallet credit.

For each pending reward with a positive final amount, in one transaction:
1. Claim the row (conditional pending -> processed update)
2. Record a completed 'reward' payment
3. Add the amount to the customer's wallet (SQL-side increment)
4. Link the payment and actor on the reward row

Each customer commits or rolls back on its own; one failure never blocks
or undoes another customer's settlement.
"""
from datetime import datetime
from decimal import Decimal
from typing import Dict, Any, Optional
from flask import current_app
from sqlalchemy import update

from ..extensions import db
from ..models import (
    Customer,
    CustomerQuarterlyReward,
    Payment,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
    RewardStatus,
)
from ..utils.exceptions import MissingActorError, NothingToProcessError, PersistenceError
from ..utils.quarters import format_quarter_label, parse_quarter_params


class RewardSettlementProcessor:
    """
    Processor for settling a quarter's rewards.

    Usage:
        processor = RewardSettlementProcessor()
        result = processor.process_quarter(1, 2025, actor_id=admin.id)
    """

    def process_quarter(self, quarter, year, actor_id) -> Dict[str, Any]:
        """
        Settle every pending reward of a quarter.

        Rewards with final_reward <= 0 are skipped and stay pending.

        Raises:
            MissingActorError: If actor_id is missing
            InvalidInputError: If quarter/year are missing or invalid
            NothingToProcessError: If the quarter has no pending rewards

        Returns:
            Dict with processed_count, skipped_count, total_amount and errors
        """
        if not actor_id:
            raise MissingActorError()

        quarter, year = parse_quarter_params(quarter, year)

        # Snapshot ids only; rows are re-read under the claim
        pending = (
            db.session.query(
                CustomerQuarterlyReward.id,
                CustomerQuarterlyReward.customer_id,
                CustomerQuarterlyReward.final_reward,
            )
            .filter(
                CustomerQuarterlyReward.quarter == quarter,
                CustomerQuarterlyReward.year == year,
                CustomerQuarterlyReward.status == RewardStatus.PENDING.value,
            )
            .order_by(CustomerQuarterlyReward.id)
            .all()
        )

        if not pending:
            raise NothingToProcessError(quarter, year)

        results = {
            'quarter': quarter,
            'year': year,
            'processed_count': 0,
            'skipped_count': 0,
            'total_amount': Decimal('0'),
            'processed': [],
            'errors': [],
        }

        for reward_id, customer_id, final_reward in pending:
            if Decimal(str(final_reward or 0)) <= 0:
                results['skipped_count'] += 1
                continue

            try:
                settled = self._settle_reward(reward_id, customer_id, quarter, year, actor_id)
            except Exception as e:
                db.session.rollback()
                current_app.logger.error(
                    f"Error processing reward {reward_id} for customer {customer_id}: {e}"
                )
                results['errors'].append({
                    'customer_id': customer_id,
                    'error': str(e)
                })
                continue

            if settled is None:
                # Claimed by a concurrent batch or no longer payable
                results['skipped_count'] += 1
                continue

            results['processed_count'] += 1
            results['total_amount'] += Decimal(str(settled['amount']))
            results['processed'].append(settled)

        results['total_amount'] = float(results['total_amount'])

        current_app.logger.info(
            f"Settled Q{quarter}/{year}: {results['processed_count']} paid "
            f"(${results['total_amount']:.2f}), {results['skipped_count']} skipped, "
            f"{len(results['errors'])} errors, actor {actor_id}"
        )
        return results

    def _settle_reward(
        self,
        reward_id: int,
        customer_id: int,
        quarter: int,
        year: int,
        actor_id
    ) -> Optional[Dict[str, Any]]:
        """Settle a single reward inside its own transaction."""
        now = datetime.utcnow()

        claim = db.session.execute(
            update(CustomerQuarterlyReward)
            .where(
                CustomerQuarterlyReward.id == reward_id,
                CustomerQuarterlyReward.status == RewardStatus.PENDING.value,
            )
            .values(
                status=RewardStatus.PROCESSED.value,
                processed_at=now,
                processed_by=actor_id,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if claim.rowcount != 1:
            db.session.rollback()
            return None

        # Amount as of the claim, not the snapshot
        amount = db.session.query(CustomerQuarterlyReward.final_reward).filter(
            CustomerQuarterlyReward.id == reward_id
        ).scalar()
        amount = Decimal(str(amount or 0))
        if amount <= 0:
            db.session.rollback()
            return None

        payment = self._create_payment(customer_id, amount, quarter, year, now)

        credited = db.session.execute(
            update(Customer)
            .where(Customer.id == customer_id)
            .values(
                wallet_balance=Customer.wallet_balance + amount,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if credited.rowcount != 1:
            raise PersistenceError(f"Customer {customer_id} wallet could not be credited")

        db.session.execute(
            update(CustomerQuarterlyReward)
            .where(CustomerQuarterlyReward.id == reward_id)
            .values(payment_id=payment.id)
            .execution_options(synchronize_session=False)
        )

        db.session.commit()

        return {
            'reward_id': reward_id,
            'customer_id': customer_id,
            'payment_id': payment.id,
            'payment_number': payment.payment_number,
            'amount': float(amount),
        }

    def _create_payment(
        self,
        customer_id: int,
        amount: Decimal,
        quarter: int,
        year: int,
        now: datetime
    ) -> Payment:
        prefix = current_app.config.get('REWARD_PAYMENT_PREFIX', 'RWD')
        payment = Payment(
            payment_number=f'{prefix}-{now.strftime("%Y%m%d%H%M%S%f")}-{customer_id}',
            customer_id=customer_id,
            amount=amount,
            method=PaymentMethod.CREDIT.value,
            type=PaymentType.REWARD.value,
            status=PaymentStatus.COMPLETED.value,
            reference=f'{format_quarter_label(quarter, year)} Reward',
            notes=f'Quarterly reward for {quarter}/{year}',
            processed_at=now,
        )
        db.session.add(payment)
        db.session.flush()
        return payment
