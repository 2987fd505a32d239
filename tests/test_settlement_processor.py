"""
Tests for the Reward Settlement Processor.

Covers:
- Paying pending rewards into wallets with a reward payment
- Skipping zero and negative rewards (left pending)
- Idempotence on a second run
- Per-customer failure isolation
- Precondition errors
"""
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy import update

from b2b_rewards.extensions import db
from b2b_rewards.models import (
    Customer,
    CustomerQuarterlyReward,
    Payment,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
    RewardStatus,
)
from b2b_rewards.services.reward_ledger import RewardLedgerService
from b2b_rewards.services.settlement_processor import RewardSettlementProcessor
from b2b_rewards.utils.exceptions import (
    InvalidInputError,
    MissingActorError,
    NothingToProcessError,
)


@pytest.fixture
def gold_customer(make_customer, make_order, gold_tiers):
    """150 delivered cartons in Q1 2025, adjusted by -50 => 100.00 pending."""
    customer = make_customer(wallet_balance=Decimal('25.00'))
    make_order(customer, 150)
    service = RewardLedgerService()
    reward, _ = service.recompute(customer.id, 1, 2025)
    service.adjust_manual(reward.id, -50)
    return customer


class TestProcessQuarter:

    def test_pays_reward_into_wallet(self, admin_user, gold_customer):
        result = RewardSettlementProcessor().process_quarter(1, 2025, admin_user.id)

        assert result['processed_count'] == 1
        assert result['skipped_count'] == 0
        assert result['total_amount'] == 100.0
        assert result['errors'] == []

        customer = db.session.get(Customer, gold_customer.id)
        assert customer.wallet_balance == Decimal('125.00')

        reward = CustomerQuarterlyReward.query.filter_by(customer_id=customer.id).one()
        assert reward.status == RewardStatus.PROCESSED.value
        assert reward.processed_by == admin_user.id
        assert reward.processed_at is not None

        payment = db.session.get(Payment, reward.payment_id)
        assert payment.amount == Decimal('100.00')
        assert payment.method == PaymentMethod.CREDIT.value
        assert payment.type == PaymentType.REWARD.value
        assert payment.status == PaymentStatus.COMPLETED.value
        assert payment.reference == 'Q1 2025 Reward'
        assert payment.payment_number.startswith('RWD-')
        assert payment.payment_number.endswith(f'-{customer.id}')

    def test_accepts_string_params(self, admin_user, gold_customer):
        result = RewardSettlementProcessor().process_quarter('1', '2025', admin_user.id)
        assert (result['quarter'], result['year']) == (1, 2025)

    def test_zero_and_negative_left_pending(self, admin_user, make_customer, make_order, gold_tiers):
        zero = make_customer('Zero Shop', reward_category=None)
        negative = make_customer('Negative Shop')
        paid = make_customer('Paid Shop')
        make_order(negative, 10)
        make_order(paid, 120)

        service = RewardLedgerService()
        service.recompute(zero.id, 1, 2025)
        reward, _ = service.recompute(negative.id, 1, 2025)
        service.adjust_manual(reward.id, -20)
        service.recompute(paid.id, 1, 2025)

        result = RewardSettlementProcessor().process_quarter(1, 2025, admin_user.id)

        assert result['processed_count'] == 1
        assert result['skipped_count'] == 2
        assert result['total_amount'] == 120.0

        statuses = {
            r.customer_id: r.status for r in CustomerQuarterlyReward.query.all()
        }
        assert statuses[zero.id] == RewardStatus.PENDING.value
        assert statuses[negative.id] == RewardStatus.PENDING.value
        assert statuses[paid.id] == RewardStatus.PROCESSED.value
        assert Payment.query.count() == 1

    def test_second_run_does_not_pay_twice(self, admin_user, gold_customer, make_customer):
        processor = RewardSettlementProcessor()
        processor.process_quarter(1, 2025, admin_user.id)

        # A zero row keeps the pending set non-empty
        RewardLedgerService().recompute(make_customer('Late Shop', reward_category=None).id, 1, 2025)
        result = processor.process_quarter(1, 2025, admin_user.id)

        assert result['processed_count'] == 0
        assert result['skipped_count'] == 1
        assert db.session.get(Customer, gold_customer.id).wallet_balance == Decimal('125.00')
        assert Payment.query.filter_by(type=PaymentType.REWARD.value).count() == 1

    def test_second_run_with_nothing_pending(self, admin_user, gold_customer):
        processor = RewardSettlementProcessor()
        processor.process_quarter(1, 2025, admin_user.id)

        with pytest.raises(NothingToProcessError):
            processor.process_quarter(1, 2025, admin_user.id)

    def test_failure_isolated_per_customer(self, admin_user, make_customer, make_order, gold_tiers):
        good = make_customer('Good Shop')
        bad = make_customer('Bad Shop')
        make_order(good, 150)
        make_order(bad, 150)
        RewardLedgerService().batch_recompute_for_quarter(1, 2025)

        processor = RewardSettlementProcessor()
        original = processor._create_payment

        def flaky(customer_id, *args):
            if customer_id == bad.id:
                raise RuntimeError('payment insert failed')
            return original(customer_id, *args)

        with patch.object(processor, '_create_payment', side_effect=flaky):
            result = processor.process_quarter(1, 2025, admin_user.id)

        assert result['processed_count'] == 1
        assert result['errors'] == [{'customer_id': bad.id, 'error': 'payment insert failed'}]

        bad_reward = CustomerQuarterlyReward.query.filter_by(customer_id=bad.id).one()
        assert bad_reward.status == RewardStatus.PENDING.value
        assert bad_reward.processed_by is None
        assert bad_reward.payment_id is None
        assert db.session.get(Customer, bad.id).wallet_balance == Decimal('0.00')

        good_reward = CustomerQuarterlyReward.query.filter_by(customer_id=good.id).one()
        assert good_reward.status == RewardStatus.PROCESSED.value
        assert db.session.get(Customer, good.id).wallet_balance == Decimal('150.00')

    def test_row_claimed_by_another_batch_is_skipped(self, admin_user, gold_customer):
        processor = RewardSettlementProcessor()
        original = processor._settle_reward

        def claimed_elsewhere(reward_id, *args):
            # A concurrent batch settles the row after the pending snapshot
            db.session.execute(
                update(CustomerQuarterlyReward)
                .where(CustomerQuarterlyReward.id == reward_id)
                .values(status=RewardStatus.PROCESSED.value)
            )
            db.session.commit()
            return original(reward_id, *args)

        with patch.object(processor, '_settle_reward', side_effect=claimed_elsewhere):
            result = processor.process_quarter(1, 2025, admin_user.id)

        assert result['processed_count'] == 0
        assert result['skipped_count'] == 1
        assert result['total_amount'] == 0.0
        assert result['errors'] == []
        assert Payment.query.count() == 0
        assert db.session.get(Customer, gold_customer.id).wallet_balance == Decimal('25.00')

        reward = CustomerQuarterlyReward.query.filter_by(customer_id=gold_customer.id).one()
        assert reward.payment_id is None
        assert reward.processed_by is None

    def test_other_quarters_untouched(self, admin_user, gold_customer):
        RewardLedgerService().recompute(gold_customer.id, 2, 2025)

        RewardSettlementProcessor().process_quarter(1, 2025, admin_user.id)

        q2 = CustomerQuarterlyReward.query.filter_by(quarter=2, year=2025).one()
        assert q2.status == RewardStatus.PENDING.value


class TestPreconditions:

    def test_missing_actor(self, gold_customer):
        with pytest.raises(MissingActorError):
            RewardSettlementProcessor().process_quarter(1, 2025, None)

    def test_missing_quarter(self, admin_user):
        with pytest.raises(InvalidInputError):
            RewardSettlementProcessor().process_quarter(None, 2025, admin_user.id)

    def test_nothing_pending(self, admin_user):
        with pytest.raises(NothingToProcessError):
            RewardSettlementProcessor().process_quarter(1, 2025, admin_user.id)
