"""
Reward calculator service.
Determines carton volume, eligible tier and reward amount for a customer quarter.
"""
import logging
from decimal import Decimal
from typing import Optional, Dict, Any
from sqlalchemy import func
from ..extensions import db
from ..models import Customer, Order, OrderItem, OrderStatus, RewardTier, normalize_category
from ..utils.quarters import get_quarter_date_range

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')


class RewardCalculator:
    """
    Calculator for quarterly carton rewards.

    Reward = tier cashback per carton x cartons delivered in the quarter,
    where the tier is picked from the customer's reward category.
    """

    def cartons_purchased(self, customer_id: int, quarter: int, year: int) -> int:
        """
        Sum of line-item quantities on the customer's delivered orders
        created within the quarter (both ends inclusive).
        """
        start_date, end_date = get_quarter_date_range(quarter, year)

        total = (
            db.session.query(func.coalesce(func.sum(OrderItem.quantity), 0))
            .join(Order, OrderItem.order_id == Order.id)
            .filter(
                Order.customer_id == customer_id,
                Order.status == OrderStatus.DELIVERED.value,
                Order.created_at >= start_date,
                Order.created_at <= end_date,
            )
            .scalar()
        )
        return int(total or 0)

    def resolve_tier(
        self,
        cartons: int,
        quarter: int,
        year: int,
        category: Optional[str]
    ) -> Optional[RewardTier]:
        """
        Pick the single applicable tier for a carton count.

        Candidates are the active tiers of the quarter whose name matches the
        category (trimmed, case-insensitive). They are checked highest
        min_cartons first, so when brackets overlap the highest floor the
        customer reaches wins.
        """
        category_key = normalize_category(category)
        if not category_key:
            return None

        candidates = (
            RewardTier.query
            .filter(
                RewardTier.quarter == quarter,
                RewardTier.year == year,
                RewardTier.is_active.is_(True),
                RewardTier.name_key == category_key,
            )
            .order_by(RewardTier.min_cartons.desc(), RewardTier.id.asc())
            .all()
        )

        for tier in candidates:
            if tier.matches(cartons):
                return tier

        logger.debug(
            f"No tier for category '{category_key}' at {cartons} cartons in Q{quarter}/{year} "
            f"({len(candidates)} candidates)"
        )
        return None

    def calculate_reward(self, tier: Optional[RewardTier], cartons: int) -> Decimal:
        """cashback_per_carton x cartons, exact to the cent; zero without a tier."""
        if tier is None or cartons <= 0:
            return Decimal('0.00')
        rate = Decimal(str(tier.cashback_per_carton))
        return (rate * cartons).quantize(CENT)

    def calculate(self, customer: Customer, quarter: int, year: int) -> Dict[str, Any]:
        """
        Full calculation for one customer quarter.

        Returns:
            Dict with cartons, tier and calculated_reward
        """
        cartons = self.cartons_purchased(customer.id, quarter, year)
        tier = self.resolve_tier(cartons, quarter, year, customer.reward_category)
        calculated = self.calculate_reward(tier, cartons)

        return {
            'customer_id': customer.id,
            'cartons': cartons,
            'tier': tier,
            'calculated_reward': calculated,
        }
